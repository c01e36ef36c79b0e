from dataclasses import dataclass

from fastapi import Header


ANONYMOUS_USER_ID = "anonymous"


@dataclass(frozen=True)
class Caller:
    user_id: str = ANONYMOUS_USER_ID
    email: str | None = None


def get_caller(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Caller:
    # Identity is asserted by the auth layer in front of this service; we only carry it.
    user_id = (x_user_id or "").strip() or ANONYMOUS_USER_ID
    email = (x_user_email or "").strip().lower() or None
    return Caller(user_id=user_id, email=email)
