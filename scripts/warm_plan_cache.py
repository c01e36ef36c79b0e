"""Refetch the VTpass data plans for every supported provider, fresh cache rows included."""

import logging

from app.core.database import SessionLocal
from app.core.logging import configure_logging
from app.services.data_plans import PROVIDER_SERVICE_IDS, get_data_plans


logger = logging.getLogger("warm_plan_cache")


def main():
    configure_logging()
    failed = []
    db = SessionLocal()
    try:
        for provider in PROVIDER_SERVICE_IDS:
            result = get_data_plans(db, provider, force=True)
            if result["success"]:
                logger.info("%s: %s plans", provider, len(result["plans"]))
            else:
                failed.append(provider)
                logger.warning("%s: no plans returned", provider)
    finally:
        db.close()
    if failed:
        raise SystemExit(f"Plan refresh failed for: {', '.join(failed)}")


if __name__ == "__main__":
    main()
