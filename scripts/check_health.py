#!/usr/bin/env python3
"""Post-deploy health checks for the Swift VTU backend."""

from __future__ import annotations

import os
import time
from typing import Any

import httpx


def fail(message: str) -> None:
    print(f"ERROR: {message}")
    raise SystemExit(1)


def normalize_base_url(base_url: str) -> str:
    url = (base_url or "").strip().rstrip("/")
    # Secrets sometimes carry the API prefix.
    for suffix in ("/api/v1", "/api"):
        if url.endswith(suffix):
            return url[: -len(suffix)]
    return url


def _get_json(client: httpx.Client, path: str) -> dict[str, Any]:
    response = client.get(path)
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict):
        raise RuntimeError(f"{path} returned JSON that is not an object.")
    return data


def check_endpoint(
    client: httpx.Client,
    path: str,
    field: str,
    expected: Any,
    *,
    retries: int,
    retry_delay: float,
) -> None:
    last_error = None
    for attempt in range(retries + 1):
        try:
            data = _get_json(client, path)
            actual = data.get(field)
            if actual != expected:
                raise RuntimeError(f"{path} {field} mismatch: expected {expected!r}, got {actual!r}.")
            print(f"OK: {path} -> {field}={actual!r}")
            return
        except httpx.HTTPStatusError as exc:
            last_error = f"{path} returned HTTP {exc.response.status_code}. Body: {exc.response.text}"
        except (httpx.HTTPError, ValueError, RuntimeError) as exc:
            last_error = f"{path} request failed: {exc}"

        if attempt < retries:
            wait = retry_delay * (attempt + 1)
            print(f"WARN: {last_error} (retry {attempt + 1}/{retries} in {wait:.1f}s)")
            time.sleep(wait)

    fail(last_error or f"{path} failed")


def main() -> None:
    base_url = normalize_base_url(os.getenv("SWIFT_BACKEND_BASE_URL", ""))
    if not base_url:
        fail("Missing SWIFT_BACKEND_BASE_URL environment variable.")

    timeout = int(os.getenv("HEALTHCHECK_TIMEOUT_SECONDS", "25"))
    retries = int(os.getenv("HEALTHCHECK_RETRIES", "4"))
    retry_delay = float(os.getenv("HEALTHCHECK_RETRY_DELAY_SECONDS", "4"))
    print(f"Healthcheck config: base_url={base_url} timeout={timeout}s retries={retries} retry_delay={retry_delay}s")

    checks = (
        ("/healthz", "status", "ok"),
        ("/readyz", "status", "ready"),
        ("/api/v1/products/hot-deals", "success", True),
    )
    with httpx.Client(base_url=base_url, timeout=timeout, headers={"User-Agent": "swift-vtu-healthcheck/1.0"}) as client:
        for path, field, expected in checks:
            check_endpoint(client, path, field, expected, retries=retries, retry_delay=retry_delay)
    print("SUCCESS: all health checks passed.")


if __name__ == "__main__":
    main()
