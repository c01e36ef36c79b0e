import logging

from app.core.config import get_settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging() -> None:
    settings = get_settings()
    level = logging.getLevelName(str(settings.log_level or "INFO").strip().upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO; our clients already log method/path/duration.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
