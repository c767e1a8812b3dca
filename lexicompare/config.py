import logging
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_TYPES = ["txt", "csv", "json", "pdf", "docx", "doc", "xlsx"]
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class Settings:
    log_level: str = "INFO"
    max_workers: int = 1
    include_master: bool = True
    upload_types: List[str] = field(default_factory=lambda: list(DEFAULT_UPLOAD_TYPES))


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return default
    if value < 1:
        logger.warning("Ignoring %s=%r: must be at least 1", name, raw)
        return default
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning("Ignoring %s=%r: not a boolean", name, raw)
    return default


def _env_log_level(name: str, default: str) -> str:
    raw = (os.environ.get(name) or "").strip().upper()
    if not raw:
        return default
    if not isinstance(logging.getLevelName(raw), int):
        logger.warning("Ignoring %s=%r: unknown log level", name, raw)
        return default
    return raw


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.environ.get(name)
    if raw is None:
        return list(default)
    items = [item.strip().lower().lstrip(".") for item in raw.split(",")]
    items = [item for item in items if item]
    return items or list(default)


def load_settings(dotenv: bool = True) -> Settings:
    """Read settings from the environment, loading .env from the working directory first unless told not to."""
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))
    return Settings(
        log_level=_env_log_level("LEXICOMPARE_LOG_LEVEL", "INFO"),
        max_workers=_env_int("LEXICOMPARE_MAX_WORKERS", 1),
        include_master=_env_bool("LEXICOMPARE_INCLUDE_MASTER", True),
        upload_types=_env_list("LEXICOMPARE_UPLOAD_TYPES", DEFAULT_UPLOAD_TYPES),
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
