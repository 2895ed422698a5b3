import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from image_transcoder_api.errors import ConfigError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _get_number(name: str, default: str, cast):
    raw = os.getenv(name, default).strip()
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"Invalid value for env var {name}: {raw!r}")
    if value < 0:
        raise ConfigError(f"Env var {name} must not be negative, got {raw!r}")
    return value


def _get_log_level(name: str, default: str) -> str:
    level = os.getenv(name, default).upper().strip()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"Invalid value for env var {name}: {level!r}")
    return level


@dataclass(frozen=True)
class Settings:
    log_level: str
    port: int

    # Source fetch
    fetch_timeout: float
    fetch_retries: int
    fetch_backoff: float
    max_source_bytes: int

    # Whole request (fetch + search); 0 disables the deadline
    request_timeout: float


def load_settings() -> Settings:
    return Settings(
        log_level=_get_log_level("TRANSCODER_LOG_LEVEL", "INFO"),
        port=_get_number("PORT", "3001", int),
        fetch_timeout=_get_number("TRANSCODER_FETCH_TIMEOUT", "10.0", float),
        fetch_retries=_get_number("TRANSCODER_FETCH_RETRIES", "0", int),
        fetch_backoff=_get_number("TRANSCODER_FETCH_BACKOFF", "0.5", float),
        max_source_bytes=_get_number("TRANSCODER_MAX_SOURCE_BYTES", str(25 * 1024 * 1024), int),
        request_timeout=_get_number("TRANSCODER_REQUEST_TIMEOUT", "30.0", float),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(h)
