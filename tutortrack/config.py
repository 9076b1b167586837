from dataclasses import dataclass
import os
from dotenv import load_dotenv

from tutortrack.domain.errors import ConfigError

load_dotenv()


@dataclass(frozen=True)
class Settings:
    db_path: str
    default_tz: str
    count_cache_ttl_seconds: int
    slow_query_ms: float
    log_level: str


def _positive_number(name: str, raw: str, cast):
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings() -> Settings:
    db_path = os.getenv("TUTORTRACK_DB_PATH", "data/tutortrack.db").strip()
    default_tz = os.getenv("TUTORTRACK_DEFAULT_TZ", "UTC").strip() or "UTC"
    ttl = os.getenv("TUTORTRACK_COUNT_CACHE_TTL_SECONDS", "300").strip()
    slow_ms = os.getenv("TUTORTRACK_SLOW_QUERY_MS", "5000").strip()
    log_level = os.getenv("TUTORTRACK_LOG_LEVEL", "INFO").strip().upper() or "INFO"

    if not db_path:
        raise ConfigError("TUTORTRACK_DB_PATH is empty")

    return Settings(
        db_path=db_path,
        default_tz=default_tz,
        count_cache_ttl_seconds=_positive_number("TUTORTRACK_COUNT_CACHE_TTL_SECONDS", ttl, int),
        slow_query_ms=_positive_number("TUTORTRACK_SLOW_QUERY_MS", slow_ms, float),
        log_level=log_level,
    )
