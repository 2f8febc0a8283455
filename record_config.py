"""Runtime settings for the record pipeline.

Values come from the environment (a local .env is loaded first):
  PRIVATE_ID_LENGTH        length of generated private ids (default 7)
  PRIVATE_ID_MAX_ATTEMPTS  uniqueness retries before giving up (default 50)
  RECORD_CACHE_WINDOW      records loaded per cache window (default 100)
  RECORD_CACHE_TTL         seconds before a cached window expires (default 3600)
  DEFAULT_MATCH_POLICY     strict | update | block (default update)
  DEFAULT_MATCH_FIELDS     comma-separated matching fields (default email)

Usage:
    from record_config import get_settings
    settings = get_settings()
"""
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

PRIVATE_ID_ALPHABET = "1234567890ABCDEFGHIJKLMNOPQRSTUVWXYZ"


@dataclass(frozen=True)
class RecordSettings:
    private_id_length: int = 7
    private_id_max_attempts: int = 50
    cache_window: int = 100
    cache_ttl: float = 3600.0
    match_policy: str = "update"
    match_fields: tuple[str, ...] = ("email",)


def _split_fields(raw: str) -> tuple[str, ...]:
    return tuple(name.strip() for name in raw.split(",") if name.strip())


@lru_cache(maxsize=1)
def get_settings() -> RecordSettings:
    """Return settings built from the current environment (cached)."""
    return RecordSettings(
        private_id_length=int(os.environ.get("PRIVATE_ID_LENGTH", "7")),
        private_id_max_attempts=int(os.environ.get("PRIVATE_ID_MAX_ATTEMPTS", "50")),
        cache_window=int(os.environ.get("RECORD_CACHE_WINDOW", "100")),
        cache_ttl=float(os.environ.get("RECORD_CACHE_TTL", "3600")),
        match_policy=os.environ.get("DEFAULT_MATCH_POLICY", "update"),
        match_fields=_split_fields(os.environ.get("DEFAULT_MATCH_FIELDS", "email")),
    )
