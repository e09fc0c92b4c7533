"""
Runtime settings, read from the environment.

Entry points load `.env` (python-dotenv) before calling Settings.from_env().
No OPENAI_API_KEY means offline mode: extraction and embeddings are skipped
and the goods comparator fails closed.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ConfigurationError

DEFAULT_EXTRACTION_MODEL = "gpt-4o-mini"
DEFAULT_COMPARATOR_MODEL = "gpt-4o-mini"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    extraction_model: str = DEFAULT_EXTRACTION_MODEL
    comparator_model: str = DEFAULT_COMPARATOR_MODEL
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    extraction_concurrency: int = 5
    comparator_concurrency: int = 3
    extraction_timeout: float = 60.0  # seconds per document
    comparator_timeout: float = 15.0  # seconds per comparison
    store_path: Optional[str] = None  # JSONL file; None = no persistence
    log_level: str = "INFO"

    @property
    def online(self) -> bool:
        return bool(self.openai_api_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            extraction_model=env.get("LCV_EXTRACTION_MODEL", DEFAULT_EXTRACTION_MODEL),
            comparator_model=env.get("LCV_COMPARATOR_MODEL", DEFAULT_COMPARATOR_MODEL),
            embedding_model=env.get("LCV_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            extraction_concurrency=_positive_int(env, "LCV_EXTRACTION_CONCURRENCY", 5),
            comparator_concurrency=_positive_int(env, "LCV_COMPARATOR_CONCURRENCY", 3),
            extraction_timeout=_positive_float(env, "LCV_EXTRACTION_TIMEOUT", 60.0),
            comparator_timeout=_positive_float(env, "LCV_COMPARATOR_TIMEOUT", 15.0),
            store_path=env.get("LCV_STORE_PATH") or None,
            log_level=env.get("LCV_LOG_LEVEL", "INFO").upper(),
        )


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", {"name": name})
    if value < 1:
        raise ConfigurationError(f"{name} must be >= 1, got {value}", {"name": name})
    return value


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", {"name": name})
    if value <= 0:
        raise ConfigurationError(f"{name} must be > 0, got {value}", {"name": name})
    return value
