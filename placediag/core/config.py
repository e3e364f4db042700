"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    port: int = 3000
    http_timeout_seconds: float = 10.0
    analysis_timeout_seconds: float = 90.0
    navigation_timeout_ms: int = 60000
    frame_timeout_ms: int = 30000
    ready_timeout_ms: int = 20000
    settle_ms: int = 1500
    max_render_contexts: int = 3
    competitor_limit: int = 5
    competitor_concurrency: int = 3
    browser_headless: bool = True
    browser_eager_start: bool = True
    enable_dynamic_tier: bool = True


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using default %s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("%s=%s is below %s; using default %s", name, value, minimum, default)
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using default %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("%s must be positive; using default %s", name, default)
        return default
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    return Settings(
        port=_env_int("PORT", 3000, minimum=1),
        http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", 10.0),
        analysis_timeout_seconds=_env_float("ANALYSIS_TIMEOUT_SECONDS", 90.0),
        navigation_timeout_ms=_env_int("NAVIGATION_TIMEOUT_MS", 60000, minimum=1),
        frame_timeout_ms=_env_int("FRAME_TIMEOUT_MS", 30000, minimum=1),
        ready_timeout_ms=_env_int("READY_TIMEOUT_MS", 20000, minimum=1),
        settle_ms=_env_int("SETTLE_MS", 1500),
        max_render_contexts=_env_int("MAX_RENDER_CONTEXTS", 3, minimum=1),
        competitor_limit=_env_int("COMPETITOR_LIMIT", 5, minimum=1),
        competitor_concurrency=_env_int("COMPETITOR_CONCURRENCY", 3, minimum=1),
        browser_headless=_env_bool("BROWSER_HEADLESS", True),
        browser_eager_start=_env_bool("BROWSER_EAGER_START", True),
        enable_dynamic_tier=_env_bool("ENABLE_DYNAMIC_TIER", True),
    )
