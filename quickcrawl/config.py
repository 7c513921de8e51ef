"""Centralised settings for the Quickcrawl service.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from the package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------
    port: int = field(
        default_factory=lambda: int(os.environ.get("PORT", "3000"))
    )
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "info")
    )

    # ------------------------------------------------------------------
    # Admission control
    # ------------------------------------------------------------------
    rate_limit_max_requests: int = field(
        default_factory=lambda: int(os.environ.get("RATE_LIMIT_MAX_REQUESTS", "10"))
    )
    rate_limit_window_ms: int = field(
        default_factory=lambda: int(os.environ.get("RATE_LIMIT_WINDOW_MS", "60000"))
    )

    # ------------------------------------------------------------------
    # Result cache
    # ------------------------------------------------------------------
    cache_ttl_ms: int = field(
        default_factory=lambda: int(os.environ.get("CACHE_TTL_MS", "300000"))
    )
    cache_max_size: int = field(
        default_factory=lambda: int(os.environ.get("CACHE_MAX_SIZE", "100"))
    )

    # ------------------------------------------------------------------
    # Crawl pipeline
    # ------------------------------------------------------------------
    crawl_timeout_ms: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_TIMEOUT_MS", "30000"))
    )
    fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_TIMEOUT", "15.0"))
    )
    fetch_retries: int = field(
        default_factory=lambda: int(os.environ.get("FETCH_RETRIES", "2"))
    )


# Module-level singleton, import this everywhere:
#   from quickcrawl.config import settings
settings = Settings()
