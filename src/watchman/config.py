"""Runtime settings loaded from the environment and an optional .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_ENV_PATH = _PROJECT_ROOT / ".env"

# a missing .env is fine; real environment variables always win
load_dotenv(_ENV_PATH, override=False)

DEFAULT_STACK_PREFIX = "Watchman"
DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True)
class WatchmanSettings:
    stack_prefix: str = DEFAULT_STACK_PREFIX
    aws_region: Optional[str] = None
    max_workers: int = DEFAULT_MAX_WORKERS
    run_timeout_seconds: Optional[float] = None
    config_path: Optional[str] = None


def _read_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    value = int(raw)
    if value < 1:
        raise ValueError(f"{name} must be at least 1.")
    return value


def _read_float(name: str) -> Optional[float]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    value = float(raw)
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero.")
    return value


@lru_cache(maxsize=1)
def get_settings() -> WatchmanSettings:
    """Read settings from the environment only once."""

    return WatchmanSettings(
        stack_prefix=(os.getenv("WATCHMAN_STACK_PREFIX") or "").strip() or DEFAULT_STACK_PREFIX,
        aws_region=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION"),
        max_workers=_read_int("WATCHMAN_MAX_WORKERS", DEFAULT_MAX_WORKERS),
        run_timeout_seconds=_read_float("WATCHMAN_RUN_TIMEOUT_SECONDS"),
        config_path=os.getenv("WATCHMAN_CONFIG_PATH"),
    )
