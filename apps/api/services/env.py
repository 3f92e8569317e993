from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


class ConfigError(ValueError):
    """Raised when an environment setting is missing or malformed."""


def env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    s = raw.strip()
    return s or default


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def require_absolute(path: str, label: str) -> Path:
    p = Path(path)
    if not p.is_absolute():
        raise ConfigError(f"{label} must be an absolute path, got {path!r}")
    return p
