from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_TRIGGER_URL = "https://portfolio-ben.duckdns.org:3001/deploy"
DEFAULT_SITE_URL = "https://portfolio-ben.duckdns.org"
# Slightly above the server-side pipeline timeout so the server reports first.
DEFAULT_TIMEOUT_SECONDS = 960.0


@dataclass(frozen=True)
class TriggerConfig:
    url: str = DEFAULT_TRIGGER_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    site_url: Optional[str] = DEFAULT_SITE_URL
    verify_tls: bool = True

    def with_overrides(
        self, *, url: Optional[str] = None, timeout_seconds: Optional[float] = None
    ) -> "TriggerConfig":
        out = self
        if url:
            out = replace(out, url=url)
        if timeout_seconds is not None:
            out = replace(out, timeout_seconds=timeout_seconds)
        return out


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_trigger_config() -> TriggerConfig:
    url = (os.getenv("DEPLOY_TRIGGER_URL") or "").strip() or DEFAULT_TRIGGER_URL

    raw_timeout = (os.getenv("DEPLOY_TRIGGER_TIMEOUT_SECONDS") or "").strip()
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_SECONDS
    except ValueError:
        raise ValueError(
            f"DEPLOY_TRIGGER_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}"
        ) from None

    site_raw = os.getenv("DEPLOY_SITE_URL")
    site_url = DEFAULT_SITE_URL if site_raw is None else (site_raw.strip() or None)

    return TriggerConfig(
        url=url,
        timeout_seconds=timeout,
        site_url=site_url,
        verify_tls=_env_bool("DEPLOY_TRIGGER_VERIFY_TLS", True),
    )
