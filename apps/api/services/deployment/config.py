from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, cast

from services.env import ConfigError, env_int, env_str

ConcurrencyPolicy = Literal["reject", "queue"]


def concurrency_policy() -> ConcurrencyPolicy:
    raw = (env_str("DEPLOY_CONCURRENCY_POLICY", "reject") or "reject").lower()
    if raw not in {"reject", "queue"}:
        raise ConfigError("DEPLOY_CONCURRENCY_POLICY must be 'reject' or 'queue'")
    return cast(ConcurrencyPolicy, raw)


def cors_allow_origin() -> str:
    return env_str("DEPLOY_CORS_ALLOW_ORIGIN", "*") or "*"


@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int
    ssl_certfile: Optional[str]
    ssl_keyfile: Optional[str]
    log_level: str


def load_server_config() -> ServerConfig:
    port = env_int("DEPLOY_LISTEN_PORT", 3001)
    if not 0 < port < 65536:
        raise ConfigError(f"DEPLOY_LISTEN_PORT out of range: {port}")

    certfile = env_str("DEPLOY_SSL_CERTFILE")
    keyfile = env_str("DEPLOY_SSL_KEYFILE")
    if bool(certfile) != bool(keyfile):
        raise ConfigError(
            "DEPLOY_SSL_CERTFILE and DEPLOY_SSL_KEYFILE must be set together"
        )

    return ServerConfig(
        host=env_str("DEPLOY_LISTEN_HOST", "0.0.0.0") or "0.0.0.0",
        port=port,
        ssl_certfile=certfile,
        ssl_keyfile=keyfile,
        log_level=(env_str("DEPLOY_LOG_LEVEL", "INFO") or "INFO").upper(),
    )
