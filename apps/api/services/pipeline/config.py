from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple

import yaml

from services.env import ConfigError, env_float, env_int, env_str, require_absolute

from .types import PipelineStep

DEFAULT_PROJECT_PATH = "/home/ubuntu/Dev_Portolio"
DEFAULT_TIMEOUT_SECONDS = 900.0
DEFAULT_KILL_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class PipelineConfig:
    project_path: Path
    steps: Tuple[PipelineStep, ...]
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS
    healthcheck_url: Optional[str] = None
    healthcheck_attempts: int = 10
    healthcheck_delay_seconds: float = 3.0


def default_steps(
    project_path: Path,
    *,
    remote: str = "origin",
    branch: str = "main",
    ecosystem: str = "ecosystem.config.js",
    pm2_env: str = "production",
) -> Tuple[PipelineStep, ...]:
    """
    Source sync, production install, build, then a zero-downtime pm2 reload.
    """
    commands = [
        f"git fetch {remote} {branch}",
        f"git reset --hard {remote}/{branch}",
        "npm ci --only=production",
        "npm run build",
        f"pm2 reload {ecosystem} --env {pm2_env}",
    ]
    return tuple(PipelineStep(command=cmd, cwd=project_path) for cmd in commands)


def _step_from_item(item: Any, position: int, project_path: Path) -> PipelineStep:
    if isinstance(item, str):
        command, cwd_raw = item, None
    elif isinstance(item, dict):
        command, cwd_raw = item.get("command"), item.get("cwd")
    else:
        raise ConfigError(f"pipeline step {position} must be a string or a mapping")

    if not isinstance(command, str) or not command.strip():
        raise ConfigError(f"pipeline step {position} has no command")

    cwd = project_path
    if cwd_raw is not None:
        if not isinstance(cwd_raw, str) or not cwd_raw.strip():
            raise ConfigError(f"pipeline step {position} has an invalid cwd")
        candidate = Path(cwd_raw.strip())
        cwd = candidate if candidate.is_absolute() else project_path / candidate

    return PipelineStep(command=command.strip(), cwd=cwd)


def load_steps_file(path: Path, project_path: Path) -> Tuple[PipelineStep, ...]:
    """
    Load an ordered step list from YAML.

    Accepted shapes:
      - a plain list of command strings
      - a mapping with a "steps" list; items are strings or
        {command: ..., cwd: ...} (relative cwd resolves against project_path)
    """
    if not path.is_file():
        raise ConfigError(f"DEPLOY_PIPELINE_FILE not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"DEPLOY_PIPELINE_FILE is not valid YAML: {exc}") from exc

    items = data.get("steps") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ConfigError("DEPLOY_PIPELINE_FILE must contain a list of steps")

    steps: List[PipelineStep] = [
        _step_from_item(item, idx, project_path) for idx, item in enumerate(items)
    ]
    return tuple(steps)


def load_pipeline_config() -> PipelineConfig:
    project_path = require_absolute(
        env_str("DEPLOY_PROJECT_PATH", DEFAULT_PROJECT_PATH) or DEFAULT_PROJECT_PATH,
        "DEPLOY_PROJECT_PATH",
    )

    steps_file = env_str("DEPLOY_PIPELINE_FILE")
    if steps_file:
        steps = load_steps_file(Path(steps_file), project_path)
    else:
        steps = default_steps(
            project_path,
            remote=env_str("DEPLOY_GIT_REMOTE", "origin") or "origin",
            branch=env_str("DEPLOY_GIT_BRANCH", "main") or "main",
            ecosystem=env_str("DEPLOY_PM2_ECOSYSTEM", "ecosystem.config.js")
            or "ecosystem.config.js",
            pm2_env=env_str("DEPLOY_PM2_ENV", "production") or "production",
        )

    timeout = env_float("DEPLOY_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
    if timeout <= 0:
        raise ConfigError("DEPLOY_TIMEOUT_SECONDS must be greater than zero")

    grace = env_float("DEPLOY_KILL_GRACE_SECONDS", DEFAULT_KILL_GRACE_SECONDS)
    if grace < 0:
        raise ConfigError("DEPLOY_KILL_GRACE_SECONDS must not be negative")

    attempts = env_int("DEPLOY_HEALTHCHECK_ATTEMPTS", 10)
    if attempts < 1:
        raise ConfigError("DEPLOY_HEALTHCHECK_ATTEMPTS must be at least 1")

    delay = env_float("DEPLOY_HEALTHCHECK_DELAY_SECONDS", 3.0)
    if delay < 0:
        raise ConfigError("DEPLOY_HEALTHCHECK_DELAY_SECONDS must not be negative")

    return PipelineConfig(
        project_path=project_path,
        steps=steps,
        timeout_seconds=timeout,
        kill_grace_seconds=grace,
        healthcheck_url=env_str("DEPLOY_HEALTHCHECK_URL"),
        healthcheck_attempts=attempts,
        healthcheck_delay_seconds=delay,
    )
