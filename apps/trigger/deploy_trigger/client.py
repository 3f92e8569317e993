from __future__ import annotations

import datetime as _dt
import json
import logging
from dataclasses import dataclass
from typing import Dict, Literal, Optional

import httpx
import typer

from .config import TriggerConfig

LOGGER = logging.getLogger(__name__)

OutcomeKind = Literal[
    "succeeded",
    "failed",
    "request_failed",
    "malformed_response",
]

EXIT_SUCCESS = 0
EXIT_DEPLOY_FAILED = 1
EXIT_REQUEST_FAILED = 2


@dataclass(frozen=True)
class TriggerOutcome:
    kind: OutcomeKind
    status_code: Optional[int] = None
    message: str = ""
    output: str = ""
    error: str = ""
    stderr: str = ""
    raw_body: str = ""

    @property
    def success(self) -> bool:
        return self.kind == "succeeded"


def build_payload(now: Optional[_dt.datetime] = None) -> Dict[str, str]:
    ts = now or _dt.datetime.now(tz=_dt.timezone.utc)
    return {
        "trigger": "deploy",
        "timestamp": ts.isoformat().replace("+00:00", "Z"),
    }


def interpret_response(status_code: int, body: str) -> TriggerOutcome:
    """
    Decode a deploy response structurally.

    Only a JSON object with a boolean "success" counts as an answer from
    the deployment service; anything else is malformed.
    """
    try:
        data = json.loads(body)
    except ValueError:
        data = None

    if not isinstance(data, dict) or not isinstance(data.get("success"), bool):
        return TriggerOutcome(
            kind="malformed_response", status_code=status_code, raw_body=body
        )

    if data["success"]:
        return TriggerOutcome(
            kind="succeeded",
            status_code=status_code,
            message=str(data.get("message") or ""),
            output=str(data.get("output") or ""),
            raw_body=body,
        )

    return TriggerOutcome(
        kind="failed",
        status_code=status_code,
        error=str(data.get("error") or "unknown error"),
        stderr=str(data.get("stderr") or ""),
        raw_body=body,
    )


def send_trigger(
    cfg: TriggerConfig, *, transport: Optional[httpx.BaseTransport] = None
) -> TriggerOutcome:
    """
    POST one trigger to the deployment service. No retries.
    """
    try:
        with httpx.Client(
            timeout=cfg.timeout_seconds, verify=cfg.verify_tls, transport=transport
        ) as client:
            resp = client.post(cfg.url, json=build_payload())
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        LOGGER.debug("deploy request to %s failed", cfg.url, exc_info=True)
        return TriggerOutcome(
            kind="request_failed", error=str(exc) or exc.__class__.__name__
        )

    return interpret_response(resp.status_code, resp.text)


def report(outcome: TriggerOutcome, *, site_url: Optional[str] = None) -> int:
    """
    Print the outcome for an operator and return the process exit code.
    """
    if outcome.kind == "request_failed":
        typer.echo(f"❌ Deployment request failed: {outcome.error}", err=True)
        typer.echo("💡 The deployment webhook may not be running on the server.")
        typer.echo("💡 Manual deployment may be required via SSH.")
        return EXIT_REQUEST_FAILED

    typer.echo("📦 Deployment Response:")

    if outcome.kind == "malformed_response":
        typer.echo(f"⚠️ Unexpected response (HTTP {outcome.status_code}):")
        typer.echo(outcome.raw_body)
        return EXIT_REQUEST_FAILED

    if outcome.kind == "failed":
        typer.echo(f"❌ Deployment failed: {outcome.error}")
        if outcome.stderr:
            typer.echo(outcome.stderr)
        return EXIT_DEPLOY_FAILED

    typer.echo("✅ Deployment successful!")
    if outcome.message:
        typer.echo(outcome.message)
    if outcome.output:
        typer.echo(outcome.output)
    if site_url:
        typer.echo(f"🌐 Site updated at {site_url}")
    return EXIT_SUCCESS
