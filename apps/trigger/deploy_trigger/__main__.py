from __future__ import annotations

from typing import Optional

import typer

from .client import EXIT_REQUEST_FAILED, report, send_trigger
from .config import load_trigger_config

app = typer.Typer(help="Trigger a remote deployment and report the outcome")


@app.command()
def trigger(
    url: Optional[str] = typer.Option(
        None, help="Deploy endpoint (default: DEPLOY_TRIGGER_URL)"
    ),
    timeout: Optional[float] = typer.Option(
        None, help="Seconds to wait for the response"
    ),
):
    """Send one deploy trigger; exit 0 only on a confirmed deployment."""
    try:
        cfg = load_trigger_config().with_overrides(url=url, timeout_seconds=timeout)
    except ValueError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=EXIT_REQUEST_FAILED)

    typer.echo(f"🚀 Triggering deployment at {cfg.url} ...")
    outcome = send_trigger(cfg)
    raise typer.Exit(code=report(outcome, site_url=cfg.site_url))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
