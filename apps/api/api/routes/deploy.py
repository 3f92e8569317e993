from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Optional

from fastapi import APIRouter, Body, Request, Response
from fastapi.responses import JSONResponse

from api.schemas.deploy import DeployFailureOut, DeploySuccessOut, DeployTrigger
from services.deployment import DeploymentBusyError, DeploymentService, DeployRequestMeta
from services.deployment.config import concurrency_policy, cors_allow_origin
from services.env import ConfigError
from services.pipeline import PipelineExecutor
from services.pipeline.config import load_pipeline_config
from services.pipeline.util import utc_iso

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["deploy"])


@lru_cache(maxsize=1)
def _deployer() -> DeploymentService:
    """
    Lazy singleton so importing the app never reads pipeline config.
    """
    return DeploymentService(
        PipelineExecutor(load_pipeline_config()),
        policy=concurrency_policy(),
    )


def cors_headers() -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": cors_allow_origin(),
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def failure_response(status_code: int, error: str, stderr: str = "") -> JSONResponse:
    body = DeployFailureOut(error=error, stderr=stderr)
    return JSONResponse(
        status_code=status_code, content=body.model_dump(), headers=cors_headers()
    )


@router.options("/deploy")
def deploy_preflight() -> Response:
    headers = cors_headers()
    headers["Content-Type"] = "application/json"
    return Response(status_code=200, headers=headers)


@router.post("/deploy", response_model=None)
def trigger_deploy(
    request: Request,
    payload: Optional[DeployTrigger] = Body(default=None),
) -> JSONResponse:
    """
    Run the deployment pipeline and report its outcome.

    Status codes:
      - 200: pipeline succeeded
      - 409: another deployment is running (policy=reject)
      - 500: a step failed, timed out, or the executor crashed
    """
    meta = DeployRequestMeta(
        received_at=utc_iso(),
        client_host=request.client.host if request.client else None,
        trigger=payload.trigger if payload else None,
        timestamp=payload.timestamp if payload else None,
    )

    try:
        deployer = _deployer()
    except ConfigError as exc:
        LOGGER.error("deployment service misconfigured: %s", exc)
        return failure_response(500, f"invalid configuration: {exc}")

    try:
        result = deployer.trigger(meta)
    except DeploymentBusyError as exc:
        return failure_response(409, str(exc))

    if not result.success:
        return failure_response(
            500, result.error_message or "deployment failed", result.stderr
        )

    body = DeploySuccessOut(output=result.stdout)
    return JSONResponse(status_code=200, content=body.model_dump(), headers=cors_headers())
