from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import router as api_router
from api.routes.deploy import failure_response
from services.deployment.config import load_server_config
from services.pipeline.config import load_pipeline_config

LOGGER = logging.getLogger(__name__)


async def _http_error(request: Request, exc: StarletteHTTPException) -> Response:
    # Unknown paths and unsupported methods are both plain "Not Found".
    if exc.status_code in {404, 405}:
        return PlainTextResponse("Not Found", status_code=404)
    return failure_response(exc.status_code, str(exc.detail))


async def _validation_error(request: Request, exc: RequestValidationError) -> Response:
    LOGGER.warning("malformed deploy request from %s: %s", request.client, exc.errors())
    return failure_response(400, "malformed request body")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Deploy Webhook",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.include_router(api_router)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)

    return app


app = create_app()


def serve() -> None:
    import uvicorn

    cfg = load_server_config()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Fail at startup, not on the first trigger.
    pipeline = load_pipeline_config()
    LOGGER.info(
        "deployment webhook listening on %s:%d (%d steps in %s)",
        cfg.host,
        cfg.port,
        len(pipeline.steps),
        pipeline.project_path,
    )
    if not cfg.ssl_certfile:
        LOGGER.warning("TLS is not configured; serving plain HTTP")

    uvicorn.run(
        app,
        host=cfg.host,
        port=cfg.port,
        ssl_certfile=cfg.ssl_certfile,
        ssl_keyfile=cfg.ssl_keyfile,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    serve()
