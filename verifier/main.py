from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from verifier.api.search_api import SearchController
from verifier.config import Settings, load_settings
from verifier.errors import VerifierError
from verifier.logging_config import get_logger, setup_logging
from verifier.web.controller import Controller

logger = get_logger(__name__)


def create_app(
    *controllers: Controller,
    settings: Optional[Settings] = None,
    configure_logging: bool = False,
) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Request Verifier", version="0.1.0")

    if configure_logging:
        # deferred to startup so importing this module leaves logging alone
        @app.on_event("startup")
        async def _setup_logging():
            setup_logging(settings)

    for controller in controllers:
        app.include_router(controller.router)

    @app.exception_handler(VerifierError)
    async def _verifier_error(request: Request, exc: VerifierError) -> JSONResponse:
        # configuration errors: the handler cannot recover from these
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": type(exc).__name__, "detail": str(exc)},
        )

    @app.get("/health")
    def health():
        return {
            "ok": True,
            "service": settings.service_name,
            "controllers": [c.name for c in controllers],
        }

    return app


app = create_app(SearchController(), configure_logging=True)
