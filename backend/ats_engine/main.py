import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ats_engine.api.routes import analysis, ats, cvs
from ats_engine.core.config import settings
from ats_engine.core.errors import AppError
from ats_engine.core.logging_config import configure_logging
from ats_engine.services.ai_service import TextGenerator, generate_text
from ats_engine.services.analysis_manager import AnalysisManager
from ats_engine.services.store import Store

logger = logging.getLogger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(store: Store | None = None, generate: TextGenerator | None = None) -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title="ATS Analysis API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AppError, app_error_handler)

    app.state.store = store or Store()
    app.state.generate = generate or generate_text
    app.state.manager = AnalysisManager(app.state.store, app.state.generate)

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok"}

    app.include_router(cvs.router)
    app.include_router(ats.router)
    app.include_router(analysis.router)
    return app


app = create_app()
