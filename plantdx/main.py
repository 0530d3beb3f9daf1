import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from plantdx import __version__
from plantdx.api.routes.crops import router as crops_router
from plantdx.api.routes.diagnose import router as diagnose_router
from plantdx.core.config import Settings, get_settings
from plantdx.mcp_server import TOOL_NAME, build_mcp
from plantdx.services.crop_catalog import CropCatalog
from plantdx.services.llm.gemini_client import GeminiVisionClient
from plantdx.services.orchestrator import DiagnosisOrchestrator

logger = logging.getLogger(__name__)

SERVICE_NAME = "gap-plant-diagnosis-mcp"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    vision_client=None,
    catalog: Optional[CropCatalog] = None,
) -> FastAPI:
    settings = settings or get_settings()
    config = settings.service_config()

    vision_client = vision_client or GeminiVisionClient(settings.GEMINI_API_KEY, settings.GEMINI_MODEL_ID)
    catalog = catalog or CropCatalog(
        base_url=settings.CROP_CATALOG_URL or None,
        timeout_seconds=settings.CROP_CATALOG_TIMEOUT_SECONDS,
    )
    orchestrator = DiagnosisOrchestrator(
        config,
        catalog,
        vision_client,
        timeout_seconds=settings.UPSTREAM_TIMEOUT_SECONDS,
    )
    mcp_app = build_mcp(orchestrator, catalog).http_app(path="/mcp")

    async def load_catalog():
        await run_in_threadpool(catalog.refresh)
        logger.info(f"Crop catalog loaded: {catalog.snapshot.size} crops ({catalog.snapshot.source})")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # serve the fallback snapshot while the first refresh runs
        app.state.catalog_refresh = asyncio.create_task(load_catalog())
        logger.info(
            f"{SERVICE_NAME} ready: gemini={'configured' if vision_client.configured else 'NOT CONFIGURED'}, "
            f"mode={config.advisory_mode.value}, format={config.output_format.value}"
        )
        try:
            async with mcp_app.lifespan(app):
                yield
        finally:
            refresh_task = app.state.catalog_refresh
            if not refresh_task.done():
                refresh_task.cancel()
            with suppress(asyncio.CancelledError):
                await refresh_task

    app = FastAPI(
        title="GAP Plant Diagnosis",
        version=__version__,
        description="Plant disease diagnosis tool backed by a Gemini vision model",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.config = config
    app.state.catalog = catalog
    app.state.vision_client = vision_client
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        allow_credentials="*" not in settings.ALLOWED_ORIGINS,
    )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "Request failed", "detail": exc.detail}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = "; ".join([f"{e['loc'][-1] if e['loc'] else 'body'}: {e['msg']}" for e in errors])
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "Validation error", "detail": detail}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Log the traceback, return a generic error without internal details."""
        logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "detail": "An unexpected error occurred. Please contact support if the issue persists."
            }
        )

    @app.get("/health")
    def health():
        snapshot = catalog.snapshot
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "geminiConfigured": vision_client.configured,
            "advisoryMode": config.advisory_mode.value,
            "outputFormat": config.output_format.value,
            "supportedCrops": snapshot.size,
            "cropCatalogSource": snapshot.source,
            "cropCatalogLoaded": snapshot.loaded,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/")
    def info():
        snapshot = catalog.snapshot
        return {
            "service": "GAP Plant Diagnosis MCP Server",
            "version": __version__,
            "description": orchestrator.composer.describe_tool(),
            "mcp_endpoint": "/mcp",
            "health_endpoint": "/health",
            "tools": [
                {
                    "name": TOOL_NAME,
                    "description": orchestrator.composer.describe_tool(),
                    "parameters": {
                        "image": f"Base64 data URI (JPEG, PNG, WebP, max {config.max_image_size_mb:g}MB)",
                        "crop": f"Optional crop type ({snapshot.size} supported crops)",
                    },
                }
            ],
            "supported_crops": list(snapshot.crops),
            "powered_by": f"Google Gemini ({config.model_id})",
        }

    app.include_router(diagnose_router, prefix="/v1")
    app.include_router(crops_router, prefix="/v1")
    # MCP streamable-HTTP endpoint at /mcp; mounted last so the routes above win
    app.mount("/", mcp_app)

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
