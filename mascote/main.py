"""
mascote API - Main Application Entry Point
Order intake for custom sports-team graphics with monthly quotas
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import structlog

from mascote.core.config import Settings, get_settings
from mascote.core.errors import InvalidRequest, MascoteError
from mascote.api import auth, orders
from mascote.services import build_services
from mascote.services.quota import Clock

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    """Build the application around one Settings object"""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.info("Starting mascote API")
        yield
        logger.info("Shutting down mascote API")

    app = FastAPI(
        title="mascote API",
        description="Order intake for custom sports-team graphics",
        version="1.0.0",
        lifespan=lifespan,
    )
    # Built eagerly so a broken data directory stops the process at startup
    app.state.services = build_services(settings, clock=clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MascoteError)
    async def mascote_error_handler(request: Request, exc: MascoteError):
        if exc.status_code >= 500:
            logger.error(f"{exc.kind}: {exc.message}", path=request.url.path)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        error = InvalidRequest(problems or None)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    app.include_router(auth.router, tags=["auth"])
    app.include_router(orders.router, prefix="/orders", tags=["orders"])

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {"ok": True, "msg": "mascote-api online"}

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "mascote-api"}

    return app


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "mascote.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=3000,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
