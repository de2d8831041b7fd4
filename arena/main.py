"""
Tournament Arena API entry point
"""
import logging
import sys
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from arena.api.errors import STATUS_BY_KIND
from arena.api.v1 import api_router
from arena.core.config import settings
from arena.core.errors import ArenaError
from arena.core.rate_limit import limiter
from arena.database import init_db
from arena.services.scheduler_service import scheduler_service
from arena.utils.time_utils import to_utc_isoformat, utc_now

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and run the maintenance scheduler for the lifetime of the app"""
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT})")
    try:
        init_db()
        scheduler_service.start()
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise
    logger.info(f"Listening on {settings.API_HOST}:{settings.API_PORT}")

    yield

    logger.info("Stopping maintenance scheduler")
    scheduler_service.stop()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Tournament marketplace backend: lifecycle, prize pools and credit wallets",
    version=API_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ArenaError)
async def arena_error_handler(request: Request, exc: ArenaError):
    """Business errors raised outside the operations facade"""
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(exc.kind, 400),
        content={"success": False, "detail": exc.to_dict()}
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Log unexpected failures under a short id the client can report"""
    error_id = uuid.uuid4().hex[:8]
    logger.error(
        f"[{error_id}] {request.method} {request.url.path} failed: {type(exc).__name__}",
        exc_info=True
    )
    content = {"success": False, "error_id": error_id}
    if settings.DEBUG:
        content["detail"] = f"{type(exc).__name__}: {exc}"
    else:
        content["detail"] = "An internal server error occurred. Please try again later."
    return JSONResponse(status_code=500, content=content)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "tournament-arena-api",
        "version": API_VERSION,
        "timestamp": to_utc_isoformat(utc_now()),
        "scheduler": {
            "running": scheduler_service.scheduler.running,
            "jobs": len(scheduler_service.get_scheduled_jobs()),
            "aggressive_cleanup": scheduler_service.aggressive_cleanup_active,
        },
    }


app.include_router(api_router, prefix=settings.API_V1_PREFIX)


if __name__ == "__main__":
    uvicorn.run(
        "arena.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
