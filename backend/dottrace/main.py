"""
Dot Trace - FastAPI Application

Backend entry point.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from .config import settings
from .api import game
from .middleware.security import limiter, add_security_headers
from .services.errors import (
    InvalidTransitionError,
    NoNextStageError,
    PatternGenerationError,
)
from .services.sessions import SessionStore

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# ============================================
# LIFESPAN
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events."""
    # Startup
    logger.info("Starting %s...", settings.APP_NAME)
    logger.info("Environment: %s, debug: %s", settings.ENVIRONMENT, settings.DEBUG)

    yield

    # Shutdown
    logger.info("Shutting down, dropping %d sessions", len(app.state.sessions))


# ============================================
# APP
# ============================================

app = FastAPI(
    title=settings.APP_NAME,
    description="Dot Trace API - single-stroke grid puzzle",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# Rate limiter state
app.state.limiter = limiter

# Live sessions (memory only)
app.state.sessions = SessionStore()


# ============================================
# MIDDLEWARE
# ============================================

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Security headers
app.middleware("http")(add_security_headers)


# ============================================
# ERROR HANDLERS
# ============================================

@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Rate limit errors."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests. Please try again later."}
    )


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(NoNextStageError)
async def no_next_stage_handler(request: Request, exc: NoNextStageError):
    return JSONResponse(status_code=409, content={"detail": str(exc), "final_stage": True})


@app.exception_handler(PatternGenerationError)
async def pattern_generation_handler(request: Request, exc: PatternGenerationError):
    """Generation failures are server bugs, never the client's fault."""
    logger.error("[Error] %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc) if settings.DEBUG else "Stage generation failed",
            "pattern_type": exc.pattern_type,
            "grid_size": exc.grid_size,
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global error handler."""
    # Production responses carry no error details
    if settings.DEBUG:
        detail = str(exc)
    else:
        detail = "Internal server error"
    logger.exception("[Error] %s", exc)

    return JSONResponse(
        status_code=500,
        content={"detail": detail}
    )


# ============================================
# ROUTES
# ============================================

# API prefix
api_prefix = settings.API_PREFIX

app.include_router(game.router, prefix=api_prefix)


# ============================================
# HEALTH CHECK
# ============================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "version": "1.0.0"
    }


@app.get(f"{api_prefix}/health")
async def api_health_check():
    """API health check."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "debug": settings.DEBUG,
        "sessions": app.state.sessions.stats(),
    }


# ============================================
# ROOT
# ============================================

@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/health",
    }


# ============================================
# RUN
# ============================================

if __name__ == "__main__":
    import uvicorn
    logger.info("Listening on http://localhost:8000")
    uvicorn.run(
        "dottrace.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
