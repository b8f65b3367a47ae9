"""
Sahayak — FastAPI Application Entry Point
HTTP adapter around the conversation core. Speech, text generation and
delivery channels sit in front of this service and are not part of it.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sahayak.api.dependencies import build_services
from sahayak.config import get_settings
from sahayak.errors import (
    NotFoundError,
    ProfileExistsError,
    SahayakError,
    UpstreamUnavailableError,
    ValidationError,
)
from sahayak.utils.logger import logger
from sahayak.utils.rate_limiter import RateLimiter


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings = get_settings()
    logger.info(f"🚀 Sahayak starting in {settings.app_env} mode...")
    logger.info(f"⏱️ Session timeout: {settings.session_timeout_seconds:.0f}s, context turns: {settings.max_context_turns}")
    logger.info(f"🧭 Intent confidence threshold: {settings.intent_confidence_threshold:.2f}")
    logger.info(
        f"💰 Poverty income threshold: "
        f"{settings.poverty_income_threshold if settings.urgent_need_configured else '❌ not configured'}"
    )
    logger.info(f"🌱 Seed catalogue: {'ON' if settings.seed_catalogue_enabled else 'OFF'}")

    app.state.services = build_services(settings)

    yield

    logger.info("👋 Sahayak shutting down...")


app = FastAPI(
    title="Sahayak",
    description="Voice assistant core for jobs, government schemes and education programs.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Middleware Stack ---
app.add_middleware(RateLimiter, requests_per_minute=get_settings().rate_limit_per_minute)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error Handlers (core error taxonomy → HTTP) ---
def _error_response(status_code: int, exc: SahayakError, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": type(exc).__name__,
            "message": str(exc),
            "recovery": exc.recovery,
            **extra,
        },
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error_response(422, exc, **exc.to_dict())


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return _error_response(404, exc)


@app.exception_handler(ProfileExistsError)
async def profile_exists_handler(request: Request, exc: ProfileExistsError):
    return _error_response(409, exc)


@app.exception_handler(UpstreamUnavailableError)
async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailableError):
    logger.error(f"❌ {request.method} {request.url.path}: {exc}")
    return _error_response(503, exc, collaborator=exc.collaborator)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "Something went wrong. Please try again later.",
            "path": str(request.url.path),
        },
    )


# --- Health Check ---
@app.get("/", tags=["Health"])
async def root():
    return {
        "status": "healthy",
        "service": "Sahayak",
        "version": "1.0.0",
    }


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    settings = get_settings()
    services = request.app.state.services
    return {
        "status": "healthy",
        "environment": settings.app_env,
        "active_sessions": len(services.sessions),
        "services": {
            "opportunity_store": services.opportunities.is_available(),
            "poverty_threshold_configured": settings.urgent_need_configured,
            "seed_catalogue": settings.seed_catalogue_enabled,
        },
    }


# --- Register Routers ---
from sahayak.api import conversation, profiles

app.include_router(conversation.router, prefix="/api/v1/sessions", tags=["Conversation"])
app.include_router(profiles.router, prefix="/api/v1/profiles", tags=["Profiles"])


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "sahayak.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
    )
