import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.database.engine import get_engine
from app.modules.auth import routes as auth_routes
from app.modules.models import routes as models_routes
from app.modules.models.store import build_model_store
from app.modules.records.registry import ModelRegistry

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


def create_app(model_store=None, engine=None) -> FastAPI:
    """Build the application. Collaborators default to the ones configured in settings."""
    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        redirect_slashes=False,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.state.model_store = model_store if model_store is not None else build_model_store(settings)
    app.state.engine = engine if engine is not None else get_engine()
    app.state.registry = ModelRegistry(app, prefix=settings.api_prefix)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        if settings.is_production:
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Fixed routers come first; model routers are mounted behind them at runtime
    app.include_router(auth_routes.router, prefix=settings.api_prefix)
    app.include_router(models_routes.router, prefix=settings.api_prefix)

    @app.on_event("startup")
    async def startup_event():
        logger.info("Application startup")
        # Bring previously published models back without a re-publish
        try:
            count = app.state.registry.seed(app.state.model_store)
            logger.info(f"Registered CRUD routes for {count} stored model(s)")
        except Exception as e:
            logger.error(f"Failed to load stored models: {e}")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Application shutdown")

    @app.get("/")
    async def root():
        return {"message": f"Welcome to {settings.app_name}", "status": "healthy"}

    @app.get("/health")
    @limiter.exempt
    async def health():
        return {"status": "healthy"}

    @app.get("/ready")
    @limiter.exempt
    async def ready():
        """Readiness probe: lists models currently served."""
        return {"status": "ready", "models": app.state.registry.list_registered()}

    return app


app = create_app()
