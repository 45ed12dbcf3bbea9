from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from loguru import logger
from pymongo import MongoClient
from starlette.middleware.base import BaseHTTPMiddleware

from config import Settings, get_settings
from database import connect, ensure_indexes
from errors import catch_unhandled, register_error_handlers
from logs import configure_logging, request_logger
from routers import api_router

API_DESCRIPTION = (
    "Backend template with authentication, product catalog, example CRUD "
    "resources and generated API documentation."
)


# ---------------------- Middleware ----------------------
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if request.app.state.settings.is_production:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response


# ---------------------- App ----------------------
def create_app(settings: Optional[Settings] = None, client: Optional[MongoClient] = None) -> FastAPI:
    """Build the application.

    ``client`` lets callers (tests) supply their own MongoDB client; otherwise
    one is opened on startup and closed on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = client is None
        mongo = connect(settings) if owned else client
        app.state.mongo = mongo
        app.state.db = mongo[settings.mongodb_db]
        ensure_indexes(app.state.db)
        logger.info("Server running in {} mode on port {}", settings.environment, settings.port)
        try:
            yield
        finally:
            if owned:
                mongo.close()
                logger.info("MongoDB client closed")

    app = FastAPI(
        title="Express Backend API",
        version="1.0.0",
        description=API_DESCRIPTION,
        license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
        contact={"name": "API Support", "email": "support@example.com"},
        lifespan=lifespan,
        docs_url="/api-docs",
        redoc_url="/api-redoc",
        openapi_url="/api-docs/openapi.json",
    )
    app.state.settings = settings

    # first registered is innermost
    app.middleware("http")(catch_unhandled)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.middleware("http")(request_logger)

    register_error_handlers(app)
    app.include_router(api_router, prefix="/api")
    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port, log_config=None)
