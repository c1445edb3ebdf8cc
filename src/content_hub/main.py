"""
# Content Hub Application Factory

`create_app()` is the composition root of the backend. It builds every long-lived object once
and hands it to request handlers through `app.state` and FastAPI dependencies; nothing is held
in module-level globals.

## Architecture Overview

```
create_app(settings)
 ├── DatabaseManager        (Motor pool, connected in lifespan)
 ├── WorkflowClient         (httpx pool, n8n webhooks)
 ├── ImageGenerationClient  (httpx pool, image service)
 ├── middleware:  CORS → request logging → body size limit
 ├── exception handlers:   ContentHubError / validation / HTTP / unexpected
 ├── routers:     /auth, /health, content endpoints
 └── /metrics     (prometheus-fastapi-instrumentator)
```

## Lifespan

**Startup:**
1.  **Database**: connects to MongoDB (with retries) and creates/verifies indexes.

**Shutdown:**
1.  **Collaborators**: closes both HTTP client pools.
2.  **Database**: disconnects from MongoDB.

## Error Responses

Every failure is rendered as `{"success": false, "error": "<message>"}`:

| Source | Status |
|---|---|
| `ContentHubError` subclasses | their `status_code` (400/401/404/409/502/503) |
| request validation | 400 |
| unknown route / method | 404 / 405 |
| anything else | 500, logged with traceback |

## Running

```bash
uvicorn content_hub.main:create_app --factory --host 0.0.0.0 --port 5000
# or
content-hub
```
"""

from contextlib import asynccontextmanager
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import REGISTRY, CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
import uvicorn

from content_hub import __version__
from content_hub.config import Settings, get_settings
from content_hub.database.manager import DatabaseManager
from content_hub.errors import ContentHubError
from content_hub.managers.logging_manager import configure_logging, get_logger
from content_hub.middleware.request_middleware import BodySizeLimitMiddleware, RequestLoggingMiddleware
from content_hub.routes import auth_router, content_router, main_router
from content_hub.services.image_generation_client import ImageGenerationClient
from content_hub.services.workflow_client import WorkflowClient

logger = get_logger(prefix="[Startup]")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Connect the database on startup and release every pool on shutdown.

    Raises:
        `ServerSelectionTimeoutError` / `ConnectionFailure`: If MongoDB cannot be reached; the
            application does not start without its database.
    """
    startup_start_time = time.time()
    db_manager: DatabaseManager = app.state.db_manager

    logger.info("Initiating database connection...")
    await db_manager.connect()
    logger.info("Creating/verifying database indexes...")
    await db_manager.create_indexes()
    logger.info("Content Hub ready in %.3fs", time.time() - startup_start_time)

    try:
        yield
    finally:
        logger.info("Shutting down Content Hub...")
        await app.state.workflow_client.close()
        await app.state.image_client.close()
        await db_manager.disconnect()
        logger.info("Shutdown complete")


def _error_response(status_code: int, message: str, retryable: bool = False) -> JSONResponse:
    content = {"success": False, "error": message}
    if retryable:
        content["retryable"] = True
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error in the API's `{success, error}` shape."""

    @app.exception_handler(ContentHubError)
    async def content_hub_error_handler(request: Request, exc: ContentHubError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message, exc.retryable)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        else:
            message = "Invalid request"
        return _error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return _error_response(500, "Server error")


def create_app(
    settings: Optional[Settings] = None,
    db_manager: Optional[DatabaseManager] = None,
    workflow_client: Optional[WorkflowClient] = None,
    image_client: Optional[ImageGenerationClient] = None,
    metrics_registry: Optional[CollectorRegistry] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings (`Optional[Settings]`): Configuration; `get_settings()` when omitted.
        db_manager (`Optional[DatabaseManager]`): Injected storage (tests pass a fake).
        workflow_client (`Optional[WorkflowClient]`): Injected workflow client.
        image_client (`Optional[ImageGenerationClient]`): Injected image client.
        metrics_registry (`Optional[CollectorRegistry]`): Prometheus registry, the process-wide
            default when omitted (tests pass a fresh one per app).

    Returns:
        `FastAPI`: The configured application.
    """
    settings = settings or get_settings()
    configure_logging(settings.DEFAULT_LOG_LEVEL)

    app = FastAPI(
        title="Content Hub API",
        description="Multi-tenant content operations: domains, brand guides and content briefs.",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.db_manager = db_manager or DatabaseManager(settings)
    app.state.workflow_client = workflow_client or WorkflowClient(settings)
    app.state.image_client = image_client or ImageGenerationClient(settings)

    if not settings.workflow_webhooks_configured:
        logger.warning("Publish/schedule webhooks are not configured; those transitions will fail")

    register_exception_handlers(app)

    # Last added runs first: CORS wraps logging, which wraps the body limit.
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.MAX_REQUEST_BODY_BYTES)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )
    logger.info("Configured CORS with origins: %s", settings.cors_origins_list)

    routers_config = [
        ("auth", auth_router, "Authentication endpoints"),
        ("main", main_router, "Health checks"),
        ("content", content_router, "Domains, brand guides and content briefs"),
    ]
    for router_name, router, description in routers_config:
        app.include_router(router)
        logger.debug("Included %s router: %s", router_name, description)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        # The in-progress gauge always lands in the default registry, so only the default app gets it.
        should_instrument_requests_inprogress=metrics_registry is None,
        registry=metrics_registry or REGISTRY,
    ).instrument(app).expose(app, include_in_schema=False, endpoint="/metrics")

    return app


def run():
    """Console entry point: serve the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "content_hub.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.DEFAULT_LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
