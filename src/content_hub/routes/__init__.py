"""API routers of the Content Hub."""

from content_hub.routes.auth.routes import router as auth_router
from content_hub.routes.content import router as content_router
from content_hub.routes.main import router as main_router

__all__ = ["auth_router", "content_router", "main_router"]
