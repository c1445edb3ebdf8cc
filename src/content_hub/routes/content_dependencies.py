"""
Per-request construction of the content services.

The repository and lifecycle controller are cheap objects bound to the verified
`TenantContext` of one request; the connection pool and the HTTP clients they use are owned by
the application and live on `app.state`.
"""

import re

from fastapi import Depends, Request

from content_hub.database.manager import DatabaseManager
from content_hub.errors import ValidationError
from content_hub.routes.auth.dependencies import get_db_manager, get_tenant_context
from content_hub.services.content_repository import ContentRepository
from content_hub.services.lifecycle import BriefLifecycleController
from content_hub.services.tenancy import TenantContext

# Brief tokens, 24-hex storage ids and provisioned tenant/domain ids all fit this shape.
_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_identifier(value: str, label: str) -> str:
    """
    Reject malformed path identifiers before any lookup.

    Raises:
        `ValidationError`: `Invalid <label>` for empty or malformed values.
    """
    if not value or not _IDENTIFIER_PATTERN.match(value):
        raise ValidationError(f"Invalid {label}")
    return value


def get_repository(
    tenant: TenantContext = Depends(get_tenant_context), db_manager: DatabaseManager = Depends(get_db_manager)
) -> ContentRepository:
    return ContentRepository(db_manager, tenant)


def get_lifecycle(request: Request, repository: ContentRepository = Depends(get_repository)) -> BriefLifecycleController:
    state = request.app.state
    return BriefLifecycleController(repository, state.workflow_client, state.image_client)
