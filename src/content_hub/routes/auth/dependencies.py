"""
# Authentication Dependencies

FastAPI dependencies that turn a bearer token into the verified identity of the request.

## Key Dependencies

### `get_tenant_context`
The foundational dependency for every protected endpoint:
- Reads the `Authorization: Bearer <token>` header (`oauth2_scheme`)
- Verifies the JWT signature and expiry
- Builds a `TenantContext` whose `current_tenant_id()` is the token's `client_id`

The tenant id never comes from a header, path parameter or body field; those are only ever
*compared* against the session through the tenancy guard.

**Usage:**
```python
@router.get("/briefs")
async def list_briefs(tenant: TenantContext = Depends(get_tenant_context)):
    ...
```

## Module Attributes

Attributes:
    oauth2_scheme (OAuth2PasswordBearer): Token extractor; a missing token is reported as
        `Unauthorized` by `get_tenant_context` so the error body keeps the API's shape.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from content_hub.config import Settings
from content_hub.database.manager import DatabaseManager
from content_hub.errors import Unauthorized
from content_hub.managers.logging_manager import get_logger
from content_hub.services.auth_service import AuthService
from content_hub.services.tenancy import TenantContext

logger = get_logger(prefix="[Security Dependencies]")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db_manager


def get_auth_service(
    db_manager: DatabaseManager = Depends(get_db_manager), settings: Settings = Depends(get_settings_dep)
) -> AuthService:
    return AuthService(db_manager, settings)


async def get_tenant_context(
    token: Optional[str] = Depends(oauth2_scheme), auth_service: AuthService = Depends(get_auth_service)
) -> TenantContext:
    """
    Resolve the verified identity of the current request.

    Raises:
        `Unauthorized`: Missing, expired or invalid token.
    """
    if not token:
        logger.debug("Request without bearer token")
        raise Unauthorized()
    return auth_service.decode_access_token(token)
