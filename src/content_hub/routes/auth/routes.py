"""
# Authentication Routes

- `POST /auth/login` - exchange email and password for an access token and the user record
- `GET /auth/me` - identity carried by the current token

## Login Response

```json
{
  "success": true,
  "user": {"id": "...", "email": "editor@example.com", "role": "client", "clientId": "..."},
  "access_token": "<jwt>",
  "token_type": "bearer"
}
```

Missing fields answer 400; an unknown email and a wrong password both answer 401 with the same
message.
"""

from fastapi import APIRouter, Depends

from content_hub.managers.logging_manager import get_logger
from content_hub.models.auth_models import LoginRequest, LoginResponse
from content_hub.routes.auth.dependencies import get_auth_service, get_tenant_context
from content_hub.services.auth_service import AuthService
from content_hub.services.tenancy import TenantContext

logger = get_logger(prefix="[Auth Routes]")

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse, response_model_by_alias=True)
async def login(request: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Authenticate with email and password.

    Args:
        request (LoginRequest): Email and password.

    Returns:
        LoginResponse: The user record and a bearer access token.

    Raises:
        ValidationError (400): If email or password is missing.
        Unauthorized (401): If the credentials do not match a user.
    """
    user = await auth_service.authenticate(request.email, request.password)
    token = auth_service.create_access_token(user)
    return LoginResponse(user=user, access_token=token)


@router.get("/me")
async def me(tenant: TenantContext = Depends(get_tenant_context)):
    """Return the identity of the current session."""
    return {
        "success": True,
        "user": {"id": tenant.user_id, "role": tenant.role, "clientId": tenant.current_tenant_id()},
    }
