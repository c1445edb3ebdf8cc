"""
# Authentication Service

Password login and signed access tokens.

- Passwords are stored as bcrypt hashes in the `hashed_password` field of the users collection.
- Access tokens are HS256 JWTs (python-jose) carrying `sub` (user id), `client_id` (tenant),
  `role` and `exp`. The tenant of every request is read from a verified token only.

## Usage

```python
auth = AuthService(db_manager, settings)
user = await auth.authenticate("editor@example.com", "s3cret")
token = auth.create_access_token(user)
tenant = auth.decode_access_token(token)
tenant.current_tenant_id()  # user.client_id
```
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from pymongo.errors import PyMongoError

from content_hub.config import Settings
from content_hub.database.manager import DatabaseManager
from content_hub.errors import StorageError, Unauthorized, ValidationError
from content_hub.managers.logging_manager import get_logger
from content_hub.models.auth_models import UserRecord
from content_hub.services.tenancy import TenantContext

logger = get_logger(prefix="[Auth Service]")

INVALID_CREDENTIALS = "Invalid email or password"


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """Check a password against a stored bcrypt hash; malformed hashes never match."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


class AuthService:
    """Credential checks against the users collection and JWT issuing/verification."""

    def __init__(self, db_manager: DatabaseManager, settings: Settings):
        self.db_manager = db_manager
        self.settings = settings

    async def authenticate(self, email: Optional[str], password: Optional[str]) -> UserRecord:
        """
        Verify credentials.

        Raises:
            `ValidationError`: If email or password is missing.
            `Unauthorized`: If no user has this email or the password does not match (same message).
            `StorageError`: If the users collection cannot be read.
        """
        if not email or not email.strip() or not password:
            raise ValidationError("Email and password required")

        normalized = email.strip().lower()
        try:
            users = self.db_manager.get_collection(self.settings.MONGODB_COLLECTION_USERS)
            user = await users.find_one({"email": normalized})
        except (PyMongoError, ConnectionError) as e:
            logger.error("User lookup failed: %s", e)
            raise StorageError() from e

        if user is None or not verify_password(password, user.get("hashed_password")):
            logger.warning("Failed login attempt for %s", normalized)
            raise Unauthorized(INVALID_CREDENTIALS)
        if not user.get("clientId"):
            logger.error("User %s has no clientId; refusing login", user["_id"])
            raise Unauthorized(INVALID_CREDENTIALS)

        logger.info("User %s logged in (tenant %s)", user["_id"], user["clientId"])
        return UserRecord(
            id=str(user["_id"]),
            email=user["email"],
            role=user.get("role") or "client",
            client_id=str(user["clientId"]),
        )

    def create_access_token(self, user: UserRecord, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES))
        claims = {"sub": user.id, "client_id": user.client_id, "role": user.role, "exp": expire}
        return jwt.encode(claims, self.settings.SECRET_KEY.get_secret_value(), algorithm=self.settings.ALGORITHM)

    def decode_access_token(self, token: str) -> TenantContext:
        """
        Verify a token and build the request's tenant context from it.

        Raises:
            `Unauthorized`: If the token is expired, tampered with, or lacks `sub`/`client_id`.
        """
        try:
            payload = jwt.decode(token, self.settings.SECRET_KEY.get_secret_value(), algorithms=[self.settings.ALGORITHM])
        except ExpiredSignatureError as e:
            logger.info("Rejected expired access token")
            raise Unauthorized("Session expired") from e
        except JWTError as e:
            logger.warning("Rejected invalid access token: %s", e)
            raise Unauthorized() from e

        user_id = payload.get("sub")
        client_id = payload.get("client_id")
        if not user_id or not client_id:
            raise Unauthorized()
        return TenantContext(tenant_id=str(client_id), user_id=str(user_id), role=payload.get("role") or "client")
