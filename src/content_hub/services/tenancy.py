"""
# Tenancy Guard

Decides whether a caller may touch a tenant's data. The caller's tenant always comes from a
verified access token (see `content_hub.routes.auth.dependencies.get_tenant_context`), never from
a header, path or body field.

A denial carries the same generic message regardless of the reason, so a caller cannot learn
whether a resource exists under another tenant.
"""

from typing import Optional

from content_hub.errors import Unauthorized
from content_hub.managers.logging_manager import get_logger

logger = get_logger(prefix="[Tenancy]")


def authorize(claimed: Optional[str], actual: Optional[str]) -> bool:
    """Return `True` only when both tenant ids are present and identical."""
    return bool(claimed) and bool(actual) and claimed == actual


def require_tenant(claimed: Optional[str], actual: Optional[str]) -> None:
    """
    Raise `Unauthorized` unless `authorize(claimed, actual)` holds.

    Raises:
        `Unauthorized`: Always with the default, reason-free message.
    """
    if not authorize(claimed, actual):
        logger.warning("Tenant access denied (claimed=%s)", claimed or "<none>")
        raise Unauthorized()


class TenantContext:
    """
    Verified identity of the current request.

    Built once per request from a decoded access token; the tenant id cannot be changed after
    construction.
    """

    __slots__ = ("_tenant_id", "_user_id", "_role")

    def __init__(self, tenant_id: str, user_id: str, role: str = "client"):
        if not tenant_id:
            raise Unauthorized()
        self._tenant_id = tenant_id
        self._user_id = user_id
        self._role = role

    def current_tenant_id(self) -> str:
        return self._tenant_id

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def role(self) -> str:
        return self._role

    def require(self, claimed: Optional[str]) -> str:
        """Check a tenant id named by the caller (e.g. a path parameter) against the session."""
        require_tenant(claimed, self._tenant_id)
        return self._tenant_id

    def __repr__(self) -> str:
        return f"TenantContext(tenant_id={self._tenant_id!r}, user_id={self._user_id!r}, role={self._role!r})"
