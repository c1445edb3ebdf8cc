"""
# Database Package

Persistence layer built on **Motor** (async MongoDB driver).

- **`manager`**: `DatabaseManager`, owned by the application factory, handles the connection
  lifecycle, health checks and index creation.
- **`tenant_collection`**: `TenantAwareCollection`, the wrapper that scopes every query and write
  to one tenant (`clientId`).
"""

from content_hub.database.manager import DatabaseManager
from content_hub.database.tenant_collection import TenantAwareCollection

__all__ = ["DatabaseManager", "TenantAwareCollection"]
