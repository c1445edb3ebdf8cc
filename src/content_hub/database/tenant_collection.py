"""
# Multi-Tenant Collection Wrapper

This module provides the **core mechanism for tenant isolation** in the Content Hub. The
`TenantAwareCollection` wrapper is a proxy around a Motor collection that injects the caller's
tenant id (`clientId`) into every database operation.

## Architecture Overview

```
┌──────────────┐      ┌───────────────────────────────┐
│  Repository  │─────▶│     TenantAwareCollection     │
│              │      │     (client_id="c_123")       │
└──────────────┘      └──────────────┬────────────────┘
                                     │  + {"clientId": "c_123"}
                      ┌──────────────▼────────────────┐
                      │    AsyncIOMotorCollection     │
                      └───────────────────────────────┘
```

## Key Guarantees

- **Reads**: every filter is constrained to `clientId`.
- **Writes**: every inserted document is stamped with `clientId`.
- **Updates**: an update that tries to set or unset `clientId` is rejected before it reaches the
  driver, so a record can never be moved to another tenant.
- **Deletes**: only documents of the scoped tenant can be removed.

## Usage

```python
briefs = db_manager.get_tenant_collection("content_briefs", tenant_id="c_123")

brief = await briefs.find_one({"id": "k3j9x0c2m1qa"})
# Actual query: {"id": "k3j9x0c2m1qa", "clientId": "c_123"}

await briefs.insert_one({"id": "k3j9x0c2m1qa", "title": "Launch Post"})
# Actual doc: {"id": "k3j9x0c2m1qa", "title": "Launch Post", "clientId": "c_123"}
```

Administrative code that must see all tenants (index creation, authentication lookups) uses the raw
`db_manager.get_collection()` instead.
"""

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorCursor

from content_hub.managers.logging_manager import get_logger

logger = get_logger(prefix="[Tenant Collection]")

TENANT_FIELD = "clientId"

Filter = Optional[Dict[str, Any]]


class TenantAwareCollection:
    """
    Client-scoped view of one Motor collection.

    Only the operations the repository needs are exposed; anything else has to go through the
    raw collection explicitly.
    """

    def __init__(self, collection: AsyncIOMotorCollection, tenant_id: str, tenant_field: str = TENANT_FIELD):
        """
        Args:
            collection: The Motor collection holding every tenant's records.
            tenant_id: Verified tenant of the current request. Must not be empty.
            tenant_field: Document field carrying the tenant id.

        Raises:
            `ValueError`: If `tenant_id` is empty.
        """
        if not tenant_id:
            raise ValueError("TenantAwareCollection requires a non-empty tenant id")
        self._collection = collection
        self._tenant_id = tenant_id
        self._tenant_field = tenant_field

    def _scope(self, query: Filter) -> Dict[str, Any]:
        # Copy, and overwrite any tenant value the caller supplied.
        return {**(query or {}), self._tenant_field: self._tenant_id}

    def _guard(self, update: Dict[str, Any]) -> Dict[str, Any]:
        for operator, fields in update.items():
            if isinstance(fields, dict) and self._tenant_field in fields:
                logger.error("Blocked %s of %s on %s for %s", operator, self._tenant_field, self.name, self._tenant_id)
                raise ValueError(f"Updates may not modify '{self._tenant_field}' ({operator})")
        return update

    async def find_one(self, query: Filter = None, *args, **kwargs) -> Optional[Dict[str, Any]]:
        return await self._collection.find_one(self._scope(query), *args, **kwargs)

    def find(self, query: Filter = None, *args, **kwargs) -> AsyncIOMotorCursor:
        return self._collection.find(self._scope(query), *args, **kwargs)

    async def to_list(self, query: Filter = None, sort: Optional[List] = None) -> List[Dict[str, Any]]:
        """All matching records of the tenant, optionally sorted."""
        cursor = self.find(query)
        if sort:
            cursor = cursor.sort(sort)
        docs = await cursor.to_list(length=None)
        logger.debug("%s: %d records for %s", self.name, len(docs), self._tenant_id)
        return docs

    async def count_documents(self, query: Filter = None, *args, **kwargs) -> int:
        return await self._collection.count_documents(self._scope(query), *args, **kwargs)

    async def insert_one(self, document: Dict[str, Any], *args, **kwargs):
        """Insert `document` stamped with the tenant id (the dict is stamped in place)."""
        document[self._tenant_field] = self._tenant_id
        return await self._collection.insert_one(document, *args, **kwargs)

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any], *args, **kwargs):
        """
        Raises:
            `ValueError`: If `update` names the tenant field under any operator.
        """
        return await self._collection.update_one(self._scope(query), self._guard(update), *args, **kwargs)

    async def find_one_and_update(
        self, query: Dict[str, Any], update: Dict[str, Any], *args, **kwargs
    ) -> Optional[Dict[str, Any]]:
        """
        Raises:
            `ValueError`: If `update` names the tenant field under any operator.
        """
        return await self._collection.find_one_and_update(self._scope(query), self._guard(update), *args, **kwargs)

    async def delete_one(self, query: Dict[str, Any], *args, **kwargs):
        result = await self._collection.delete_one(self._scope(query), *args, **kwargs)
        if result.deleted_count:
            logger.info("Deleted one record from %s for %s", self.name, self._tenant_id)
        return result

    @property
    def name(self) -> str:
        return self._collection.name

    @property
    def tenant_id(self) -> str:
        return self._tenant_id
