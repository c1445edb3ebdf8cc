"""
# Database Manager

Owns the MongoDB client for the Content Hub. The manager is constructed by the application
factory (`content_hub.main.create_app`) and stored on `app.state`; request handlers reach it
through dependency injection, never through a module-level global.

## Lifecycle

1. **Instantiation** (app factory): `DatabaseManager(settings)` - no I/O.
2. **Connection** (lifespan startup): `connect()` creates the pooled client and pings the server.
3. **Operations** (runtime): `get_collection()` / `get_tenant_collection()`; Motor borrows
   connections from the shared pool.
4. **Disconnection** (lifespan shutdown): `disconnect()` closes all sockets.

## Usage

```python
manager = DatabaseManager(settings)
await manager.connect()

briefs = manager.get_tenant_collection(settings.MONGODB_COLLECTION_CONTENT_BRIEFS, tenant_id="c_123")
docs = await briefs.to_list(sort=[("createdAt", -1)])

await manager.disconnect()
```
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from content_hub.config import Settings
from content_hub.database.tenant_collection import TenantAwareCollection
from content_hub.managers.logging_manager import get_logger

db_logger = get_logger(prefix="[DATABASE]")
perf_logger = get_logger(prefix="[DB_PERFORMANCE]")
health_logger = get_logger(prefix="[DB_HEALTH]")

# (settings attribute naming the collection, keys, index options)
INDEXES: List[Tuple[str, Any, Dict[str, Any]]] = [
    ("MONGODB_COLLECTION_USERS", "email", {"unique": True, "sparse": True}),
    ("MONGODB_COLLECTION_DOMAINS", "clientId", {}),
    ("MONGODB_COLLECTION_BRAND_GUIDES", [("clientId", ASCENDING), ("domainId", ASCENDING)], {"unique": True}),
    ("MONGODB_COLLECTION_CONTENT_BRIEFS", [("clientId", ASCENDING), ("id", ASCENDING)], {"unique": True, "sparse": True}),
    ("MONGODB_COLLECTION_CONTENT_BRIEFS", [("clientId", ASCENDING), ("createdAt", DESCENDING)], {}),
    ("MONGODB_COLLECTION_CONTENT_BRIEFS", [("clientId", ASCENDING), ("domainId", ASCENDING)], {}),
]


class DatabaseManager:
    """
    Manages the MongoDB connection, collections and indexes.

    **Connection Pooling:**
    Motor keeps a pool (5-50 connections) shared by every collection obtained from this manager.
    The pool is safe to use from concurrent requests; single-document updates are atomic, and
    no operation of this application needs multi-document transactions.

    Attributes:
        settings (`Settings`): Configuration the manager was built with.
        client (`Optional[AsyncIOMotorClient]`): `None` until `connect()` succeeds.
        database (`Optional[AsyncIOMotorDatabase]`): `None` until `connect()` succeeds.
    """

    def __init__(self, settings: Settings, max_attempts: int = 3):
        self.settings = settings
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.max_attempts = max_attempts

    def _credentials(self) -> Dict[str, str]:
        """Driver credentials, passed apart from the URL so they need no escaping."""
        settings = self.settings
        if settings.MONGODB_USERNAME and settings.MONGODB_PASSWORD:
            return {"username": settings.MONGODB_USERNAME, "password": settings.MONGODB_PASSWORD.get_secret_value()}
        return {}

    def _new_client(self) -> AsyncIOMotorClient:
        return AsyncIOMotorClient(
            self.settings.MONGODB_URL,
            **self._credentials(),
            serverSelectionTimeoutMS=self.settings.MONGODB_SERVER_SELECTION_TIMEOUT,
            connectTimeoutMS=self.settings.MONGODB_CONNECTION_TIMEOUT,
            maxPoolSize=50,
            minPoolSize=5,
            tz_aware=True,
        )

    async def connect(self):
        """
        Establish the MongoDB connection with exponential backoff.

        Up to `max_attempts` attempts are made, sleeping 1s, 2s, 4s... in between. Calling
        `connect()` on an already connected manager is a no-op.

        Raises:
            `ServerSelectionTimeoutError` / `ConnectionFailure`: When every attempt fails.
        """
        if self.client is not None and self.database is not None:
            return

        start_time = time.time()
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.client = self._new_client()
                self.database = self.client[self.settings.MONGODB_DATABASE]
                await self.client.admin.command("ping")
            except (ServerSelectionTimeoutError, ConnectionFailure) as e:
                self.client = None
                self.database = None
                db_logger.warning("MongoDB not reachable (attempt %d/%d): %s", attempt, self.max_attempts, e)
                if attempt == self.max_attempts:
                    db_logger.error("Giving up on MongoDB after %.3fs", time.time() - start_time)
                    raise
                await asyncio.sleep(2 ** (attempt - 1))
            else:
                perf_logger.info("Connected to MongoDB in %.3fs (attempt %d)", time.time() - start_time, attempt)
                db_logger.info("Using database %s", self.settings.MONGODB_DATABASE)
                return

    async def disconnect(self):
        """Close the client and release every pooled connection. Safe to call when not connected."""
        if self.client is None:
            return
        self.client.close()
        self.client = None
        self.database = None
        db_logger.info("MongoDB connection closed")

    async def health_check(self) -> bool:
        """
        Ping the server.

        Returns:
            `bool`: `True` if the database answered, `False` otherwise (never raises).
        """
        if self.client is None:
            health_logger.warning("No MongoDB client; reporting unavailable")
            return False

        start_time = time.time()
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            health_logger.error("Ping failed after %.3fs: %s", time.time() - start_time, e)
            return False
        perf_logger.debug("Ping answered in %.3fs", time.time() - start_time)
        return True

    def get_collection(self, collection_name: str) -> AsyncIOMotorCollection:
        """
        Return a raw (unscoped) collection.

        Only administrative code should use this; tenant data goes through `get_tenant_collection()`.

        Raises:
            `ConnectionError`: If `connect()` has not been called.
        """
        if self.database is None:
            db_logger.error("Collection '%s' requested before connect()", collection_name)
            raise ConnectionError("Database not connected. Call connect() first.")
        return self.database[collection_name]

    def get_tenant_collection(self, collection_name: str, tenant_id: str) -> TenantAwareCollection:
        """
        Return a collection scoped to one tenant.

        There is no fallback to an unscoped collection: a missing tenant id is an error.

        Raises:
            `ConnectionError`: If the database is not connected.
            `ValueError`: If `tenant_id` is empty.
        """
        return TenantAwareCollection(self.get_collection(collection_name), tenant_id)

    async def create_indexes(self):
        """Create the indexes every content collection relies on (see `INDEXES`)."""
        start_time = time.time()
        for setting, keys, options in INDEXES:
            await self._ensure_index(self.get_collection(getattr(self.settings, setting)), keys, options)
        perf_logger.info("Ensured %d indexes in %.3fs", len(INDEXES), time.time() - start_time)

    async def _ensure_index(self, collection: AsyncIOMotorCollection, keys: Any, options: Dict[str, Any]):
        """Create an index, logging instead of failing when it cannot be built."""
        try:
            await collection.create_index(keys, **options)
        except PyMongoError as e:
            db_logger.warning("Could not ensure index %s on %s: %s", keys, collection.name, e)
