"""
Shared fixtures.

The storage fixtures use an in-memory stand-in for Motor collections that understands the
subset of MongoDB the application uses (equality, `$or`, `$in`, `$nin`, `$exists`, `$set`,
`$unset`, unique indexes), so repository code runs unchanged against it.
"""

import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import MagicMock

from bson import ObjectId
import httpx
from prometheus_client import CollectorRegistry
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
import pytest

from content_hub.config import Settings
from content_hub.database.manager import DatabaseManager
from content_hub.models.auth_models import UserRecord
from content_hub.services.auth_service import AuthService, hash_password
from content_hub.services.content_repository import ContentRepository
from content_hub.services.image_generation_client import ImageGenerationClient
from content_hub.services.lifecycle import BriefLifecycleController
from content_hub.services.tenancy import TenantContext
from content_hub.services.workflow_client import WorkflowClient

TENANT_A = "64b7f0c2a1b2c3d4e5f60718"
TENANT_B = "64b7f0c2a1b2c3d4e5f60719"
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"

_MISSING = object()


def _get(doc: Dict[str, Any], field: str) -> Any:
    return doc.get(field, _MISSING)


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(key.startswith("$") for key in condition):
        for operator, operand in condition.items():
            if operator == "$in" and (value is _MISSING or value not in operand):
                return False
            if operator == "$nin" and value is not _MISSING and value in operand:
                return False
            if operator == "$exists" and (value is not _MISSING) != bool(operand):
                return False
            if operator == "$ne" and value == operand:
                return False
        return True
    return value is not _MISSING and value == condition


def matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for field, condition in query.items():
        if field == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
        elif field == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
        elif not _matches_condition(_get(doc, field), condition):
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    def sort(self, spec, direction=None):
        keys = [(spec, direction or 1)] if isinstance(spec, str) else list(spec)
        for field, order in reversed(keys):
            self._docs.sort(key=lambda d: (d.get(field) is None, d.get(field)), reverse=order < 0)
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._docs if length is None else self._docs[:length])


class FakeCollection:
    """In-memory collection with the Motor coroutine API used by the application."""

    def __init__(self, name: str, unique: Sequence[Sequence[str]] = ()):
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.unique = [tuple(fields) for fields in unique]

    def _check_unique(self, candidate: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None):
        for fields in self.unique:
            if any(field not in candidate for field in fields):
                continue
            key = tuple(candidate[field] for field in fields)
            for doc in self.docs:
                if doc is not ignore and all(field in doc for field in fields):
                    if tuple(doc[field] for field in fields) == key:
                        raise DuplicateKeyError(f"E11000 duplicate key on {self.name} {fields}")

    async def find_one(self, query=None, *args, **kwargs):
        for doc in self.docs:
            if matches(doc, query or {}):
                return copy.deepcopy(doc)
        return None

    def find(self, query=None, *args, **kwargs):
        return FakeCursor([doc for doc in self.docs if matches(doc, query or {})])

    async def insert_one(self, document, *args, **kwargs):
        document.setdefault("_id", ObjectId())
        self._check_unique(document)
        self.docs.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    def _apply(self, doc: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        updated = copy.deepcopy(doc)
        for field, value in update.get("$set", {}).items():
            updated[field] = copy.deepcopy(value)
        for field in update.get("$unset", {}):
            updated.pop(field, None)
        self._check_unique(updated, ignore=doc)
        return updated

    async def update_one(self, query, update, *args, **kwargs):
        for index, doc in enumerate(self.docs):
            if matches(doc, query):
                updated = self._apply(doc, update)
                self.docs[index] = updated
                return SimpleNamespace(matched_count=1, modified_count=int(updated != doc))
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def find_one_and_update(self, query, update, *args, return_document=ReturnDocument.BEFORE, **kwargs):
        for index, doc in enumerate(self.docs):
            if matches(doc, query):
                updated = self._apply(doc, update)
                self.docs[index] = updated
                return copy.deepcopy(updated if return_document == ReturnDocument.AFTER else doc)
        return None

    async def delete_one(self, query, *args, **kwargs):
        for index, doc in enumerate(self.docs):
            if matches(doc, query):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def count_documents(self, query=None, *args, **kwargs):
        return sum(1 for doc in self.docs if matches(doc, query or {}))

    async def create_index(self, *args, **kwargs):
        return "fake_index"


class FakeDatabase(dict):
    """Collections created on first access, with the application's unique indexes."""

    UNIQUE = {
        "users": [("email",)],
        "brand_guides": [("clientId", "domainId")],
        "content_briefs": [("clientId", "id")],
    }

    def __missing__(self, name):
        collection = FakeCollection(name, unique=self.UNIQUE.get(name, ()))
        self[name] = collection
        return collection


class FakeDatabaseManager(DatabaseManager):
    """`DatabaseManager` whose database lives in memory."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.database = FakeDatabase()
        self.healthy = True

    async def connect(self):
        return None

    async def disconnect(self):
        return None

    async def health_check(self) -> bool:
        return self.healthy


# --- Settings and storage ---


@pytest.fixture
def settings():
    return Settings(
        SECRET_KEY="unit-test-signing-key-5f2a9c",
        MONGODB_URL="mongodb://localhost:27017",
        MONGODB_DATABASE="content_hub_test",
        N8N_WEBHOOK_PUBLISH="https://workflows.test/webhook/publish",
        N8N_WEBHOOK_SCHEDULE="https://workflows.test/webhook/schedule",
        IMAGE_SERVICE_URL="https://images.test/v1",
        CORS_ORIGINS="http://localhost:3000",
        MAX_REQUEST_BODY_BYTES=64 * 1024,
        DEFAULT_LOG_LEVEL="WARNING",
    )


@pytest.fixture
def db_manager(settings):
    return FakeDatabaseManager(settings)


@pytest.fixture
def collections(db_manager):
    """Raw collections by role, for seeding and assertions."""
    s = db_manager.settings
    return SimpleNamespace(
        users=db_manager.database[s.MONGODB_COLLECTION_USERS],
        domains=db_manager.database[s.MONGODB_COLLECTION_DOMAINS],
        brand_guides=db_manager.database[s.MONGODB_COLLECTION_BRAND_GUIDES],
        briefs=db_manager.database[s.MONGODB_COLLECTION_CONTENT_BRIEFS],
    )


def make_brief_doc(client_id: str, brief_id: str, **overrides) -> Dict[str, Any]:
    created = overrides.pop("createdAt", datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
    doc = {
        "id": brief_id,
        "clientId": client_id,
        "domainId": "d1",
        "title": f"Brief {brief_id}",
        "brief": "Write about the launch",
        "content": "Initial draft",
        "status": "Draft",
        "contentType": "Blog",
        "createdAt": created,
        "updatedAt": created,
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def seeded(collections):
    """Tenant A owns domain d1 (with a brand guide) and d2; tenant B owns d9 and one brief."""
    collections.domains.docs.extend(
        [
            {"_id": ObjectId(), "id": "d1", "name": "Main Site", "clientId": TENANT_A},
            {"_id": ObjectId(), "id": "d2", "name": "Blog Site", "clientId": TENANT_A},
            {"_id": ObjectId(), "id": "d9", "name": "Other Tenant", "clientId": TENANT_B},
        ]
    )
    collections.brand_guides.docs.extend(
        [
            {
                "_id": ObjectId("65a000000000000000000001"),
                "domainId": "d1",
                "clientId": TENANT_A,
                "stylePrompt": "Flat pastel illustrations",
                "toneOfVoice": "Friendly",
            },
            {
                "_id": ObjectId("65a000000000000000000009"),
                "domainId": "d9",
                "clientId": TENANT_B,
                "stylePrompt": "Photorealistic",
                "toneOfVoice": "Formal",
            },
        ]
    )
    collections.briefs.docs.append(make_brief_doc(TENANT_B, "tenantbbrief"))
    return collections


# --- Services ---


@pytest.fixture
def tenant_a():
    return TenantContext(tenant_id=TENANT_A, user_id="user-a")


@pytest.fixture
def repository(db_manager, tenant_a):
    return ContentRepository(db_manager, tenant_a)


@pytest.fixture
def workflow():
    client = MagicMock(spec=WorkflowClient)
    client.new_brief_configured = False
    return client


@pytest.fixture
def images():
    return MagicMock(spec=ImageGenerationClient)


@pytest.fixture
def lifecycle(repository, workflow, images):
    return BriefLifecycleController(repository, workflow, images)


# --- HTTP ---


@pytest.fixture
def app(settings, db_manager, workflow, images):
    from content_hub.main import create_app

    return create_app(
        settings,
        db_manager=db_manager,
        workflow_client=workflow,
        image_client=images,
        metrics_registry=CollectorRegistry(),
    )


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


@pytest.fixture
def auth_service(db_manager, settings):
    return AuthService(db_manager, settings)


@pytest.fixture
def auth_headers(auth_service):
    """Bearer header for a user of tenant A."""
    token = auth_service.create_access_token(UserRecord(id="user-a", email="a@example.com", client_id=TENANT_A))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def expired_headers(auth_service):
    token = auth_service.create_access_token(
        UserRecord(id="user-a", email="a@example.com", client_id=TENANT_A), expires_delta=timedelta(minutes=-5)
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_in_db(collections):
    collections.users.docs.append(
        {
            "_id": ObjectId("64b7f0c2a1b2c3d4e5f600aa"),
            "email": "editor@example.com",
            "hashed_password": hash_password("correct horse battery"),
            "role": "client",
            "clientId": TENANT_A,
        }
    )
    return collections.users.docs[-1]
