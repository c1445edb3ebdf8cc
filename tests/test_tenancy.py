"""
Tests for the tenancy guard and the tenant-scoped collection wrapper.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from content_hub.database.tenant_collection import TenantAwareCollection
from content_hub.errors import Unauthorized
from content_hub.services.tenancy import TenantContext, authorize, require_tenant

from conftest import TENANT_A, TENANT_B, FakeCollection


@pytest.mark.parametrize(
    "claimed, actual, expected",
    [
        ("c1", "c1", True),
        ("c1", "c2", False),
        ("", "", False),
        (None, "c1", False),
        ("c1", None, False),
    ],
)
def test_authorize(claimed, actual, expected):
    assert authorize(claimed, actual) is expected


def test_require_tenant_denial_is_generic():
    """The denial message never says why access was refused."""
    with pytest.raises(Unauthorized) as exc_info:
        require_tenant("c1", "c2")
    assert exc_info.value.message == "Access denied"
    assert exc_info.value.status_code == 401


def test_tenant_context_requires_tenant():
    with pytest.raises(Unauthorized):
        TenantContext(tenant_id="", user_id="u1")


def test_tenant_context_require_checks_claim():
    tenant = TenantContext(tenant_id=TENANT_A, user_id="u1", role="admin")
    assert tenant.require(TENANT_A) == TENANT_A
    assert tenant.role == "admin"
    with pytest.raises(Unauthorized):
        tenant.require(TENANT_B)


def test_tenant_collection_requires_tenant():
    with pytest.raises(ValueError):
        TenantAwareCollection(MagicMock(), "")


@pytest.mark.asyncio
async def test_tenant_collection_scopes_reads_and_writes():
    """Reads are filtered to the tenant and inserts are stamped with it."""
    raw = FakeCollection("content_briefs")
    raw.docs.append({"id": "other", "clientId": TENANT_B, "title": "Not mine"})
    scoped = TenantAwareCollection(raw, TENANT_A)

    await scoped.insert_one({"id": "mine", "title": "Mine"})

    assert raw.docs[-1]["clientId"] == TENANT_A
    assert await scoped.find_one({"id": "other"}) is None
    assert [doc["id"] for doc in await scoped.to_list()] == ["mine"]
    assert await scoped.count_documents() == 1


@pytest.mark.asyncio
async def test_tenant_collection_overrides_caller_supplied_tenant():
    """A filter naming another tenant is rewritten to the scoped tenant."""
    raw = FakeCollection("content_briefs")
    raw.docs.append({"id": "other", "clientId": TENANT_B})
    scoped = TenantAwareCollection(raw, TENANT_A)

    assert await scoped.find_one({"id": "other", "clientId": TENANT_B}) is None
    result = await scoped.delete_one({"clientId": TENANT_B})
    assert result.deleted_count == 0
    assert len(raw.docs) == 1


@pytest.mark.asyncio
async def test_tenant_collection_rejects_tenant_changes():
    raw = MagicMock()
    raw.update_one = AsyncMock()
    raw.find_one_and_update = AsyncMock()
    scoped = TenantAwareCollection(raw, TENANT_A)

    with pytest.raises(ValueError):
        await scoped.update_one({"id": "x"}, {"$set": {"clientId": TENANT_B}})
    with pytest.raises(ValueError):
        await scoped.find_one_and_update({"id": "x"}, {"$unset": {"clientId": ""}})

    raw.update_one.assert_not_called()
    raw.find_one_and_update.assert_not_called()
