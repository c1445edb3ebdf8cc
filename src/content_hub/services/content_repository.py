"""
# Content Repository

The only component that reads or writes domains, brand guides and content briefs.

## Tenant Scoping

A repository is built per request from the verified `TenantContext`. Every operation takes the
tenant id it is asked to act for, checks it against the session through the tenancy guard
**before** touching storage, and then only uses `TenantAwareCollection`s scoped to that tenant.
A record owned by another tenant is therefore never found, and the caller gets the same
`NotFound` it would get for a record that does not exist.

## Identifiers

Briefs carry an application-minted `id`: a 12-character lowercase alphanumeric token generated
with `secrets` at creation and never changed afterwards. Records written before this scheme only
have a storage `_id`; they are exposed under `str(_id)` and can still be addressed by it.

## Error Handling

Driver errors (`PyMongoError`) and a missing connection are converted into `StorageError` by
`@wraps_storage_errors`; raw driver exceptions never leave this module.

## Usage

```python
repo = ContentRepository(db_manager, tenant)
brief = await repo.create_brief(tenant.current_tenant_id(), "d1", "Launch Post", "Announce the launch")
await repo.update_brief(tenant.current_tenant_id(), brief.id, {"title": "Launch Post (v2)"})
```
"""

import functools
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Dict, List, NamedTuple, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from content_hub.database.manager import DatabaseManager
from content_hub.database.tenant_collection import TenantAwareCollection
from content_hub.errors import Locked, NotFound, StorageError, ValidationError
from content_hub.managers.logging_manager import get_logger
from content_hub.models.content_models import (
    BrandGuide,
    BriefStatus,
    ClientData,
    ContentBrief,
    ContentType,
    Domain,
    ImageAttachment,
    LOCKED_STATUSES,
)
from content_hub.services import domain_inference
from content_hub.services.image_attachments import (
    HERO_IMAGE,
    STYLE_IMAGE,
    build_attachment,
    decode_payload,
    from_storage,
    legacy_fields,
    storage_fields,
    to_storage,
)
from content_hub.services.lifecycle import LOCKED_FIELDS, check_edit
from content_hub.services.tenancy import TenantContext, require_tenant

logger = get_logger(prefix="[Content Repository]")

BRIEF_ID_LENGTH = 12
BRIEF_ID_ALPHABET = string.ascii_lowercase + string.digits
MAX_ID_ATTEMPTS = 5

UPDATABLE_BRIEF_FIELDS = {"title": "title", "brief": "brief", "content": "content", "content_type": "contentType"}
UPDATABLE_GUIDE_FIELDS = {"style_prompt": "stylePrompt", "tone_of_voice": "toneOfVoice", "style_image_url": "styleImageUrl"}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class NewBrief(NamedTuple):
    """A validated brief that has not been stored yet."""

    id: str
    domain_id: str
    title: str
    brief: str


def new_brief_id() -> str:
    """Mint a fresh brief id."""
    return "".join(secrets.choice(BRIEF_ID_ALPHABET) for _ in range(BRIEF_ID_LENGTH))


def id_filter(record_id: str) -> Dict[str, Any]:
    """Match a record by its application id, or by storage `_id` for records that predate it."""
    if ObjectId.is_valid(record_id):
        return {"$or": [{"id": record_id}, {"_id": ObjectId(record_id)}]}
    return {"id": record_id}


def exposed_id(doc: Dict[str, Any]) -> str:
    return doc.get("id") or str(doc["_id"])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_enum(enum_cls, value: Any, default):
    if isinstance(value, str):
        for member in enum_cls:
            if member.value.lower() == value.strip().lower():
                return member
    return default


def domain_from_doc(doc: Dict[str, Any]) -> Domain:
    domain_id = exposed_id(doc)
    return Domain(id=domain_id, name=doc.get("name") or domain_id, client_id=doc.get("clientId"))


def brand_guide_from_doc(doc: Dict[str, Any]) -> BrandGuide:
    stored = from_storage(doc, STYLE_IMAGE)
    return BrandGuide(
        id=exposed_id(doc),
        domain_id=doc.get("domainId") or "",
        client_id=doc["clientId"],
        style_prompt=doc.get("stylePrompt") or "",
        tone_of_voice=doc.get("toneOfVoice") or "",
        style_image=stored.attachment,
        style_image_source_url=stored.source_url,
    )


def brief_from_doc(doc: Dict[str, Any]) -> ContentBrief:
    stored = from_storage(doc, HERO_IMAGE)
    created_at = doc.get("createdAt")
    if not created_at:
        created_at = doc["_id"].generation_time if isinstance(doc.get("_id"), ObjectId) else _EPOCH
    return ContentBrief(
        id=exposed_id(doc),
        domain_id=doc.get("domainId") or None,
        client_id=doc["clientId"],
        title=doc.get("title") or "",
        brief=doc.get("brief") or "",
        content=doc.get("content") or "",
        status=_coerce_enum(BriefStatus, doc.get("status"), BriefStatus.DRAFT),
        content_type=_coerce_enum(ContentType, doc.get("contentType"), ContentType.BLOG),
        scheduled_at=doc.get("scheduledAt") or None,
        hero_image=stored.attachment,
        hero_image_source_url=stored.source_url,
        created_at=created_at,
        updated_at=doc.get("updatedAt"),
    )


def sort_briefs(briefs: List[ContentBrief]) -> List[ContentBrief]:
    """Newest first; equal timestamps are ordered by id so repeated reads agree."""
    return sorted(briefs, key=lambda b: (b.created_at, b.id), reverse=True)


def wraps_storage_errors(func):
    """Convert driver and connection errors raised by a repository coroutine into `StorageError`."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (PyMongoError, ConnectionError) as e:
            logger.error("Storage failure in %s: %s", func.__name__, e)
            raise StorageError() from e

    return wrapper


class ContentRepository:
    """
    Tenant-scoped persistence for domains, brand guides and content briefs.

    Attributes:
        db_manager (`DatabaseManager`): Connection owner, injected by the application factory.
        tenant (`TenantContext`): Verified identity of the current request.
    """

    def __init__(self, db_manager: DatabaseManager, tenant: TenantContext):
        self.db_manager = db_manager
        self.tenant = tenant
        settings = db_manager.settings
        self.domains_collection = settings.MONGODB_COLLECTION_DOMAINS
        self.brand_guides_collection = settings.MONGODB_COLLECTION_BRAND_GUIDES
        self.briefs_collection = settings.MONGODB_COLLECTION_CONTENT_BRIEFS

    def _scoped(self, client_id: str, collection_name: str) -> TenantAwareCollection:
        require_tenant(client_id, self.tenant.current_tenant_id())
        return self.db_manager.get_tenant_collection(collection_name, client_id)

    # --- Domains and brand guides ---

    @wraps_storage_errors
    async def list_provisioned_domains(self, client_id: str) -> List[Domain]:
        """Domains created by provisioning, in insertion order."""
        docs = await self._scoped(client_id, self.domains_collection).to_list(sort=[("_id", 1)])
        return [domain_from_doc(doc) for doc in docs]

    @wraps_storage_errors
    async def list_domains(self, client_id: str) -> List[Domain]:
        """
        Domains of a tenant.

        Falls back to pseudo-domains derived from brand guides and briefs when none are
        provisioned, so older tenants still get a usable domain list.
        """
        domains = await self.list_provisioned_domains(client_id)
        if domains:
            return domains
        return domain_inference.synthesize_domains(
            domains, await self.list_brand_guides(client_id), await self.list_briefs(client_id)
        )

    @wraps_storage_errors
    async def list_brand_guides(self, client_id: str) -> List[BrandGuide]:
        docs = await self._scoped(client_id, self.brand_guides_collection).to_list(sort=[("_id", 1)])
        return [brand_guide_from_doc(doc) for doc in docs]

    @wraps_storage_errors
    async def get_brand_guide_for_domain(self, client_id: str, domain_id: str) -> BrandGuide:
        """
        Raises:
            `NotFound`: If the tenant has no brand guide for `domain_id`.
        """
        doc = await self._scoped(client_id, self.brand_guides_collection).find_one({"domainId": domain_id})
        if doc is None:
            raise NotFound()
        return brand_guide_from_doc(doc)

    @wraps_storage_errors
    async def find_brand_guide_for_domain(self, client_id: str, domain_id: Optional[str]) -> Optional[BrandGuide]:
        """Like `get_brand_guide_for_domain()` but returns `None` when there is none."""
        if not domain_id:
            return None
        doc = await self._scoped(client_id, self.brand_guides_collection).find_one({"domainId": domain_id})
        return brand_guide_from_doc(doc) if doc else None

    @wraps_storage_errors
    async def save_brand_guide_image(
        self, client_id: str, brand_guide_id: str, image_bytes: bytes, mime_type: Optional[str] = None
    ) -> BrandGuide:
        """
        Attach or replace a brand guide's style reference image.

        Raises:
            `ValidationError`: If `image_bytes` is empty or `mime_type` is not an image type.
            `NotFound`: If the brand guide does not exist in this tenant.
        """
        attachment = build_attachment(image_bytes, mime_type)
        doc = await self._scoped(client_id, self.brand_guides_collection).find_one_and_update(
            id_filter(brand_guide_id),
            {"$set": to_storage(attachment, STYLE_IMAGE), "$unset": legacy_fields(STYLE_IMAGE)},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFound()
        logger.info(
            "Stored style image for brand guide %s (%d bytes, %s)", brand_guide_id, len(attachment.data), attachment.mime_type
        )
        return brand_guide_from_doc(doc)

    @wraps_storage_errors
    async def update_brand_guide(self, client_id: str, domain_id: str, fields: Dict[str, Any]) -> BrandGuide:
        """
        Partially update a domain's brand guide.

        `style_image_url` may be an external URL (stored as a reference, replacing any owned
        image) or a data URI (decoded and stored as an owned image). An empty value clears the
        style image.

        Raises:
            `ValidationError`: For unknown fields or an undecodable data URI.
            `NotFound`: If the tenant has no brand guide for `domain_id`.
        """
        unknown = set(fields) - set(UPDATABLE_GUIDE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        to_set: Dict[str, Any] = {}
        to_unset: Dict[str, str] = {}
        for name, value in fields.items():
            if name != "style_image_url":
                to_set[UPDATABLE_GUIDE_FIELDS[name]] = value or ""
                continue
            if value and value.startswith("data:"):
                to_set.update(to_storage(decode_payload(value), STYLE_IMAGE))
                to_unset.update(legacy_fields(STYLE_IMAGE))
            elif value:
                to_set["styleImageUrl"] = value
                to_unset.update(storage_fields(STYLE_IMAGE))
            else:
                to_unset.update(legacy_fields(STYLE_IMAGE))
                to_unset.update(storage_fields(STYLE_IMAGE))

        collection = self._scoped(client_id, self.brand_guides_collection)
        if not to_set and not to_unset:
            return await self.get_brand_guide_for_domain(client_id, domain_id)

        update: Dict[str, Any] = {}
        if to_set:
            update["$set"] = to_set
        if to_unset:
            update["$unset"] = to_unset
        doc = await collection.find_one_and_update({"domainId": domain_id}, update, return_document=ReturnDocument.AFTER)
        if doc is None:
            raise NotFound()
        logger.info("Updated brand guide for domain %s: %s", domain_id, sorted(fields))
        return brand_guide_from_doc(doc)

    # --- Briefs ---

    @wraps_storage_errors
    async def list_briefs(self, client_id: str, domain_id: Optional[str] = None) -> List[ContentBrief]:
        """Briefs of a tenant, newest first, optionally restricted to one stored `domainId`."""
        query = {"domainId": domain_id} if domain_id else {}
        docs = await self._scoped(client_id, self.briefs_collection).to_list(query)
        return sort_briefs([brief_from_doc(doc) for doc in docs])

    @wraps_storage_errors
    async def get_brief(self, client_id: str, brief_id: str) -> ContentBrief:
        """
        Raises:
            `NotFound`: If the brief does not exist in this tenant.
        """
        doc = await self._scoped(client_id, self.briefs_collection).find_one(id_filter(brief_id))
        if doc is None:
            raise NotFound()
        return brief_from_doc(doc)

    @wraps_storage_errors
    async def has_domain(self, client_id: str, domain_id: str) -> bool:
        """
        Whether `domain_id` is one of the tenant's domains.

        Matches exactly the ids `list_domains` returns: the provisioned domains, or, when there are
        none, every domain id a brand guide or a brief refers to.
        """
        domains = self._scoped(client_id, self.domains_collection)
        if await domains.count_documents({}) > 0:
            return await domains.find_one(id_filter(domain_id)) is not None
        for collection_name in (self.brand_guides_collection, self.briefs_collection):
            if await self._scoped(client_id, collection_name).find_one({"domainId": domain_id}) is not None:
                return True
        return False

    @wraps_storage_errors
    async def prepare_brief(self, client_id: str, domain_id: str, title: str, brief_text: str) -> NewBrief:
        """
        Validate the input of a new brief and mint its id, without storing anything.

        Raises:
            `ValidationError`: If title or brief is empty or the domain is not the tenant's.
        """
        title = (title or "").strip()
        brief_text = (brief_text or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if not brief_text:
            raise ValidationError("Brief is required")
        if not domain_id:
            raise ValidationError("Domain is required")
        if not await self.has_domain(client_id, domain_id):
            raise ValidationError("Unknown domain")
        return NewBrief(id=new_brief_id(), domain_id=domain_id, title=title, brief=brief_text)

    @wraps_storage_errors
    async def insert_brief(self, client_id: str, new_brief: NewBrief, content: str = "") -> ContentBrief:
        """
        Store a prepared brief as a `Draft` of type `Blog`.

        The prepared id is kept unless it collides with a stored one, in which case a fresh id is
        minted (up to `MAX_ID_ATTEMPTS` times).
        """
        collection = self._scoped(client_id, self.briefs_collection)
        now = _utcnow()
        candidate = new_brief.id
        for attempt in range(MAX_ID_ATTEMPTS):
            doc = {
                "id": candidate,
                "domainId": new_brief.domain_id,
                "title": new_brief.title,
                "brief": new_brief.brief,
                "content": content or "",
                "status": BriefStatus.DRAFT.value,
                "contentType": ContentType.BLOG.value,
                "createdAt": now,
                "updatedAt": now,
            }
            try:
                await collection.insert_one(doc)
                break
            except DuplicateKeyError:
                logger.warning("Brief id collision on %s (attempt %d), minting a new id", candidate, attempt + 1)
                candidate = new_brief_id()
        else:
            raise StorageError("Could not allocate a brief id")

        logger.info("Created brief %s in domain %s for tenant %s", candidate, new_brief.domain_id, client_id)
        return brief_from_doc(doc)

    async def create_brief(
        self, client_id: str, domain_id: str, title: str, brief_text: str, content: str = ""
    ) -> ContentBrief:
        """
        Create a `Draft` brief of type `Blog`.

        Args:
            client_id (`str`): Verified tenant id.
            domain_id (`str`): Owning domain; must belong to the tenant.
            title (`str`): Must not be empty.
            brief_text (`str`): Originating instructions; must not be empty.
            content (`str`): Initial body.

        Returns:
            `ContentBrief`: The stored brief.

        Raises:
            `ValidationError`: If title or brief is empty or the domain is not the tenant's.
        """
        new_brief = await self.prepare_brief(client_id, domain_id, title, brief_text)
        return await self.insert_brief(client_id, new_brief, content=content)

    @wraps_storage_errors
    async def update_brief(self, client_id: str, brief_id: str, fields: Dict[str, Any]) -> ContentBrief:
        """
        Partially update a brief's title, brief text, content or content type.

        Status and schedule only change through the lifecycle controller.

        Raises:
            `ValidationError`: For unknown fields or an empty title/brief.
            `NotFound`: If the brief does not exist in this tenant.
            `Locked`: If content or content type would change on a scheduled/published brief.
        """
        unknown = set(fields) - set(UPDATABLE_BRIEF_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        for name in ("title", "brief"):
            if name in fields and not (fields[name] or "").strip():
                raise ValidationError(f"{name.capitalize()} cannot be empty")

        existing = await self.get_brief(client_id, brief_id)
        check_edit(existing, fields)
        if not fields:
            return existing

        to_set = {
            UPDATABLE_BRIEF_FIELDS[name]: (value.value if isinstance(value, ContentType) else value)
            for name, value in fields.items()
        }
        to_set["updatedAt"] = _utcnow()
        query = id_filter(brief_id)
        if not existing.is_locked and any(name in fields for name in LOCKED_FIELDS):
            # Fails if the brief was scheduled or published after it was read.
            query = {**query, "status": {"$nin": sorted(status.value for status in LOCKED_STATUSES)}}
        doc = await self._scoped(client_id, self.briefs_collection).find_one_and_update(
            query, {"$set": to_set}, return_document=ReturnDocument.AFTER
        )
        if doc is None:
            if (await self.get_brief(client_id, brief_id)).is_locked:
                raise Locked()
            raise NotFound()
        logger.info("Updated brief %s: %s", brief_id, sorted(fields))
        return brief_from_doc(doc)

    @wraps_storage_errors
    async def delete_brief(self, client_id: str, brief_id: str) -> None:
        """
        Irrevocably delete a brief.

        Raises:
            `NotFound`: If the brief does not exist (or was already deleted).
        """
        result = await self._scoped(client_id, self.briefs_collection).delete_one(id_filter(brief_id))
        if result.deleted_count == 0:
            raise NotFound()
        logger.info("Deleted brief %s for tenant %s", brief_id, client_id)

    @wraps_storage_errors
    async def set_brief_status(
        self, client_id: str, brief_id: str, status: BriefStatus, scheduled_at: Optional[datetime] = None
    ) -> ContentBrief:
        """Commit a lifecycle transition. Called by `BriefLifecycleController` only."""
        to_set: Dict[str, Any] = {"status": status.value, "updatedAt": _utcnow()}
        if scheduled_at is not None:
            to_set["scheduledAt"] = scheduled_at
        doc = await self._scoped(client_id, self.briefs_collection).find_one_and_update(
            id_filter(brief_id), {"$set": to_set}, return_document=ReturnDocument.AFTER
        )
        if doc is None:
            raise NotFound()
        logger.info("Brief %s is now %s", brief_id, status.value)
        return brief_from_doc(doc)

    @wraps_storage_errors
    async def set_hero_image(self, client_id: str, brief_id: str, attachment: ImageAttachment) -> ContentBrief:
        """Store a hero image on a brief, regardless of its lifecycle state."""
        doc = await self._scoped(client_id, self.briefs_collection).find_one_and_update(
            id_filter(brief_id),
            {"$set": {**to_storage(attachment, HERO_IMAGE), "updatedAt": _utcnow()}, "$unset": legacy_fields(HERO_IMAGE)},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFound()
        logger.info("Stored hero image for brief %s (%d bytes)", brief_id, len(attachment.data))
        return brief_from_doc(doc)

    # --- Aggregate read ---

    @wraps_storage_errors
    async def load_client_data(self, client_id: str, domain_id: Optional[str] = None) -> ClientData:
        """
        Everything a tenant's dashboard shows: domains, brand guides and briefs.

        Briefs without a domain are repaired on the returned view (see `domain_inference`),
        domains are synthesized when none are provisioned, and `domain_id` narrows the briefs to
        one domain (`None` or `"all"` keeps every brief).
        """
        provisioned = await self.list_provisioned_domains(client_id)
        brand_guides = await self.list_brand_guides(client_id)
        briefs = await self.list_briefs(client_id)

        resolved = domain_inference.resolve_brief_domains(briefs, provisioned, brand_guides)
        domains = domain_inference.synthesize_domains(provisioned, brand_guides, briefs)
        return ClientData(
            domains=domains,
            brand_guides=brand_guides,
            briefs=domain_inference.filter_by_domain(resolved, domain_id),
        )
