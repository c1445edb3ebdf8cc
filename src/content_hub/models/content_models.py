"""
# Content Models

Pydantic models for the three tenant-scoped entities of the Content Hub and the request/response
payloads that carry them.

## Domain Model Overview

- **Domain**: a publishing destination (website/brand) owned by a tenant. Provisioned out of band.
- **BrandGuide**: one style configuration per domain (tone of voice, image style prompt and an
  optional style reference image).
- **ContentBrief**: one piece of content moving through `Draft` → `Scheduled` → `Published`.

## Wire Format

Attributes are snake_case in Python and camelCase on the wire (`domain_id` ↔ `domainId`), which
keeps the JSON contract of the existing frontend. Binary image payloads are never serialized;
responses carry a derived data URI (`styleImageUrl`, `heroImageUrl`) instead.

## Usage

```python
brief = ContentBrief(
    id="k3j9x0c2m1qa",
    domain_id="d1",
    client_id="c_123",
    title="Launch Post",
    brief="Announce the launch",
    created_at=datetime.now(timezone.utc),
)
brief.model_dump(by_alias=True)["status"]  # "Draft"
```
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class BriefStatus(str, Enum):
    """Lifecycle states of a content brief."""

    DRAFT = "Draft"
    SCHEDULED = "Scheduled"
    PUBLISHED = "Published"


class ContentType(str, Enum):
    """Kinds of content a brief can become."""

    BLOG = "Blog"
    NEWS = "News"
    PAGE = "Page"


LOCKED_STATUSES = frozenset({BriefStatus.SCHEDULED, BriefStatus.PUBLISHED})


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (the driver and legacy records both produce them)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def restore_image_fields(data: Any, url_key: str, image_field: str, source_field: str) -> Any:
    """
    Rebuild the excluded image fields of a model from its dumped display URL.

    FastAPI dumps a returned model and validates the dict against `response_model`; without this
    the derived `heroImageUrl`/`styleImageUrl` would come back empty.
    """
    if not isinstance(data, dict):
        return data
    url = data.get(url_key)
    if not isinstance(url, str) or not url:
        return data
    image_alias, source_alias = to_camel(image_field), to_camel(source_field)
    if any(data.get(key) is not None for key in (image_field, image_alias, source_field, source_alias)):
        return data

    restored = dict(data)
    if url.startswith("data:"):
        from content_hub.services.image_attachments import build_attachment, parse_data_uri

        payload, mime_type = parse_data_uri(url)
        restored[image_field] = build_attachment(payload, mime_type, data.get("updatedAt") or data.get("updated_at"))
    else:
        restored[source_field] = url
    return restored


class CamelModel(BaseModel):
    """Base model with camelCase aliases that still accepts field names on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageAttachment(CamelModel):
    """
    Canonical stored form of an owned image: raw bytes, MIME type and last-updated time.

    The display form (a data URI) is derived on read by
    `content_hub.services.image_attachments.to_data_uri()` and is never persisted.
    """

    data: bytes
    mime_type: str = "image/jpeg"
    updated_at: datetime

    @field_validator("updated_at")
    @classmethod
    def normalize_updated_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class Domain(CamelModel):
    """A publishing destination owned by a tenant."""

    id: str = Field(..., description="Stable domain identifier")
    name: str = Field(..., description="Display name")
    client_id: Optional[str] = Field(None, description="Owning tenant")
    synthesized: bool = Field(False, description="True when derived from brand guides/briefs, not provisioned")


class BrandGuide(CamelModel):
    """Style configuration for one domain."""

    id: str
    domain_id: str
    client_id: str
    style_prompt: str = ""
    tone_of_voice: str = ""
    style_image_source_url: Optional[str] = Field(None, exclude=True)
    style_image: Optional[ImageAttachment] = Field(None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def restore_style_image(cls, data: Any) -> Any:
        return restore_image_fields(data, "styleImageUrl", "style_image", "style_image_source_url")

    @computed_field(alias="styleImageUrl")
    @property
    def style_image_url(self) -> Optional[str]:
        """Display URL: derived data URI for an owned image, else the external reference."""
        if self.style_image is not None:
            from content_hub.services.image_attachments import to_data_uri

            return to_data_uri(self.style_image)
        return self.style_image_source_url

    @computed_field(alias="styleImageMimeType")
    @property
    def style_image_mime_type(self) -> Optional[str]:
        return self.style_image.mime_type if self.style_image else None


class ContentBrief(CamelModel):
    """A unit of content work, from instructions through drafted body to publication."""

    id: str = Field(..., description="Application-minted identifier, immutable")
    domain_id: Optional[str] = Field(None, description="Owning domain; may be empty on legacy records")
    client_id: str
    title: str
    brief: str
    content: str = ""
    status: BriefStatus = BriefStatus.DRAFT
    content_type: ContentType = ContentType.BLOG
    scheduled_at: Optional[datetime] = None
    hero_image: Optional[ImageAttachment] = Field(None, exclude=True)
    hero_image_source_url: Optional[str] = Field(None, exclude=True)
    created_at: datetime
    updated_at: Optional[datetime] = None
    domain_inferred: bool = Field(False, description="True when domainId was filled in at read time")

    @model_validator(mode="before")
    @classmethod
    def restore_hero_image(cls, data: Any) -> Any:
        return restore_image_fields(data, "heroImageUrl", "hero_image", "hero_image_source_url")

    @field_validator("created_at", "updated_at", "scheduled_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def is_locked(self) -> bool:
        """Content body and content type are read-only once scheduled or published."""
        return self.status in LOCKED_STATUSES

    @computed_field(alias="heroImageUrl")
    @property
    def hero_image_url(self) -> Optional[str]:
        """Display URL for the hero image, derived from the stored bytes on every read."""
        if self.hero_image is not None:
            from content_hub.services.image_attachments import to_data_uri

            return to_data_uri(self.hero_image)
        return self.hero_image_source_url


# --- Requests ---


class CreateBriefRequest(CamelModel):
    """Submit a new brief. Emptiness is checked by the repository so it surfaces as a 400."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    domain_id: str = ""
    title: str = ""
    brief: str = ""


class UpdateBriefRequest(CamelModel):
    """Partial brief update. Status and schedule only change through the lifecycle endpoints."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: Optional[str] = None
    brief: Optional[str] = None
    content: Optional[str] = None
    content_type: Optional[ContentType] = None


class ScheduleBriefRequest(CamelModel):
    scheduled_at: str = ""


class GenerateHeroImageRequest(CamelModel):
    prompt: Optional[str] = Field(None, description="Overrides the prompt built from the brief content")


class EditHeroImageRequest(CamelModel):
    instruction: str = ""


class BrandGuideImageRequest(CamelModel):
    """Image upload for a brand guide: base64 (or data URI) plus MIME type."""

    style_image_data: Optional[str] = None
    style_image_mime_type: Optional[str] = None


class UpdateBrandGuideRequest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    style_prompt: Optional[str] = None
    tone_of_voice: Optional[str] = None
    style_image_url: Optional[str] = None


# --- Responses ---


class ClientData(CamelModel):
    domains: List[Domain]
    brand_guides: List[BrandGuide]
    briefs: List[ContentBrief]


class ClientDataResponse(CamelModel):
    success: bool = True
    data: ClientData


class BriefResponse(CamelModel):
    success: bool = True
    brief: ContentBrief


class BrandGuideResponse(CamelModel):
    success: bool = True
    brand_guide: BrandGuide


class AckResponse(CamelModel):
    success: bool = True
    message: str
