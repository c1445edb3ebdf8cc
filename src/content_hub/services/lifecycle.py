"""
# Brief Lifecycle

Governs how a content brief moves between states and which of its fields may change.

## State Machine

```
          schedule            publish
  Draft ────────────▶ Scheduled ────────▶ Published
    │                                        ▲
    └────────────────── publish ─────────────┘
```

- There is no way out of `Published`, and `Scheduled` only moves forward to `Published`.
- Publishing an already published brief is a no-op: the brief is returned unchanged and the
  publish workflow is not called again.
- Scheduling is only possible from `Draft`.

## Handoff Ordering

Publish and schedule hand the brief to the workflow webhook **first** and commit the new state
only after the webhook accepted it. A failed handoff raises `CollaboratorFailure` and the stored
brief stays exactly as it was.

## Field Lock

Once a brief is `Scheduled` or `Published`, its `content` and `contentType` are read-only.
Title, brief text and the hero image stay editable, so a hero image can still be regenerated on
a locked brief.
"""

import base64
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from content_hub.errors import Locked, ValidationError
from content_hub.managers.logging_manager import get_logger
from content_hub.models.content_models import BriefStatus, ContentBrief, ensure_utc
from content_hub.services.image_attachments import decode_payload
from content_hub.services.image_generation_client import ImageGenerationClient, style_context
from content_hub.services.workflow_client import WorkflowClient

if TYPE_CHECKING:
    from content_hub.services.content_repository import ContentRepository

logger = get_logger(prefix="[Brief Lifecycle]")

LOCKED_FIELDS = ("content", "content_type")
HERO_PROMPT_TEMPLATE = 'Based on the following content, create a hero image. Content: "{content}"'


def check_edit(brief: ContentBrief, fields: Dict[str, Any]) -> None:
    """
    Enforce the field lock for a partial update.

    Raises:
        `Locked`: If `brief` is scheduled or published and `fields` changes its content or
            content type. Re-sending the current value is not a change.
    """
    if not brief.is_locked:
        return
    for name in LOCKED_FIELDS:
        if name in fields and fields[name] != getattr(brief, name):
            logger.info("Rejected %s edit on %s brief %s", name, brief.status.value, brief.id)
            raise Locked()


def parse_schedule_time(value: Optional[str]) -> datetime:
    """
    Parse an ISO-8601 timestamp (a trailing `Z` is accepted). Naive values are taken as UTC.

    Raises:
        `ValidationError`: If the value is empty or not ISO-8601.
    """
    if not value or not value.strip():
        raise ValidationError("Scheduled time is required")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError as e:
        raise ValidationError("Scheduled time must be an ISO-8601 timestamp") from e


def brief_snapshot(brief: ContentBrief, client_id: str) -> Dict[str, Any]:
    """The complete brief as handed to the publish and schedule workflows."""
    snapshot = {
        "id": brief.id,
        "clientId": client_id,
        "title": brief.title,
        "brief": brief.brief,
        "content": brief.content,
        "contentType": brief.content_type.value,
        "status": brief.status.value,
        "domain": brief.domain_id,
        "domainId": brief.domain_id,
        "heroImageUrl": brief.hero_image_url,
    }
    if brief.hero_image is not None:
        snapshot["heroImageData"] = base64.b64encode(brief.hero_image.data).decode("ascii")
        snapshot["heroImageMimeType"] = brief.hero_image.mime_type
    return snapshot


class BriefLifecycleController:
    """
    Lifecycle transitions and collaborator-backed operations on briefs.

    Attributes:
        repository (`ContentRepository`): Tenant-scoped storage of the current request.
        workflow (`WorkflowClient`): New-brief, publish and schedule webhooks.
        images (`ImageGenerationClient`): Hero image generation and editing.
    """

    def __init__(self, repository: "ContentRepository", workflow: WorkflowClient, images: ImageGenerationClient):
        self.repository = repository
        self.workflow = workflow
        self.images = images

    async def publish(self, client_id: str, brief_id: str) -> ContentBrief:
        """
        Publish a draft or scheduled brief.

        Raises:
            `NotFound`: If the brief does not exist in this tenant.
            `CollaboratorFailure`: If the publish workflow rejects the brief; nothing changes.
        """
        brief = await self.repository.get_brief(client_id, brief_id)
        if brief.status == BriefStatus.PUBLISHED:
            logger.info("Brief %s is already published; nothing to do", brief_id)
            return brief

        await self.workflow.publish(brief_snapshot(brief, client_id))
        published = await self.repository.set_brief_status(client_id, brief_id, BriefStatus.PUBLISHED)
        logger.info("Published brief %s (was %s)", brief_id, brief.status.value)
        return published

    async def schedule(self, client_id: str, brief_id: str, scheduled_at: Optional[str]) -> ContentBrief:
        """
        Schedule a draft brief for publication.

        Raises:
            `ValidationError`: If `scheduled_at` is missing or not ISO-8601.
            `NotFound`: If the brief does not exist in this tenant.
            `Locked`: If the brief is not a draft.
            `CollaboratorFailure`: If the schedule workflow rejects it; nothing changes.
        """
        when = parse_schedule_time(scheduled_at)
        brief = await self.repository.get_brief(client_id, brief_id)
        if brief.status != BriefStatus.DRAFT:
            raise Locked(f"Only draft briefs can be scheduled (brief is {brief.status.value})")

        payload = brief_snapshot(brief, client_id)
        payload["scheduledAt"] = when.isoformat()
        await self.workflow.schedule(payload)

        scheduled = await self.repository.set_brief_status(client_id, brief_id, BriefStatus.SCHEDULED, scheduled_at=when)
        logger.info("Scheduled brief %s for %s", brief_id, when.isoformat())
        return scheduled

    async def submit_brief(self, client_id: str, domain_id: str, title: str, brief_text: str) -> ContentBrief:
        """
        Create a brief, letting the drafting workflow write its first body when configured.

        The input is validated before the workflow is called, and the brief is only stored
        after the workflow answered, so a failed handoff leaves nothing behind.

        Raises:
            `ValidationError`: Empty title/brief or a domain outside the tenant.
            `CollaboratorFailure`: If the drafting workflow fails.
        """
        new_brief = await self.repository.prepare_brief(client_id, domain_id, title, brief_text)
        content = ""
        if self.workflow.new_brief_configured:
            created = await self.workflow.create_brief(
                {
                    "id": new_brief.id,
                    "clientId": client_id,
                    "domainId": new_brief.domain_id,
                    "title": new_brief.title,
                    "brief": new_brief.brief,
                }
            )
            if isinstance(created.get("content"), str):
                content = created["content"]

        return await self.repository.insert_brief(client_id, new_brief, content=content)

    async def generate_hero_image(self, client_id: str, brief_id: str, prompt: Optional[str] = None) -> ContentBrief:
        """
        Generate a hero image in the style of the brief's brand guide and store it.

        Allowed on locked briefs.

        Raises:
            `NotFound`: If the brief does not exist in this tenant.
            `CollaboratorFailure`: If the image service fails; the current image is kept.
        """
        brief = await self.repository.get_brief(client_id, brief_id)
        guide = await self.repository.find_brand_guide_for_domain(client_id, brief.domain_id)
        text = (prompt or "").strip() or HERO_PROMPT_TEMPLATE.format(content=brief.content or brief.brief)

        image = await self.images.generate(text, style_context(guide))
        return await self.repository.set_hero_image(client_id, brief_id, decode_payload(image))

    async def edit_hero_image(self, client_id: str, brief_id: str, instruction: Optional[str]) -> ContentBrief:
        """
        Apply an edit instruction to the brief's current hero image.

        Raises:
            `ValidationError`: Empty instruction, or the brief has no hero image yet.
            `NotFound`: If the brief does not exist in this tenant.
            `CollaboratorFailure`: If the image service fails; the current image is kept.
        """
        if not instruction or not instruction.strip():
            raise ValidationError("Edit instruction is required")
        brief = await self.repository.get_brief(client_id, brief_id)
        if not brief.hero_image_url:
            raise ValidationError("Generate a hero image before editing it")
        guide = await self.repository.find_brand_guide_for_domain(client_id, brief.domain_id)

        image = await self.images.edit(brief.hero_image_url, instruction.strip(), style_context(guide))
        return await self.repository.set_hero_image(client_id, brief_id, decode_payload(image))
