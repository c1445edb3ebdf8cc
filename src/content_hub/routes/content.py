"""
# Content Routes

REST endpoints for a tenant's domains, brand guides and content briefs.

## Access Model

Every endpoint requires a bearer token. The tenant is the token's `client_id`; path
identifiers are validated for shape (400) and then only looked up inside that tenant, so a record
of another tenant answers 404 exactly like a missing one. `GET /client/{clientId}` names the
tenant explicitly and answers 401 when it is not the caller's.

## API Endpoints

### Dashboard
- `GET /client/{clientId}` - domains, brand guides and briefs (`?domainId=` narrows the briefs)

### Brand Guides
- `GET /brand-guides/{domainId}` - a domain's brand guide
- `PATCH /brand-guides/{domainId}` - update style prompt, tone of voice or style image URL
- `POST /brand-guide/{id}/image` - attach or replace the style reference image

### Briefs
- `POST /briefs` - submit a new brief (optionally drafted by the new-brief workflow)
- `GET /brief/{id}` - one brief
- `PATCH /brief/{id}` - edit title, brief, content or content type (409 when locked)
- `DELETE /brief/{id}` - delete irrevocably
- `POST /brief/{id}/publish` - publish through the publish workflow
- `POST /brief/{id}/schedule` - schedule through the schedule workflow
- `POST /brief/{id}/hero-image` - generate a hero image
- `POST /brief/{id}/hero-image/edit` - edit the current hero image

Errors are rendered by the application's exception handlers as
`{"success": false, "error": "<message>"}`.

## Module Attributes

Attributes:
    router (APIRouter): FastAPI router with the content endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from content_hub.managers.logging_manager import get_logger
from content_hub.models.content_models import (
    AckResponse,
    BrandGuideImageRequest,
    BrandGuideResponse,
    BriefResponse,
    ClientDataResponse,
    CreateBriefRequest,
    EditHeroImageRequest,
    GenerateHeroImageRequest,
    ScheduleBriefRequest,
    UpdateBrandGuideRequest,
    UpdateBriefRequest,
)
from content_hub.routes.content_dependencies import get_lifecycle, get_repository, validate_identifier
from content_hub.services.content_repository import ContentRepository
from content_hub.services.image_attachments import decode_payload
from content_hub.services.lifecycle import BriefLifecycleController

logger = get_logger(prefix="[Content Routes]")

router = APIRouter(tags=["Content"])


# Dashboard


@router.get("/client/{client_id}", response_model=ClientDataResponse)
async def get_client_data(
    client_id: str,
    domain_id: Optional[str] = Query(None, alias="domainId"),
    repository: ContentRepository = Depends(get_repository),
):
    """
    Fetch everything the dashboard shows for a tenant.

    **Process:**
    1.  Validates the shape of `clientId` (400).
    2.  Checks `clientId` against the session tenant (401).
    3.  Loads domains, brand guides and briefs; briefs without a domain are shown under an
        inferred one and flagged `domainInferred`.

    Args:
        client_id (str): Tenant the caller asks for; must be the caller's own.
        domain_id (Optional[str]): Narrow briefs to one domain (`all` or absent keeps all).

    Returns:
        ClientDataResponse: `{success, data: {domains, brandGuides, briefs}}`.
    """
    validate_identifier(client_id, "clientId")
    data = await repository.load_client_data(client_id, domain_id)
    logger.debug(
        "Client %s: %d domains, %d brand guides, %d briefs",
        client_id,
        len(data.domains),
        len(data.brand_guides),
        len(data.briefs),
    )
    return ClientDataResponse(data=data)


# Brand guides


@router.get("/brand-guides/{domain_id}", response_model=BrandGuideResponse)
async def get_brand_guide(domain_id: str, repository: ContentRepository = Depends(get_repository)):
    """Return the brand guide of one of the caller's domains (404 when there is none)."""
    validate_identifier(domain_id, "domainId")
    guide = await repository.get_brand_guide_for_domain(repository.tenant.current_tenant_id(), domain_id)
    return BrandGuideResponse(brand_guide=guide)


@router.patch("/brand-guides/{domain_id}", response_model=BrandGuideResponse)
async def update_brand_guide(
    domain_id: str, request: UpdateBrandGuideRequest, repository: ContentRepository = Depends(get_repository)
):
    """
    Partially update a domain's brand guide.

    Args:
        domain_id (str): Domain whose guide is updated.
        request (UpdateBrandGuideRequest): Any of `stylePrompt`, `toneOfVoice`, `styleImageUrl`.

    Returns:
        BrandGuideResponse: The updated guide.
    """
    validate_identifier(domain_id, "domainId")
    guide = await repository.update_brand_guide(
        repository.tenant.current_tenant_id(), domain_id, request.model_dump(exclude_unset=True)
    )
    return BrandGuideResponse(brand_guide=guide)


@router.post("/brand-guide/{brand_guide_id}/image", response_model=AckResponse)
async def upload_brand_guide_image(
    brand_guide_id: str, request: BrandGuideImageRequest, repository: ContentRepository = Depends(get_repository)
):
    """
    Attach or replace a brand guide's style reference image.

    The image arrives as base64 (bare or as a data URI) with an optional MIME type
    (`image/jpeg` by default). It is stored as bytes; the data URI shown to clients is derived
    on every read.

    Raises:
        ValidationError (400): Malformed id, missing/undecodable data or a non-image MIME type.
        NotFound (404): If the guide does not exist in the caller's tenant.
    """
    validate_identifier(brand_guide_id, "brandGuideId")
    attachment = decode_payload(request.style_image_data, request.style_image_mime_type)
    await repository.save_brand_guide_image(
        repository.tenant.current_tenant_id(), brand_guide_id, attachment.data, attachment.mime_type
    )
    return AckResponse(message="Brand guide image updated successfully")


# Briefs


@router.post("/briefs", response_model=BriefResponse, status_code=status.HTTP_201_CREATED)
async def submit_brief(request: CreateBriefRequest, lifecycle: BriefLifecycleController = Depends(get_lifecycle)):
    """
    Submit a new brief as a `Draft`.

    When the new-brief workflow is configured, it receives the brief first and the body it
    drafts becomes the brief's initial content.

    Raises:
        ValidationError (400): Empty title or brief, or a domain outside the caller's tenant.
        CollaboratorFailure (502): If the drafting workflow fails; nothing is stored.
    """
    brief = await lifecycle.submit_brief(
        lifecycle.repository.tenant.current_tenant_id(), request.domain_id, request.title, request.brief
    )
    return BriefResponse(brief=brief)


@router.get("/brief/{brief_id}", response_model=BriefResponse)
async def get_brief(brief_id: str, repository: ContentRepository = Depends(get_repository)):
    validate_identifier(brief_id, "briefId")
    brief = await repository.get_brief(repository.tenant.current_tenant_id(), brief_id)
    return BriefResponse(brief=brief)


@router.patch("/brief/{brief_id}", response_model=BriefResponse)
async def update_brief(brief_id: str, request: UpdateBriefRequest, repository: ContentRepository = Depends(get_repository)):
    """
    Edit a brief.

    Content and content type are locked once the brief is scheduled or published; title and
    brief text stay editable.

    Raises:
        ValidationError (400): Malformed id or empty title/brief.
        NotFound (404): Unknown brief.
        Locked (409): Content or content type change on a locked brief.
    """
    validate_identifier(brief_id, "briefId")
    brief = await repository.update_brief(
        repository.tenant.current_tenant_id(), brief_id, request.model_dump(exclude_unset=True, exclude_none=True)
    )
    return BriefResponse(brief=brief)


@router.delete("/brief/{brief_id}", response_model=AckResponse)
async def delete_brief(brief_id: str, repository: ContentRepository = Depends(get_repository)):
    """
    Irrevocably delete a brief.

    Raises:
        ValidationError (400): Malformed id.
        NotFound (404): Unknown or already deleted brief.
    """
    validate_identifier(brief_id, "briefId")
    await repository.delete_brief(repository.tenant.current_tenant_id(), brief_id)
    return AckResponse(message="Brief deleted successfully")


@router.post("/brief/{brief_id}/publish", response_model=BriefResponse)
async def publish_brief(brief_id: str, lifecycle: BriefLifecycleController = Depends(get_lifecycle)):
    """
    Publish a brief through the publish workflow.

    Already published briefs are returned unchanged. If the workflow fails the brief keeps its
    current state and the call answers 502.
    """
    validate_identifier(brief_id, "briefId")
    brief = await lifecycle.publish(lifecycle.repository.tenant.current_tenant_id(), brief_id)
    return BriefResponse(brief=brief)


@router.post("/brief/{brief_id}/schedule", response_model=BriefResponse)
async def schedule_brief(
    brief_id: str, request: ScheduleBriefRequest, lifecycle: BriefLifecycleController = Depends(get_lifecycle)
):
    """
    Schedule a draft brief.

    Raises:
        ValidationError (400): Missing or non-ISO `scheduledAt`.
        Locked (409): The brief is not a draft.
        CollaboratorFailure (502): The schedule workflow failed; the brief stays a draft.
    """
    validate_identifier(brief_id, "briefId")
    brief = await lifecycle.schedule(lifecycle.repository.tenant.current_tenant_id(), brief_id, request.scheduled_at)
    return BriefResponse(brief=brief)


@router.post("/brief/{brief_id}/hero-image", response_model=BriefResponse)
async def generate_hero_image(
    brief_id: str,
    request: Optional[GenerateHeroImageRequest] = None,
    lifecycle: BriefLifecycleController = Depends(get_lifecycle),
):
    """Generate a hero image in the style of the brief's brand guide. Allowed on locked briefs."""
    validate_identifier(brief_id, "briefId")
    prompt = request.prompt if request else None
    brief = await lifecycle.generate_hero_image(lifecycle.repository.tenant.current_tenant_id(), brief_id, prompt)
    return BriefResponse(brief=brief)


@router.post("/brief/{brief_id}/hero-image/edit", response_model=BriefResponse)
async def edit_hero_image(
    brief_id: str, request: EditHeroImageRequest, lifecycle: BriefLifecycleController = Depends(get_lifecycle)
):
    """Apply a text instruction to the brief's current hero image."""
    validate_identifier(brief_id, "briefId")
    brief = await lifecycle.edit_hero_image(lifecycle.repository.tenant.current_tenant_id(), brief_id, request.instruction)
    return BriefResponse(brief=brief)
