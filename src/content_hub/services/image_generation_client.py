"""
Client for the generative image service.

## Contract

| Call | Request (`POST`) | Response |
|---|---|---|
| `generate()` | `/generate` `{prompt, style}` | `{"image": "<data URI>"}` |
| `edit()` | `/edit` `{image, instruction, style}` | `{"image": "<data URI>"}` |

`style` carries the brand guide: `stylePrompt`, `toneOfVoice` and the reference image as a data
URI (or external URL) when one is set.

Every failure (unconfigured service, transport error, timeout, non-2xx, or an answer that is not
an image data URI) surfaces as one `CollaboratorFailure("Image generation failed")`; no partial
result is ever returned.
"""

from typing import Any, Dict, Optional

import httpx

from content_hub.config import Settings
from content_hub.errors import CollaboratorFailure, ValidationError
from content_hub.managers.logging_manager import get_logger
from content_hub.models.content_models import BrandGuide
from content_hub.services.image_attachments import parse_data_uri

logger = get_logger(prefix="[Image Generation]")

GENERATION_FAILED = "Image generation failed. Please try again."


def style_context(brand_guide: Optional[BrandGuide]) -> Dict[str, Any]:
    """Style hints sent with every request; empty when the domain has no brand guide."""
    if brand_guide is None:
        return {}
    return {
        "stylePrompt": brand_guide.style_prompt,
        "toneOfVoice": brand_guide.tone_of_voice,
        "referenceImage": brand_guide.style_image_url,
    }


class ImageGenerationClient:
    """Pooled HTTP client for the image service, bounded by `IMAGE_SERVICE_TIMEOUT_SECONDS`."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (settings.IMAGE_SERVICE_URL or "").rstrip("/")
        self.timeout = settings.IMAGE_SERVICE_TIMEOUT_SECONDS

        headers = {}
        if settings.IMAGE_SERVICE_API_KEY:
            headers["Authorization"] = f"Bearer {settings.IMAGE_SERVICE_API_KEY.get_secret_value()}"

        limits = httpx.Limits(max_keepalive_connections=5, max_connections=5, keepalive_expiry=30.0)
        self._client = httpx.AsyncClient(timeout=self.timeout, limits=limits, headers=headers, transport=transport)

    async def close(self):
        await self._client.aclose()

    async def _request(self, path: str, payload: Dict[str, Any]) -> str:
        if not self.base_url:
            logger.error("Image service URL is not configured")
            raise CollaboratorFailure(GENERATION_FAILED, collaborator="image")

        try:
            response = await self._client.post(f"{self.base_url}{path}", json=payload)
            response.raise_for_status()
            image = response.json().get("image")
            parse_data_uri(image)
        except httpx.TimeoutException as e:
            logger.error("Image service %s timed out after %.1fs", path, self.timeout)
            raise CollaboratorFailure(GENERATION_FAILED, collaborator="image") from e
        except (httpx.HTTPError, ValueError, AttributeError, TypeError, ValidationError) as e:
            logger.error("Image service %s failed: %s", path, e)
            raise CollaboratorFailure(GENERATION_FAILED, collaborator="image") from e

        return image

    async def generate(self, prompt: str, style: Dict[str, Any]) -> str:
        """Generate an image from text. Returns a data URI."""
        return await self._request("/generate", {"prompt": prompt, "style": style})

    async def edit(self, source_data_uri: str, instruction: str, style: Dict[str, Any]) -> str:
        """Apply a text instruction to an existing image. Returns a data URI."""
        return await self._request("/edit", {"image": source_data_uri, "instruction": instruction, "style": style})
