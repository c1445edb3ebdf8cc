"""
Client for the workflow-automation webhooks (n8n).

Three webhooks are consumed: new brief, publish and schedule. Each takes a JSON payload that
mirrors the brief (plus `clientId`) and answers with the created record (new brief) or a bare
acknowledgment (publish/schedule). Anything but a 2xx answer, including a timeout, is a
`CollaboratorFailure`; the caller must not assume the change was applied.
"""

from typing import Any, Dict, Optional

import httpx

from content_hub.config import Settings
from content_hub.errors import CollaboratorFailure
from content_hub.managers.logging_manager import get_logger

logger = get_logger(prefix="[Workflow Client]")


class WorkflowClient:
    """
    Pooled HTTP client for the workflow webhooks.

    Every request is bounded by `WORKFLOW_TIMEOUT_SECONDS`. No retries are made here; retrying
    is left to the caller.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            settings: Webhook URLs and timeout.
            transport: Optional httpx transport (tests pass an `httpx.MockTransport`).
        """
        self.new_brief_url = settings.N8N_WEBHOOK_NEW_BRIEF
        self.publish_url = settings.N8N_WEBHOOK_PUBLISH
        self.schedule_url = settings.N8N_WEBHOOK_SCHEDULE
        self.timeout = settings.WORKFLOW_TIMEOUT_SECONDS

        limits = httpx.Limits(max_keepalive_connections=10, max_connections=10, keepalive_expiry=30.0)
        self._client = httpx.AsyncClient(timeout=self.timeout, limits=limits, transport=transport)

    @property
    def new_brief_configured(self) -> bool:
        return bool(self.new_brief_url)

    async def close(self):
        await self._client.aclose()

    async def _post(self, url: Optional[str], payload: Dict[str, Any], action: str) -> Any:
        if not url:
            logger.error("Cannot %s: webhook URL is not configured", action)
            raise CollaboratorFailure(f"Workflow for {action} is not configured", collaborator="workflow")

        try:
            response = await self._client.post(url, json=payload)
        except httpx.TimeoutException as e:
            logger.error("Workflow %s timed out after %.1fs: %s", action, self.timeout, e)
            raise CollaboratorFailure(f"Workflow {action} timed out. Please try again.", collaborator="workflow") from e
        except httpx.HTTPError as e:
            logger.error("Workflow %s request failed: %s", action, e)
            raise CollaboratorFailure(f"Workflow {action} failed. Please try again.", collaborator="workflow") from e

        if not response.is_success:
            logger.error("Workflow %s returned HTTP %d: %s", action, response.status_code, response.text[:200])
            raise CollaboratorFailure(f"Workflow {action} failed. Please try again.", collaborator="workflow")

        logger.info("Workflow %s accepted brief %s", action, payload.get("id", "<new>"))
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    async def create_brief(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Hand a new brief to the drafting workflow.

        Returns:
            `Dict[str, Any]`: The record the workflow created (first element when it answers
            with a list), or `{}` for an empty answer.
        """
        result = await self._post(self.new_brief_url, payload, "new brief")
        if isinstance(result, list):
            result = result[0] if result else {}
        return result if isinstance(result, dict) else {}

    async def publish(self, payload: Dict[str, Any]) -> None:
        await self._post(self.publish_url, payload, "publish")

    async def schedule(self, payload: Dict[str, Any]) -> None:
        await self._post(self.schedule_url, payload, "schedule")
