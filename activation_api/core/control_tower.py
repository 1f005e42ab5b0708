"""
Control Tower client for one-way workflow sync.

Control Tower is the external system of record for trial lifecycle. The CRM
pushes status changes to it; it never pulls from us except through the
first-lead signal route.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from activation_api.config import get_settings

logger = logging.getLogger(__name__)

WORKFLOW_UPDATE_PATH = "/api/control-tower/activation/workflow-update"

_STATUS_MAP = {
    "queued": "not_started",
    "in_progress": "in_progress",
    "scheduled": "scheduled",
    "activated": "activated",
    "killed": "killed",
}

_KILL_REASON_MAP = {
    "no_access": "no_website",
    "no_response": "ghosting",
    "no_technical_owner": "no_technical_owner",
    "no_urgency": "no_urgency",
    "other": "other",
}


def map_status(crm_status: Optional[str]) -> str:
    """Translate a CRM activation status into Control Tower's vocabulary."""
    return _STATUS_MAP.get(crm_status or "", "not_started")


def map_kill_reason(crm_reason: Optional[str]) -> str:
    return _KILL_REASON_MAP.get(crm_reason or "", "other")


class ControlTowerError(Exception):
    pass


class ControlTowerClient:
    """Thin async wrapper over the Control Tower HTTP API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.configured:
            raise ControlTowerError("Control Tower API key not configured")

        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            resp = await client.post(
                path,
                json=payload,
                headers={"x-api-key": self.api_key},
            )

        try:
            data = resp.json()
        except ValueError:
            raise ControlTowerError(f"Control Tower API error: {resp.status_code} (invalid JSON)")

        if resp.is_error:
            raise ControlTowerError(data.get("error") or f"Control Tower API error: {resp.status_code}")
        return data

    async def sync_workflow(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a workflow update. Raises ControlTowerError on any failure;
        callers decide whether that is fatal.
        """
        if not payload.get("user_id"):
            raise ControlTowerError("Workflow update requires user_id")
        logger.info(
            "Syncing workflow to Control Tower for %s (status=%s)",
            payload["user_id"], payload.get("activation_status"),
        )
        return await self._post(WORKFLOW_UPDATE_PATH, payload)


def get_control_tower_client() -> ControlTowerClient:
    settings = get_settings()
    return ControlTowerClient(
        base_url=settings.control_tower_api_url,
        api_key=settings.control_tower_api_key,
        timeout=settings.http_timeout_seconds,
    )
