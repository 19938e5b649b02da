"""Monorail v3 pRPC implementation of the bug tracker."""

import json
import logging
from typing import Any

import httpx

from ..common import MalformedInput, TransientAPIError
from ..config import settings
from .public_api import BugInfo, BugTracker, CreateBugRequest, ModifyBugRequest

logger = logging.getLogger("resolution_tracker.monorail")

# Every pRPC JSON response starts with this anti-XSSI prefix
XSSI_PREFIX = ")]}'"

# Field definition ids in the project's admin labels
TYPE_FIELD_ID = 10
PRIORITY_FIELD_ID = 11

DEFAULT_STATUS = "Untriaged"
DEFAULT_PRIORITY = "2"
DEFAULT_TYPE = "Task"


class MonorailClient(BugTracker):
    """Client for the Monorail v3 Issues service over pRPC."""

    def __init__(
        self,
        api_base: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
    ):
        self._token = token or settings.bug_tracker_token
        self._client = httpx.AsyncClient(
            base_url=api_base or settings.bug_tracker_api_base,
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout or settings.bug_tracker_timeout_seconds,
        )

    async def create_bug(self, request: CreateBugRequest) -> BugInfo:
        project = f"projects/{request.project}"
        issue: dict[str, Any] = {
            "status": {"status": DEFAULT_STATUS},
            "summary": request.summary,
            "components": self._components(request.project, request.components),
            "fieldValues": [
                {"field": f"{project}/fieldDefs/{PRIORITY_FIELD_ID}", "value": DEFAULT_PRIORITY},
                {"field": f"{project}/fieldDefs/{TYPE_FIELD_ID}", "value": DEFAULT_TYPE},
            ],
        }
        if request.owner:
            issue["owner"] = {"user": self._user(request.owner)}
        if request.cc_list:
            issue["ccUsers"] = [{"user": self._user(cc)} for cc in request.cc_list]

        data = await self._invoke(
            "Issues",
            "MakeIssue",
            {
                "parent": project,
                "issue": issue,
                "description": request.description,
            },
        )
        bug = self._parse_issue(data)
        logger.info(f"Filed bug {bug.id}: {request.summary}")
        return bug

    async def modify_bug(self, request: ModifyBugRequest) -> None:
        issue: dict[str, Any] = {"name": f"projects/{request.project}/issues/{request.bug_id}"}
        mask: list[str] = []

        if request.status:
            issue["status"] = {"status": request.status}
            mask.append("status")
        if request.owner:
            issue["owner"] = {"user": self._user(request.owner)}
            mask.append("owner")
        if request.cc_list:
            issue["ccUsers"] = [{"user": self._user(cc)} for cc in request.cc_list]
            mask.append("cc_users")
        if request.components:
            issue["components"] = self._components(request.project, request.components)
            mask.append("components")

        payload: dict[str, Any] = {
            "deltas": [{"issue": issue, "updateMask": ",".join(mask)}],
        }
        if request.comment:
            payload["commentContent"] = request.comment

        await self._invoke("Issues", "ModifyIssues", payload)
        logger.info(f"Modified bug {request.bug_id} (fields={mask or 'comment only'})")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def _invoke(self, service: str, method: str, payload: dict) -> dict:
        """Call a pRPC method and decode its JSON response."""
        url = f"/monorail.v3.{service}/{method}"
        try:
            response = await self._client.post(url, json=payload)
        except httpx.TransportError as e:
            raise TransientAPIError("monorail", f"{method} failed: {e}") from e

        if response.status_code >= 500:
            raise TransientAPIError(
                "monorail",
                f"{method} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        response.raise_for_status()

        text = response.text
        if text.startswith(XSSI_PREFIX):
            text = text[len(XSSI_PREFIX):]
        return json.loads(text) if text.strip() else {}

    def _parse_issue(self, data: dict) -> BugInfo:
        """Parse a Monorail issue; its id is the last segment of its resource name."""
        name = data.get("name", "")
        try:
            bug_id = int(name.rsplit("/", 1)[-1])
        except ValueError:
            raise MalformedInput(f"Unexpected Monorail issue name {name!r}") from None

        return BugInfo(
            id=bug_id,
            summary=data.get("summary", ""),
            status=(data.get("status") or {}).get("status", ""),
        )

    def _components(self, project: str, components: list[str]) -> list[dict]:
        return [
            {"component": f"projects/{project}/componentDefs/{component}"}
            for component in components
        ]

    def _user(self, email: str) -> str:
        return f"users/{email}"
