"""GitHub webhook ingestion for the mirror repository."""

import hashlib
import hmac
import json
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Request

from ..config import settings

logger = logging.getLogger("resolution_tracker.webhook")

webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def verify_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """Verify GitHub webhook signature."""
    if not signature or not secret:
        return False

    if not signature.startswith("sha256="):
        return False

    expected = hmac.new(
        secret.encode("utf-8"),
        payload,
        hashlib.sha256,
    ).hexdigest()

    return hmac.compare_digest(f"sha256={expected}", signature)


@webhook_router.post("/github")
async def handle_github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_github_event: str = Header(..., alias="X-GitHub-Event"),
    x_hub_signature_256: str | None = Header(None, alias="X-Hub-Signature-256"),
) -> dict[str, Any]:
    """
    Handle incoming GitHub webhooks.

    Triage-worthy issue and comment events schedule a debounced triage task.
    The response is sent before scheduling runs, so slow downstream calls
    never cause GitHub to redeliver.
    """
    from ..triage.event_filter import should_trigger

    payload = await request.body()

    # Verify signature if secret is configured
    if settings.github_webhook_secret:
        if not verify_signature(payload, x_hub_signature_256, settings.github_webhook_secret):
            raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"Failed to parse webhook JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if not isinstance(data, dict):
        logger.error(f"Webhook payload is a JSON {type(data).__name__}, expected an object")
        raise HTTPException(status_code=400, detail="Webhook payload must be a JSON object")

    if x_github_event == "ping":
        return {"status": "pong"}

    if not should_trigger(x_github_event, data):
        logger.debug(f"Ignoring {x_github_event} event (action={data.get('action')})")
        return {"status": "ignored"}

    issue_number = data["issue"]["number"]
    background_tasks.add_task(_schedule_triage, issue_number)
    logger.info(f"Accepted {x_github_event} event for mirror issue #{issue_number}")
    return {"status": "ok"}


async def _schedule_triage(mirror_issue_id: int) -> None:
    """Schedule triage for a mirror issue, logging any failure."""
    from ..triage.scheduler import get_scheduler

    try:
        await get_scheduler().schedule(mirror_issue_id)
    except Exception:
        logger.exception(f"Failed to schedule triage for mirror issue #{mirror_issue_id}")
