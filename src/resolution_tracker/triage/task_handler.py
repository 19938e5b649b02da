"""HTTP endpoint invoked by the delayed task queue."""

import hmac
import logging
from typing import Any
from urllib.parse import parse_qs

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Request

from ..config import settings
from .scheduler import MIRROR_ISSUE_FIELD

logger = logging.getLogger("resolution_tracker.task_handler")

task_router = APIRouter(prefix="/tasks", tags=["tasks"])


def parse_mirror_issue_id(body: bytes) -> int:
    """
    Read the mirror issue id from a form-encoded task body.

    Raises:
        ValueError: If the field is missing or not an integer.
    """
    form = parse_qs(body.decode("utf-8"))
    values = form.get(MIRROR_ISSUE_FIELD)
    if not values:
        raise ValueError(f"missing {MIRROR_ISSUE_FIELD}")
    return int(values[0])


@task_router.post("/triage")
async def handle_triage_task(
    request: Request,
    background_tasks: BackgroundTasks,
    authorization: str | None = Header(None),
) -> dict[str, Any]:
    """
    Accept a delayed triage task.

    Responds immediately; triage runs in the background and failures only
    appear in the logs.
    """
    if settings.task_auth_token:
        expected = f"Bearer {settings.task_auth_token}"
        if not authorization or not hmac.compare_digest(authorization, expected):
            raise HTTPException(status_code=401, detail="Invalid task token")

    body = await request.body()
    try:
        mirror_issue_id = parse_mirror_issue_id(body)
    except (ValueError, UnicodeDecodeError) as e:
        logger.error(f"Malformed triage task body {body!r}: {e}")
        raise HTTPException(status_code=400, detail="Malformed task body")

    logger.info(f"Processing mirror issue #{mirror_issue_id}")
    background_tasks.add_task(_run_triage, mirror_issue_id)
    return {"status": "accepted"}


async def _run_triage(mirror_issue_id: int) -> None:
    """Run triage for a mirror issue, logging any failure."""
    from .runner import get_triage_runner

    try:
        await get_triage_runner().run(mirror_issue_id)
    except Exception:
        logger.exception(f"Triage failed for mirror issue #{mirror_issue_id}")
