"""Resolution ledger: idempotence and state transitions per source issue."""

import logging
from datetime import datetime

from ..common import DocumentNotFoundError, parse_timestamp
from .database import get_document_store
from .public_api import CHECKPOINT_DOC_ID, LEDGER_VERSION, DocumentStore, LedgerEntry

logger = logging.getLogger("resolution_tracker.ledger")


class ResolutionLedger:
    """
    Typed access to ledger entries stored in a DocumentStore.

    Invariants maintained here:
    - mirror_issue_id is only written by save() at entry creation
    - crbug_id moves from 0 to a nonzero value at most once
    - recorded_comment_ids only grows
    """

    def __init__(self, store: DocumentStore | None = None):
        self._store = store or get_document_store()

    # Lookups

    async def load_by_issue(self, source_issue_id: int) -> LedgerEntry | None:
        """Load the entry for a source issue, or None if there is none."""
        data = await self._store.get(str(source_issue_id))
        if data is None:
            return None
        return LedgerEntry.model_validate(data)

    async def load_by_mirror_id(self, mirror_issue_id: int) -> LedgerEntry:
        """Load the entry whose mirror issue is ``mirror_issue_id``.

        Returns a zero-value entry stamped with the current version when no
        document matches; callers check ``entry.is_tracked``.
        """
        match = await self._store.find_first("mirror_issue_id", mirror_issue_id)
        if match is None:
            return LedgerEntry(version=LEDGER_VERSION)
        _, data = match
        return LedgerEntry.model_validate(data)

    # Writes

    async def save(self, doc_id: str, entry: LedgerEntry) -> None:
        """Fully overwrite an entry, stamping the current version if unset."""
        if not entry.version:
            entry.version = LEDGER_VERSION
        await self._store.set(doc_id, entry.model_dump(mode="json"))

    async def append_recorded_comment(self, doc_id: str, comment_id: int) -> None:
        """Add a source comment id to the entry's recorded set."""
        data = await self._store.get(doc_id)
        if data is None:
            raise DocumentNotFoundError("ledger", doc_id)

        recorded = list(data.get("recorded_comment_ids") or [])
        if comment_id in recorded:
            return
        recorded.append(comment_id)
        await self._store.update(doc_id, {"recorded_comment_ids": recorded})

    async def set_pending_triage(self, doc_id: str, pending: bool) -> None:
        await self._store.update(doc_id, {"has_pending_triage": pending})

    async def try_mark_pending(self, doc_id: str) -> bool:
        """Atomically move has_pending_triage from False to True.

        Only current-version entries transition. Returns False when another
        caller already scheduled triage or the entry is stale.
        """
        return await self._store.update_if(
            doc_id,
            expected={"has_pending_triage": False, "version": LEDGER_VERSION},
            updates={"has_pending_triage": True},
        )

    async def set_crbug_id(self, doc_id: str, crbug_id: int) -> bool:
        """Record the filed bug id. Returns False if one was already recorded."""
        applied = await self._store.update_if(
            doc_id,
            expected={"crbug_id": 0},
            updates={"crbug_id": crbug_id},
        )
        if not applied:
            await self._warn_crbug_already_set(doc_id, crbug_id)
        return applied

    async def record_triage_result(
        self,
        doc_id: str,
        crbug_id: int,
        triaged_comment_ids: list[int],
    ) -> bool:
        """Record a filed/updated bug and clear the pending flag in one write."""
        applied = await self._store.update_if(
            doc_id,
            expected={"crbug_id": 0},
            updates={
                "crbug_id": crbug_id,
                "triaged_comment_ids": triaged_comment_ids,
                "has_pending_triage": False,
            },
        )
        if not applied:
            await self._warn_crbug_already_set(doc_id, crbug_id)
            await self.set_pending_triage(doc_id, False)
        return applied

    async def _warn_crbug_already_set(self, doc_id: str, crbug_id: int) -> None:
        data = await self._store.get(doc_id)
        if data is None:
            raise DocumentNotFoundError("ledger", doc_id)
        logger.warning(
            f"Ledger {doc_id} already records crbug {data.get('crbug_id')}, "
            f"not overwriting with {crbug_id}"
        )

    # Poll checkpoint

    async def load_checkpoint(self) -> datetime | None:
        """Return the start time of the last completed poll cycle."""
        data = await self._store.get(CHECKPOINT_DOC_ID)
        if not data:
            return None
        return parse_timestamp(data.get("time"))

    async def save_checkpoint(self, time: datetime) -> None:
        await self._store.set(CHECKPOINT_DOC_ID, {"time": time.isoformat()})


# Global instance
_ledger: ResolutionLedger | None = None


def get_ledger() -> ResolutionLedger:
    """Get the global ledger instance."""
    global _ledger
    if _ledger is None:
        _ledger = ResolutionLedger()
    return _ledger
