"""Public API for the resolution ledger.

The ledger keeps one document per source issue, keyed by the decimal source
issue number, plus a reserved checkpoint document for the poll cycle.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

# The latest version of the ledger schema. Entries written under another
# version are never scheduled for triage.
LEDGER_VERSION = "1.1"

CHECKPOINT_DOC_ID = "last_run"


# =============================================================================
# Models
# =============================================================================

class LedgerEntry(BaseModel):
    """Persisted record of one source issue's mirror and triage state."""

    version: str = ""
    source_issue_id: int = 0
    mirror_issue_id: int = 0
    crbug_id: int = 0  # 0 means no bug filed yet
    recorded_comment_ids: list[int] = Field(default_factory=list)
    has_pending_triage: bool = False
    triaged_comment_ids: list[int] = Field(default_factory=list)

    @property
    def doc_id(self) -> str:
        return str(self.source_issue_id)

    @property
    def is_tracked(self) -> bool:
        """False for the zero-value entry returned when no document matched."""
        return self.source_issue_id != 0


# =============================================================================
# Document Store Interface (ABC)
# =============================================================================

class DocumentStore(ABC):
    """Abstract key/value document store holding one collection."""

    @abstractmethod
    async def get(self, doc_id: str) -> dict[str, Any] | None:
        """Return a document, or None if it does not exist."""
        pass

    @abstractmethod
    async def set(self, doc_id: str, data: dict[str, Any]) -> None:
        """Create or fully replace a document."""
        pass

    @abstractmethod
    async def update(self, doc_id: str, updates: dict[str, Any]) -> None:
        """
        Overwrite top-level fields of an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        pass

    @abstractmethod
    async def update_if(
        self,
        doc_id: str,
        expected: dict[str, Any],
        updates: dict[str, Any],
    ) -> bool:
        """
        Atomically overwrite fields if every ``expected`` field currently matches.

        Returns:
            True if the update was applied, False if the document is missing
            or a precondition did not hold.
        """
        pass

    @abstractmethod
    async def find_first(self, field: str, value: Any) -> tuple[str, dict[str, Any]] | None:
        """Return (doc_id, data) of the first document whose field equals value."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release any held connections."""
        pass
