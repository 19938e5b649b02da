"""Persisted per-source-issue ledger."""

from .database import PostgresDocumentStore, get_document_store
from .ledger import ResolutionLedger, get_ledger
from .public_api import (
    CHECKPOINT_DOC_ID,
    LEDGER_VERSION,
    DocumentStore,
    LedgerEntry,
)

__all__ = [
    "CHECKPOINT_DOC_ID",
    "LEDGER_VERSION",
    "DocumentStore",
    "LedgerEntry",
    "PostgresDocumentStore",
    "ResolutionLedger",
    "get_document_store",
    "get_ledger",
]
