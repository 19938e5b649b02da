"""Error taxonomy shared by all components.

Already-processed work is not represented here: components treat it as a
no-op branch and log it.
"""


class TransientAPIError(Exception):
    """A network failure, timeout or 5xx from an external service.

    Surfaced to the caller without local retry. Re-invocation is left to the
    task queue or the cron schedule.
    """

    def __init__(self, service: str, message: str, status_code: int | None = None):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


class DocumentNotFoundError(Exception):
    """A partial update targeted a document that does not exist."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document {collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class MalformedInput(ValueError):
    """Input from an external system could not be parsed."""


class MalformedReference(MalformedInput):
    """An issue reference URL whose last segment is not an issue number."""

    def __init__(self, reference: str):
        super().__init__(f"Cannot parse issue number from reference {reference!r}")
        self.reference = reference
