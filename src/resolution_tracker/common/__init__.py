"""Shared utilities and errors for the resolution tracker."""

from .errors import (
    DocumentNotFoundError,
    MalformedInput,
    MalformedReference,
    TransientAPIError,
)
from .timeutils import parse_timestamp, utc_now

__all__ = [
    "DocumentNotFoundError",
    "MalformedInput",
    "MalformedReference",
    "TransientAPIError",
    "parse_timestamp",
    "utc_now",
]
