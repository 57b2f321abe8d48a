"""Exception types raised by the ingestion engine.

Per-line parse problems and fingerprint collisions are never raised; they are
logged and counted as skipped rows. Everything here aborts an operation.
"""

from __future__ import annotations


class IngestError(Exception):
    """Base class for ingestion failures."""


class ImportRejectedError(IngestError, ValueError):
    """The uploaded file was rejected before parsing (empty, wrong type or extension)."""

    def __init__(self, reason: str, *, file_name: str | None = None) -> None:
        self.reason = reason
        self.file_name = file_name
        detail = f"{reason}: {file_name}" if file_name else reason
        super().__init__(f"import rejected ({detail})")


class TextExtractionError(IngestError, RuntimeError):
    """The external extractor could not turn the document into text."""


class ReversalLinkError(IngestError, RuntimeError):
    """Linking a reversal pair did not apply to both rows.

    The pair was left unlinked; callers may retry the detection.
    """

    retryable = True

    def __init__(self, transaction_id: int, partner_id: int, message: str) -> None:
        self.transaction_id = transaction_id
        self.partner_id = partner_id
        super().__init__(
            f"could not link transactions {transaction_id} and {partner_id}: {message}"
        )


class AccountNotFoundError(IngestError, LookupError):
    """No account exists with the given id."""


class ImportNotFoundError(IngestError, LookupError):
    """No import history row exists with the given id."""


class MappingNotFoundError(IngestError, LookupError):
    """No description mapping exists with the given id."""


__all__ = [
    "IngestError",
    "ImportRejectedError",
    "TextExtractionError",
    "ReversalLinkError",
    "AccountNotFoundError",
    "ImportNotFoundError",
    "MappingNotFoundError",
]
