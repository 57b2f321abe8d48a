"""Public interface for the ``statement_ingest`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    create_description_mapping,
    detect_and_link_reversal,
    find_duplicate_groups,
    find_potential_duplicates_for_manual_entry,
    get_import,
    import_card_statement,
    import_delimited_statement,
    list_imports,
    record_failed_import,
    record_manual_transaction,
    rollback_import,
    update_description_mapping,
)
from .errors import (
    AccountNotFoundError,
    ImportNotFoundError,
    ImportRejectedError,
    IngestError,
    MappingNotFoundError,
    ReversalLinkError,
    TextExtractionError,
)
from .models import (
    CandidateTransaction,
    CardSection,
    DuplicateGroup,
    ImportResult,
    MappingUpdate,
    ParsedCardStatement,
    ParsedStatement,
)
from .normalizers import normalize_description

__all__ = [
    # API
    "import_delimited_statement",
    "import_card_statement",
    "record_failed_import",
    "get_import",
    "list_imports",
    "rollback_import",
    "record_manual_transaction",
    "detect_and_link_reversal",
    "find_duplicate_groups",
    "find_potential_duplicates_for_manual_entry",
    "create_description_mapping",
    "update_description_mapping",
    "normalize_description",
    # Models / types
    "CandidateTransaction",
    "CardSection",
    "ParsedStatement",
    "ParsedCardStatement",
    "ImportResult",
    "DuplicateGroup",
    "MappingUpdate",
    # Errors
    "IngestError",
    "ImportRejectedError",
    "TextExtractionError",
    "ReversalLinkError",
    "AccountNotFoundError",
    "ImportNotFoundError",
    "MappingNotFoundError",
]
