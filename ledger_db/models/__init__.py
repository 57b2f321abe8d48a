"""Shared SQLAlchemy models registry for the ledger database.

Currently includes the ledger domain models used by ``statement_ingest``.
"""

from .ledger import (
    Account,
    Base,
    Category,
    CreditCard,
    DescriptionMapping,
    ImportRecord,
    LedgerTransaction,
    LedgerUser,
)

__all__ = [
    "Base",
    "Account",
    "LedgerUser",
    "Category",
    "CreditCard",
    "DescriptionMapping",
    "ImportRecord",
    "LedgerTransaction",
]
