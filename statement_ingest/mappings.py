"""Learned description mappings: batch resolution and user edits.

A mapping binds an account's normalized description key to an optional
simplified description and category. During an import every candidate is
resolved through one :class:`MappingResolver`, which owns the batch-local
table of mappings so that equal keys always yield the same instance and only
one insert per key is ever issued. Pending mappings are added to the session
in one call by :meth:`MappingResolver.flush`; the caller commits.

Edits go through :func:`update_description_mapping`, which cascades the
simplified description and category to every transaction of the account
sharing the mapping's key.
"""

from __future__ import annotations

from collections.abc import Mapping

from ledger_db.models.ledger import DescriptionMapping, LedgerTransaction
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .errors import MappingNotFoundError
from .logging_setup import get_logger
from .models import MappingUpdate
from .normalizers import normalize_description

logger = get_logger("statement_ingest.mappings")


class MappingResolver:
    """Single-owner mapping table for one import batch.

    Parameters
    ----------
    session:
        Session used to preload existing mappings and to add pending ones.
    account_id:
        Account every resolved mapping belongs to.
    """

    def __init__(self, session: Session, account_id: int) -> None:
        self._session = session
        self.account_id = account_id
        rows = session.execute(
            select(DescriptionMapping).where(DescriptionMapping.account_id == account_id)
        ).scalars()
        self._existing: dict[str, DescriptionMapping] = {
            m.normalized_description: m for m in rows
        }
        self._pending: dict[str, DescriptionMapping] = {}

    @property
    def pending(self) -> Mapping[str, DescriptionMapping]:
        return self._pending

    def resolve(self, description: str) -> DescriptionMapping:
        """Return the mapping for ``description``, creating it on first sighting."""

        key = normalize_description(description)
        found = self._existing.get(key) or self._pending.get(key)
        if found is not None:
            return found
        mapping = DescriptionMapping(
            account_id=self.account_id,
            original_description=description,
            normalized_description=key,
        )
        self._pending[key] = mapping
        return mapping

    def flush(self) -> int:
        """Add all pending mappings to the session; return how many were added."""

        created = list(self._pending.values())
        if created:
            self._session.add_all(created)
            logger.info(
                "Saving %d new description mappings for account %s",
                len(created),
                self.account_id,
            )
        self._existing.update(self._pending)
        self._pending.clear()
        return len(created)


def _cascade(session: Session, mapping: DescriptionMapping) -> int:
    result = session.execute(
        update(LedgerTransaction)
        .where(
            LedgerTransaction.account_id == mapping.account_id,
            LedgerTransaction.normalized_description == mapping.normalized_description,
        )
        .values(
            simplified_description=mapping.simplified_description,
            category_id=mapping.category_id,
            updated_at=func.now(),
        )
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


def create_description_mapping(
    session: Session,
    *,
    account_id: int,
    original_description: str,
    simplified_description: str | None = None,
    category_id: int | None = None,
) -> DescriptionMapping | None:
    """Create a mapping and apply it to the account's existing transactions.

    Returns ``None`` (with a warning) when a mapping already exists for the
    normalized key.
    """

    key = normalize_description(original_description)
    existing = session.execute(
        select(DescriptionMapping.id).where(
            DescriptionMapping.account_id == account_id,
            DescriptionMapping.normalized_description == key,
        )
    ).first()
    if existing is not None:
        logger.warning(
            "Mapping for normalized description %r already exists for account %s",
            key,
            account_id,
        )
        return None

    mapping = DescriptionMapping(
        account_id=account_id,
        original_description=original_description,
        normalized_description=key,
        simplified_description=simplified_description,
        category_id=category_id,
    )
    session.add(mapping)
    session.flush()
    if simplified_description is not None or category_id is not None:
        updated = _cascade(session, mapping)
        logger.info("Mapping %s applied to %d existing transactions", mapping.id, updated)
    return mapping


def update_description_mapping(
    session: Session,
    *,
    account_id: int,
    mapping_id: int,
    changes: MappingUpdate,
) -> int:
    """Apply ``changes`` to a mapping and cascade it; return rows cascaded to.

    Raises
    ------
    MappingNotFoundError
        No mapping with ``mapping_id`` exists.
    ValueError
        The mapping belongs to another account.
    """

    mapping = session.get(DescriptionMapping, mapping_id)
    if mapping is None:
        raise MappingNotFoundError(f"description mapping {mapping_id} not found")
    if mapping.account_id != account_id:
        raise ValueError(
            f"description mapping {mapping_id} does not belong to account {account_id}"
        )

    mapping.simplified_description = changes.simplified_description
    mapping.category_id = changes.category_id
    mapping.updated_at = func.now()
    session.flush()

    updated = _cascade(session, mapping)
    logger.info(
        "Updated mapping %s (%r); cascaded to %d transactions",
        mapping_id,
        mapping.normalized_description,
        updated,
    )
    return updated


__all__ = [
    "MappingResolver",
    "create_description_mapping",
    "update_description_mapping",
]
