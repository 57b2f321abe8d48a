"""Public entry points of the ingestion and reconciliation engine.

Every function takes an open SQLAlchemy ``Session`` and never commits: the
caller (the CLI's ``session_scope`` or a host application) owns the
transaction, so an import either lands completely or not at all.

Imports
-------
:func:`import_delimited_statement` and :func:`import_card_statement` validate
the upload, parse it, push every candidate through an
:class:`~statement_ingest.ingest.pipeline.ImportBatch` and record an
import-history row. When an import aborts, callers roll back and may record
the failure with :func:`record_failed_import` in a fresh transaction.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date
from decimal import Decimal
from pathlib import PurePath

from ledger_db.models.ledger import (
    IMPORT_FORMAT_CARD_STATEMENT,
    IMPORT_FORMAT_DELIMITED,
    IMPORT_STATUS_FAILED,
    IMPORT_STATUS_ROLLED_BACK,
    IMPORT_STATUS_SUCCESS,
    SOURCE_MANUAL,
    TYPE_INSTALLMENT,
    TYPE_ONE_TIME,
    Account,
    Category,
    CreditCard,
    DescriptionMapping,
    ImportRecord,
    LedgerTransaction,
    LedgerUser,
    transaction_responsibles,
)
from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from .cards import resolve_card
from .duplicates import find_duplicate_groups, find_potential_duplicates_for_manual_entry
from .errors import AccountNotFoundError, ImportNotFoundError, TextExtractionError
from .fingerprints import manual_raw_fingerprint
from .ingest.adapters.card_statement import parse_card_statement
from .ingest.adapters.delimited import parse_delimited
from .ingest.pipeline import ImportBatch
from .ingest.utils import decode_text, validate_upload
from .logging_setup import get_logger, import_logger
from .mappings import create_description_mapping, update_description_mapping
from .models import ImportResult
from .normalizers import normalize_description
from .reversals import detect_and_link_reversal

logger = get_logger("statement_ingest.api")

TextExtractor = Callable[[bytes], str]


def _require_account(session: Session, account_id: int) -> Account:
    account = session.get(Account, account_id)
    if account is None:
        raise AccountNotFoundError(f"account {account_id} not found")
    return account


def _open_import(session: Session, *, account_id: int, file_name: str, fmt: str) -> ImportRecord:
    record = ImportRecord(
        account_id=account_id,
        file_name=file_name,
        format=fmt,
        status=IMPORT_STATUS_SUCCESS,
        total_rows=0,
        imported_rows=0,
        skipped_rows=0,
    )
    session.add(record)
    session.flush()
    return record


def _close_import(record: ImportRecord, batch: ImportBatch) -> ImportResult:
    record.total_rows = batch.total_rows
    record.imported_rows = batch.imported_rows
    record.skipped_rows = batch.skipped_rows
    if batch.link_failures:
        record.error_message = "; ".join(str(e) for e in batch.link_failures)
    log = import_logger(logger, import_id=record.id, file_name=record.file_name)
    log.info(
        "completed: %d imported, %d skipped, %d reversals linked",
        record.imported_rows,
        record.skipped_rows,
        batch.reversals_linked,
    )
    return ImportResult(
        import_id=record.id,
        status=record.status,
        total_rows=record.total_rows,
        imported_rows=record.imported_rows,
        skipped_rows=record.skipped_rows,
        error_message=record.error_message,
        transactions=list(batch.transactions),
        reversals_linked=batch.reversals_linked,
        reversal_link_failures=list(batch.link_failures),
    )


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def import_delimited_statement(
    session: Session,
    *,
    account_id: int,
    file_name: str,
    content: bytes | str,
    content_type: str | None = None,
    reversal_window_days: int | None = None,
    similarity_threshold: float | None = None,
) -> ImportResult:
    """Import a semicolon-delimited bank export.

    Amounts are stored as printed (the export is already signed).

    Raises
    ------
    ImportRejectedError
        Empty file, non-``.csv`` name or unexpected content type.
    AccountNotFoundError
        ``account_id`` does not exist.
    """

    validate_upload(file_name, content, fmt=IMPORT_FORMAT_DELIMITED, content_type=content_type)
    _require_account(session, account_id)
    logger.info("Starting delimited import: file=%s account=%s", file_name, account_id)

    parsed = parse_delimited(decode_text(content).splitlines())
    record = _open_import(
        session, account_id=account_id, file_name=file_name, fmt=IMPORT_FORMAT_DELIMITED
    )
    batch = ImportBatch(
        session,
        account_id=account_id,
        import_id=record.id,
        reversal_window_days=reversal_window_days,
        similarity_threshold=similarity_threshold,
    )
    batch.skip_unparsed(len(parsed.skipped_lines))
    for candidate in parsed.candidates:
        batch.add(candidate)
    batch.finish()
    return _close_import(record, batch)


def extract_statement_text(
    file_name: str,
    document: bytes | str,
    extract_text: TextExtractor | None = None,
) -> str:
    """Return the plain text of a card statement upload.

    Text uploads (``str`` or a ``.txt`` file) are decoded directly; PDF bytes
    go through ``extract_text``.
    """

    if isinstance(document, str):
        return document
    if PurePath(file_name).suffix.lower() != ".pdf":
        return decode_text(document)
    if extract_text is None:
        raise TextExtractionError(f"no text extractor available for {file_name}")
    try:
        text = extract_text(document)
    except Exception as exc:
        logger.error("Failed to extract text from %s: %s", file_name, exc)
        raise TextExtractionError(f"could not extract text from {file_name}: {exc}") from exc
    logger.debug("Extracted statement text (first 2000 chars):\n%s", text[:2000])
    return text


def import_card_statement(
    session: Session,
    *,
    account_id: int,
    file_name: str,
    document: bytes | str,
    content_type: str | None = None,
    extract_text: TextExtractor | None = None,
    reversal_window_days: int | None = None,
    similarity_threshold: float | None = None,
) -> ImportResult:
    """Import a multi-card credit-card statement.

    ``document`` is either the PDF bytes, decoded through ``extract_text``, or
    text already extracted from it. Charges, printed as positive values, are
    stored as negative ledger amounts; printed credits become positive rows.

    Raises
    ------
    ImportRejectedError
        Empty file, wrong extension or content type.
    TextExtractionError
        The document could not be turned into text.
    AccountNotFoundError
        ``account_id`` does not exist.
    """

    validate_upload(
        file_name, document, fmt=IMPORT_FORMAT_CARD_STATEMENT, content_type=content_type
    )
    _require_account(session, account_id)
    logger.info("Starting card statement import: file=%s account=%s", file_name, account_id)

    parsed = parse_card_statement(extract_statement_text(file_name, document, extract_text))
    record = _open_import(
        session, account_id=account_id, file_name=file_name, fmt=IMPORT_FORMAT_CARD_STATEMENT
    )
    batch = ImportBatch(
        session,
        account_id=account_id,
        import_id=record.id,
        reversal_window_days=reversal_window_days,
        similarity_threshold=similarity_threshold,
    )
    batch.skip_unparsed(len(parsed.skipped_lines))
    for section in parsed.sections:
        card = resolve_card(
            session,
            account_id=account_id,
            card_suffix=section.card_suffix,
            holder_name=section.holder_name,
        )
        for candidate in section.candidates:
            # Ledger sign is the statement sign negated: charges become expenses,
            # printed credits become positive rows (reversal partners).
            batch.add(candidate, amount=-candidate.amount, card=card)
    batch.finish()
    return _close_import(record, batch)


def record_failed_import(
    session: Session, *, account_id: int, file_name: str, fmt: str, error_message: str
) -> ImportRecord:
    """Record an aborted import in the import history."""

    record = ImportRecord(
        account_id=account_id,
        file_name=file_name,
        format=fmt,
        status=IMPORT_STATUS_FAILED,
        total_rows=0,
        imported_rows=0,
        skipped_rows=0,
        error_message=error_message,
    )
    session.add(record)
    session.flush()
    logger.error("Import of %s failed: %s", file_name, error_message)
    return record


def get_import(session: Session, *, import_id: int, account_id: int) -> ImportRecord:
    record = session.get(ImportRecord, import_id)
    if record is None:
        raise ImportNotFoundError(f"import {import_id} not found")
    if record.account_id != account_id:
        raise ValueError(f"import {import_id} does not belong to account {account_id}")
    return record


def list_imports(session: Session, *, account_id: int) -> list[ImportRecord]:
    """Import history of an account, newest first."""

    return list(
        session.execute(
            select(ImportRecord)
            .where(ImportRecord.account_id == account_id)
            .order_by(ImportRecord.created_at.desc(), ImportRecord.id.desc())
        ).scalars()
    )


def rollback_import(session: Session, *, import_id: int, account_id: int) -> int:
    """Delete every transaction of an import and mark it ROLLED_BACK.

    Surviving rows that were linked as reversals of a deleted row are
    unflagged first. Returns the number of deleted transactions; rolling back
    twice is a no-op returning 0.
    """

    record = get_import(session, import_id=import_id, account_id=account_id)
    if record.status == IMPORT_STATUS_ROLLED_BACK:
        logger.warning("Import %s already rolled back", import_id)
        return 0

    log = import_logger(logger, import_id=import_id, file_name=record.file_name)
    ids = list(
        session.execute(
            select(LedgerTransaction.id).where(LedgerTransaction.import_id == import_id)
        ).scalars()
    )
    log.info("found %d transactions to delete", len(ids))
    if ids:
        # Unlink pairs touching the import before any row disappears
        session.execute(
            update(LedgerTransaction)
            .where(
                or_(
                    LedgerTransaction.id.in_(ids),
                    LedgerTransaction.related_transaction_id.in_(ids),
                )
            )
            .values(is_reversal=False, related_transaction_id=None)
            .execution_options(synchronize_session="fetch")
        )
        session.execute(
            delete(transaction_responsibles).where(
                transaction_responsibles.c.transaction_id.in_(ids)
            )
        )
        session.execute(
            delete(LedgerTransaction)
            .where(LedgerTransaction.id.in_(ids))
            .execution_options(synchronize_session="fetch")
        )

    record.status = IMPORT_STATUS_ROLLED_BACK
    session.flush()
    log.info("rolled back; deleted %d transactions", len(ids))
    return len(ids)


# ---------------------------------------------------------------------------
# Manual entry
# ---------------------------------------------------------------------------


def _check_owned(obj: object | None, kind: str, obj_id: int, account_id: int) -> None:
    if obj is None or getattr(obj, "account_id", None) != account_id:
        raise ValueError(f"{kind} {obj_id} not found or does not belong to account {account_id}")


def record_manual_transaction(
    session: Session,
    *,
    account_id: int,
    date: date,
    description: str,
    amount: Decimal,
    simplified_description: str | None = None,
    category_id: int | None = None,
    credit_card_id: int | None = None,
    responsible_ids: Iterable[int] = (),
    current_installment: int | None = None,
    total_installments: int | None = None,
) -> LedgerTransaction:
    """Persist a hand-entered transaction.

    Manual rows get a random raw fingerprint and no normalized fingerprint, so
    they never collide with imports; :func:`find_duplicate_groups` is what
    surfaces them next to their imported twins. A description mapping is
    created for the description when the account has none yet.

    Raises
    ------
    ValueError
        Blank description, inconsistent installment fields, or a category,
        card or responsible user outside the account.
    """

    _require_account(session, account_id)
    if not description or not description.strip():
        raise ValueError("description must not be blank")
    description = description.strip()

    if (current_installment is None) != (total_installments is None):
        raise ValueError("current_installment and total_installments go together")
    if current_installment is not None and not 1 <= current_installment <= total_installments:
        raise ValueError(
            f"installment {current_installment}/{total_installments} is out of range"
        )

    if category_id is not None:
        _check_owned(session.get(Category, category_id), "category", category_id, account_id)
    if credit_card_id is not None:
        _check_owned(
            session.get(CreditCard, credit_card_id), "credit card", credit_card_id, account_id
        )
    responsibles: list[LedgerUser] = []
    for user_id in dict.fromkeys(responsible_ids):
        user = session.get(LedgerUser, user_id)
        _check_owned(user, "user", user_id, account_id)
        responsibles.append(user)

    key = normalize_description(description)
    mapping = session.execute(
        select(DescriptionMapping).where(
            DescriptionMapping.account_id == account_id,
            DescriptionMapping.normalized_description == key,
        )
    ).scalar_one_or_none()
    if mapping is None:
        logger.info("Saving new mapping for normalized description %r", key)
        session.add(
            DescriptionMapping(
                account_id=account_id,
                original_description=description,
                normalized_description=key,
                simplified_description=simplified_description,
                category_id=category_id,
            )
        )
    else:
        if simplified_description is None:
            simplified_description = mapping.simplified_description
        if category_id is None:
            category_id = mapping.category_id

    tx = LedgerTransaction(
        account_id=account_id,
        date=date,
        description=description,
        normalized_description=key,
        simplified_description=simplified_description,
        category_id=category_id,
        amount=Decimal(str(amount)),
        credit_card_id=credit_card_id,
        source=SOURCE_MANUAL,
        transaction_type=TYPE_INSTALLMENT if current_installment is not None else TYPE_ONE_TIME,
        current_installment=current_installment,
        total_installments=total_installments,
        raw_fingerprint=manual_raw_fingerprint(),
        normalized_fingerprint=None,
        is_reversal=False,
        responsibles=responsibles,
    )
    session.add(tx)
    session.flush()
    logger.info("Recorded manual transaction %s for account %s", tx.id, account_id)
    return tx


__all__ = [
    "TextExtractor",
    "import_delimited_statement",
    "import_card_statement",
    "extract_statement_text",
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
]
