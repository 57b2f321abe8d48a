from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


# BIGINT surrogate keys; SQLite only auto-assigns rowids for INTEGER PRIMARY KEY.
_PK = BigInteger().with_variant(Integer(), "sqlite")


# Source tags recorded on every ledger row
SOURCE_MANUAL = "MANUAL"
SOURCE_IMPORTED = "IMPORTED"

TYPE_ONE_TIME = "ONE_TIME"
TYPE_INSTALLMENT = "INSTALLMENT"

IMPORT_FORMAT_DELIMITED = "DELIMITED"
IMPORT_FORMAT_CARD_STATEMENT = "CARD_STATEMENT"

IMPORT_STATUS_SUCCESS = "SUCCESS"
IMPORT_STATUS_FAILED = "FAILED"
IMPORT_STATUS_ROLLED_BACK = "ROLLED_BACK"


# ---------------------------
# Reference: accounts, users, categories, cards
# ---------------------------


class Account(Base):
    __tablename__ = "ledger_accounts"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


class LedgerUser(Base):
    __tablename__ = "ledger_users"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ledger_accounts.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)


class Category(Base):
    __tablename__ = "ledger_categories"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ledger_accounts.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("account_id", "name", name="uq_ledger_categories_account_name"),
    )


class CreditCard(Base):
    __tablename__ = "ledger_credit_cards"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ledger_accounts.id", ondelete="CASCADE"), nullable=False
    )
    # Optional: cards imported before holders were registered have no holder
    holder_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("ledger_users.id", ondelete="SET NULL"), nullable=True
    )
    nickname: Mapped[str] = mapped_column(String, nullable=False)
    last_four_digits: Mapped[str] = mapped_column(CHAR(4), nullable=False)

    holder: Mapped[LedgerUser | None] = relationship(lazy="joined")


# ---------------------------
# Learned description mappings
# ---------------------------


class DescriptionMapping(Base):
    __tablename__ = "ledger_description_mappings"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ledger_accounts.id", ondelete="CASCADE"), nullable=False
    )
    original_description: Mapped[str] = mapped_column(Text, nullable=False)
    # Key produced by ``statement_ingest.normalizers.normalize_description``
    normalized_description: Mapped[str] = mapped_column(Text, nullable=False)
    simplified_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("ledger_categories.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "normalized_description",
            name="uq_ledger_mappings_account_normalized",
        ),
    )


# ---------------------------
# Import history
# ---------------------------


class ImportRecord(Base):
    __tablename__ = "ledger_imports"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ledger_accounts.id", ondelete="CASCADE"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(String, nullable=False)
    format: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    imported_rows: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    skipped_rows: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        CheckConstraint(
            "format in ('DELIMITED','CARD_STATEMENT')",
            name="ck_ledger_imports_format",
        ),
        CheckConstraint(
            "status in ('SUCCESS','FAILED','ROLLED_BACK')",
            name="ck_ledger_imports_status",
        ),
    )


# ---------------------------
# Core: ledger_transactions
# ---------------------------


transaction_responsibles = Table(
    "ledger_transaction_responsibles",
    Base.metadata,
    Column(
        "transaction_id",
        BigInteger,
        ForeignKey("ledger_transactions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        BigInteger,
        ForeignKey("ledger_users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ledger_accounts.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # Mapping key of ``description``; mapping edits cascade through this column.
    normalized_description: Mapped[str] = mapped_column(Text, nullable=False)
    simplified_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("ledger_categories.id", ondelete="SET NULL"), nullable=True
    )
    # Signed: expenses are negative, credits/refunds positive.
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    foreign_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    credit_card_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("ledger_credit_cards.id", ondelete="SET NULL"), nullable=True
    )
    source: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'MANUAL'")
    )
    transaction_type: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'ONE_TIME'")
    )
    current_installment: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_installments: Mapped[int | None] = mapped_column(Integer, nullable=True)
    raw_fingerprint: Mapped[str] = mapped_column(CHAR(64), nullable=False, unique=True)
    normalized_fingerprint: Mapped[str | None] = mapped_column(
        CHAR(64), nullable=True, unique=True
    )
    is_reversal: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false"), default=False
    )
    related_transaction_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("ledger_transactions.id", ondelete="SET NULL"),
        nullable=True,
    )
    import_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("ledger_imports.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    credit_card: Mapped[CreditCard | None] = relationship()
    category: Mapped[Category | None] = relationship()
    related_transaction: Mapped[LedgerTransaction | None] = relationship(
        remote_side=[id]
    )
    responsibles: Mapped[list[LedgerUser]] = relationship(secondary=transaction_responsibles)

    __table_args__ = (
        CheckConstraint(
            "source in ('MANUAL','IMPORTED')",
            name="ck_ledger_tx_source",
        ),
        CheckConstraint(
            "transaction_type in ('ONE_TIME','INSTALLMENT')",
            name="ck_ledger_tx_type",
        ),
        CheckConstraint(
            "NOT is_reversal OR related_transaction_id IS NOT NULL",
            name="ck_ledger_tx_reversal_related",
        ),
        CheckConstraint(
            "related_transaction_id IS NULL OR related_transaction_id <> id",
            name="ck_ledger_tx_related_distinct",
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return (
            f"LedgerTransaction(id={self.id!r}, date={self.date!r}, "
            f"description={self.description!r}, amount={self.amount!r}, "
            f"source={self.source!r})"
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
    "transaction_responsibles",
    "SOURCE_MANUAL",
    "SOURCE_IMPORTED",
    "TYPE_ONE_TIME",
    "TYPE_INSTALLMENT",
    "IMPORT_FORMAT_DELIMITED",
    "IMPORT_FORMAT_CARD_STATEMENT",
    "IMPORT_STATUS_SUCCESS",
    "IMPORT_STATUS_FAILED",
    "IMPORT_STATUS_ROLLED_BACK",
]
