"""
Transaction model.

Append-only ledger row. For a given account and wallet, rows ordered by id
form a chain: each balance_before equals the previous balance_after.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from earnhub.models.base import Base
from earnhub.models.types import MoneyType


class Transaction(Base):
    """Ledger entry."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_account_created", "account_id", "created_at"),
        Index("idx_transactions_account_wallet", "account_id", "wallet", "id"),
        # One ledger row per causing event; NULL references never collide
        UniqueConstraint(
            "account_id",
            "wallet",
            "tx_type",
            "reference",
            name="uq_transactions_account_wallet_type_reference",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    wallet: Mapped[str] = mapped_column(
        String(16), nullable=False
    )
    tx_type: Mapped[str] = mapped_column(
        String(32), nullable=False, index=True
    )

    # Signed: credits positive, debits negative
    amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    balance_before: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    balance_after: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )

    # Causing event (task completion id, deposit ref, commission id, ...)
    reference_type: Mapped[str | None] = mapped_column(
        String(32), nullable=True
    )
    reference: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    description: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Transaction(id={self.id}, account_id={self.account_id}, "
            f"wallet={self.wallet}, type={self.tx_type}, amount={self.amount}, "
            f"{self.balance_before}->{self.balance_after})>"
        )
