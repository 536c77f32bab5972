"""
ReferralCommission model.

Commission paid to an upline account for a qualifying event of a
downline account. Created only by the referral commission engine.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from earnhub.models.base import Base
from earnhub.models.types import MoneyType, RateType


class ReferralCommission(Base):
    """Referral commission record."""

    __tablename__ = "referral_commissions"
    __table_args__ = (
        # Reprocessing the same event never pays a level twice
        UniqueConstraint(
            "source_ref",
            "referrer_id",
            "depth",
            name="uq_referral_commissions_source_referrer_depth",
        ),
        CheckConstraint("depth >= 1", name="depth_positive"),
        CheckConstraint("amount > 0", name="amount_positive"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    referred_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    source_ref: Mapped[str] = mapped_column(
        String(255), nullable=False
    )
    event_type: Mapped[str] = mapped_column(
        String(32), nullable=False
    )
    source_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    rate: Mapped[Decimal] = mapped_column(
        RateType, nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    depth: Mapped[int] = mapped_column(
        Integer, nullable=False
    )

    # Ledger row crediting the referrer's income wallet
    transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralCommission(id={self.id}, referrer_id={self.referrer_id}, "
            f"referred_id={self.referred_id}, depth={self.depth}, amount={self.amount})>"
        )
