"""
TierChange model.

Audit trail of plan assignments applied to accounts.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from earnhub.models.base import Base


class TierChange(Base):
    """Tier change record."""

    __tablename__ = "tier_changes"
    __table_args__ = (
        # One tier change per causing event and account
        UniqueConstraint(
            "account_id", "source_ref", name="uq_tier_changes_account_source_ref"
        ),
        Index("idx_tier_changes_account_created", "account_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    from_plan_id: Mapped[int | None] = mapped_column(
        ForeignKey("plans.id", ondelete="SET NULL"),
        nullable=True,
    )
    to_plan_id: Mapped[int] = mapped_column(
        ForeignKey("plans.id", ondelete="RESTRICT"),
        nullable=False,
    )
    reason: Mapped[str] = mapped_column(
        String(32), nullable=False
    )
    source_ref: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TierChange(account_id={self.account_id}, "
            f"{self.from_plan_id}->{self.to_plan_id}, reason={self.reason})>"
        )
