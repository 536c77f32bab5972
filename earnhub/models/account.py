"""
Account model.

One account per external identity. Owns the membership tier reference,
the cached daily quota and the referral links.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from earnhub.models.base import Base


if TYPE_CHECKING:
    from earnhub.models.plan import Plan
    from earnhub.models.profile import Profile


class Account(Base):
    """Account model - one row per external identity."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "daily_task_quota >= 0", name="daily_task_quota_non_negative"
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Identity
    external_ref: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    display_handle: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False
    )

    # Membership tier
    plan_id: Mapped[int] = mapped_column(
        ForeignKey("plans.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    # Cached copy of plan.daily_task_quota, rewritten on tier change and by
    # quota reconciliation
    daily_task_quota: Mapped[int] = mapped_column(
        Integer, nullable=False
    )

    # Referral
    referral_code: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )
    referred_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Status flags
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    ledger_frozen: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )
    frozen_reason: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    plan: Mapped["Plan"] = relationship(
        "Plan", back_populates="accounts", lazy="joined"
    )
    profile: Mapped["Profile"] = relationship(
        "Profile",
        back_populates="account",
        uselist=False,
        cascade="all, delete-orphan",
    )
    referred_by: Mapped[Optional["Account"]] = relationship(
        "Account",
        remote_side=[id],
        back_populates="referrals",
        foreign_keys=[referred_by_id],
    )
    referrals: Mapped[list["Account"]] = relationship(
        "Account",
        back_populates="referred_by",
        foreign_keys=[referred_by_id],
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Account(id={self.id}, handle={self.display_handle!r}, "
            f"plan_id={self.plan_id}, quota={self.daily_task_quota})>"
        )
