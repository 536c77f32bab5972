"""
Plan model.

Membership tier: price, daily task quota, per-task reward and duration.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from earnhub.models.base import Base
from earnhub.models.types import MoneyType


if TYPE_CHECKING:
    from earnhub.models.account import Account


class Plan(Base):
    """
    Plan entity.

    Accounts reference plans by ``id``; configuration references them by
    ``code``. ``name`` is display text only and may be renamed freely.

    Attributes:
        id: Stable primary key
        code: Stable slug used in configuration (e.g. "intern")
        name: Display name
        price: Purchase price in the personal-wallet currency
        daily_task_quota: Maximum rewarded task completions per operative day
        reward_per_task: Income-wallet credit per completed task
        duration_days: Membership duration
        is_trial: True for the provisional tier assigned at registration
        is_active: Inactive plans cannot be assigned
    """

    __tablename__ = "plans"
    __table_args__ = (
        CheckConstraint("price >= 0", name="price_non_negative"),
        CheckConstraint("daily_task_quota >= 0", name="quota_non_negative"),
        CheckConstraint("reward_per_task >= 0", name="reward_non_negative"),
        CheckConstraint("duration_days >= 0", name="duration_non_negative"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    code: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False
    )

    price: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    daily_task_quota: Mapped[int] = mapped_column(
        Integer, nullable=False
    )
    reward_per_task: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    duration_days: Mapped[int] = mapped_column(
        Integer, default=30, nullable=False
    )

    is_trial: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    accounts: Mapped[list["Account"]] = relationship(
        "Account", back_populates="plan"
    )

    @property
    def daily_earning_potential(self) -> Decimal:
        """Maximum income-wallet credit per day from tasks."""
        return self.reward_per_task * self.daily_task_quota

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Plan(id={self.id}, code={self.code!r}, "
            f"quota={self.daily_task_quota}, price={self.price})>"
        )
