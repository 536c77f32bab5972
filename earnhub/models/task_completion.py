"""
TaskCompletion model.

One row per rewarded task completion. Never updated or deleted.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from earnhub.models.base import Base
from earnhub.models.types import MoneyType


class TaskCompletion(Base):
    """Task completion record."""

    __tablename__ = "task_completions"
    __table_args__ = (
        # At most one completion per account, task and operative day
        UniqueConstraint(
            "account_id",
            "task_id",
            "completion_date",
            name="uq_task_completions_account_task_day",
        ),
        Index("idx_task_completions_account_day", "account_id", "completion_date"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    task_id: Mapped[str] = mapped_column(
        String(64), nullable=False
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    # Operative day of completed_at, see earnhub.utils.datetime_utils.operative_day
    completion_date: Mapped[date] = mapped_column(
        Date, nullable=False
    )
    reward_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TaskCompletion(id={self.id}, account_id={self.account_id}, "
            f"task_id={self.task_id!r}, date={self.completion_date})>"
        )
