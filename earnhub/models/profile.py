"""
Profile model.

One-to-one with Account. Holds trial state, wallet balances and the
per-day task counter.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from earnhub.models.base import Base
from earnhub.models.enums import WalletType
from earnhub.models.types import MoneyType


if TYPE_CHECKING:
    from earnhub.models.account import Account


class Profile(Base):
    """
    Profile entity.

    Balances are only written through the ledger, which appends a
    Transaction for every change.

    Attributes:
        account_id: Primary key and reference to the owning account
        trial_active: True while the account runs under trial terms
        trial_start_date: First operative day of the trial
        trial_end_date: Last operative day of the trial
        earning_suspended: Task rewards blocked until an explicit upgrade
        total_earnings: Cumulative rewards and commissions
        income_balance: Wallet fed by task rewards and commissions
        personal_balance: Wallet fed by deposits
        total_deposited: Cumulative confirmed deposits
        tasks_completed_today: Counter for last_reset_date
        last_reset_date: Operative day the counter belongs to
    """

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint(
            "income_balance >= 0", name="income_balance_non_negative"
        ),
        CheckConstraint(
            "personal_balance >= 0", name="personal_balance_non_negative"
        ),
        CheckConstraint(
            "tasks_completed_today >= 0", name="tasks_completed_today_non_negative"
        ),
    )

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True,
    )

    # Trial window
    trial_active: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )
    trial_start_date: Mapped[date | None] = mapped_column(
        Date, nullable=True
    )
    trial_end_date: Mapped[date | None] = mapped_column(
        Date, nullable=True, index=True
    )
    earning_suspended: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Wallets
    total_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    income_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    personal_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_deposited: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Daily task counter (lazy reset on the first completion of a new day)
    tasks_completed_today: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    last_reset_date: Mapped[date | None] = mapped_column(
        Date, nullable=True
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

    account: Mapped["Account"] = relationship(
        "Account", back_populates="profile"
    )

    def balance_of(self, wallet: WalletType) -> Decimal:
        """Current balance of a wallet."""
        if wallet == WalletType.INCOME:
            return self.income_balance
        return self.personal_balance

    def is_trial_running(self, today: date) -> bool:
        """Check trial flag and window together."""
        return (
            self.trial_active
            and self.trial_end_date is not None
            and today <= self.trial_end_date
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Profile(account_id={self.account_id}, income={self.income_balance}, "
            f"personal={self.personal_balance}, today={self.tasks_completed_today})>"
        )
