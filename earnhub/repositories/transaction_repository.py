"""
Transaction repository.

Data access layer for the append-only ledger. No update or delete
operations are exposed.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.enums import TransactionType, WalletType
from earnhub.models.transaction import Transaction
from earnhub.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Ledger repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transaction repository."""
        super().__init__(Transaction, session)

    async def get_last(
        self, account_id: int, wallet: WalletType
    ) -> Transaction | None:
        """
        Get the latest ledger row of a wallet.

        Args:
            account_id: Account ID
            wallet: Wallet

        Returns:
            Row with the highest id, or None for an empty wallet
        """
        stmt = (
            select(Transaction)
            .where(
                Transaction.account_id == account_id,
                Transaction.wallet == wallet,
            )
            .order_by(Transaction.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_reference(
        self,
        account_id: int,
        wallet: WalletType,
        tx_type: TransactionType,
        reference: str,
    ) -> Transaction | None:
        """Get the ledger row recorded for a causing event."""
        return await self.get_by(
            account_id=account_id,
            wallet=wallet,
            tx_type=tx_type,
            reference=reference,
        )

    async def get_chain(
        self, account_id: int, wallet: WalletType
    ) -> list[Transaction]:
        """Get every ledger row of a wallet in chain order."""
        stmt = (
            select(Transaction)
            .where(
                Transaction.account_id == account_id,
                Transaction.wallet == wallet,
            )
            .order_by(Transaction.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_history(
        self,
        account_id: int,
        wallet: WalletType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Transaction]:
        """
        Get ledger rows of an account, newest first.

        Args:
            account_id: Account ID
            wallet: Optional wallet filter
            limit: Max number of rows
            offset: Number of rows to skip

        Returns:
            Ledger rows
        """
        stmt = select(Transaction).where(Transaction.account_id == account_id)
        if wallet is not None:
            stmt = stmt.where(Transaction.wallet == wallet)
        stmt = (
            stmt.order_by(Transaction.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
