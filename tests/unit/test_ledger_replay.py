"""Unit tests for ledger replay."""

from decimal import Decimal
from types import SimpleNamespace

from earnhub.models.enums import WalletType
from earnhub.services.ledger import replay_wallet


def _row(id, amount, before, after):
    return SimpleNamespace(
        id=id,
        amount=Decimal(amount),
        balance_before=Decimal(before),
        balance_after=Decimal(after),
    )


class TestReplayWallet:
    """Tests for replay_wallet."""

    def test_empty_wallet(self):
        """No rows and zero balance is consistent."""
        report = replay_wallet(WalletType.INCOME, [], Decimal("0"))
        assert report.is_consistent
        assert report.entries == 0

    def test_consistent_chain(self):
        """Linked rows summing to the stored balance pass."""
        rows = [
            _row(1, "100", "0", "100"),
            _row(2, "-30", "100", "70"),
            _row(3, "5.5", "70", "75.5"),
        ]
        report = replay_wallet(WalletType.PERSONAL, rows, Decimal("75.5"))

        assert report.is_consistent
        assert report.entries == 3
        assert report.replayed_balance == Decimal("75.5")

    def test_broken_link_reported(self):
        """A row whose before does not match the previous after is flagged."""
        rows = [
            _row(1, "100", "0", "100"),
            _row(2, "10", "90", "100"),
        ]
        report = replay_wallet(WalletType.INCOME, rows, Decimal("110"))

        assert not report.is_consistent
        assert report.broken_links == [2]

    def test_stored_balance_mismatch(self):
        """A profile balance out of line with the rows fails replay."""
        rows = [_row(1, "100", "0", "100")]
        report = replay_wallet(WalletType.INCOME, rows, Decimal("150"))

        assert report.broken_links == []
        assert not report.is_consistent
