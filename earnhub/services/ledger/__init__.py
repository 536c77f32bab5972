"""
Ledger services package.

Append-only wallet ledger:
- ledger_service: posting, deposits, withdrawals, history, verification
- replay: pure chain and balance checks
"""

from earnhub.services.ledger.ledger_service import LedgerService
from earnhub.services.ledger.replay import ReplayReport, quantize_money, replay_wallet


__all__ = [
    "LedgerService",
    "ReplayReport",
    "quantize_money",
    "replay_wallet",
]
