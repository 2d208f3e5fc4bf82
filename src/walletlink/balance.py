"""Single balance reads against the ledger."""

from __future__ import annotations

import logging

from solders.pubkey import Pubkey

from .ledger import LedgerClient

logger = logging.getLogger("walletlink.balance")


class BalanceOracle:
    """Read an account's lamport balance at the ledger client's commitment.

    No retry is attempted; a failed read raises ``NetworkError`` and the caller
    decides whether to ask again.
    """

    def __init__(self, ledger: LedgerClient) -> None:
        self.ledger = ledger

    async def get_balance(self, public_key: Pubkey) -> int:
        lamports = await self.ledger.get_balance(public_key)
        logger.debug(f"Balance of {public_key}: {lamports} lamports")
        return lamports
