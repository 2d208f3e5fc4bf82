"""Build, sign, submit and confirm lamport transfers from an ephemeral account."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from .accounts import EphemeralAccount, require_positive_amount
from .balance import BalanceOracle
from .errors import InsufficientFunds, UnfundedAccount
from .ledger import LedgerClient

logger = logging.getLogger("walletlink.transfer")

# Signature fee used when the cluster cannot price the message.
DEFAULT_SIGNATURE_FEE = 5_000


@dataclass(frozen=True)
class TransferResult:
    """Balances framed around one confirmed transfer."""

    signature: str
    source: str
    destination: str
    amount: int
    fee: int
    source_balance_before: int
    source_balance_after: int
    dest_balance_before: int
    dest_balance_after: int
    timestamp: datetime

    @property
    def source_delta(self) -> int:
        return self.source_balance_before - self.source_balance_after

    @property
    def dest_delta(self) -> int:
        return self.dest_balance_after - self.dest_balance_before


class TransferEngine:
    """Move lamports from a funded ephemeral account to a destination key.

    The ephemeral keypair lives in this process, so signing happens here. The
    connected wallet only ever appears as the destination.
    """

    def __init__(self, ledger: LedgerClient, oracle: BalanceOracle) -> None:
        self.ledger = ledger
        self.oracle = oracle

    async def transfer(
        self, source: EphemeralAccount, destination: Pubkey, amount: int
    ) -> TransferResult:
        require_positive_amount(amount)
        if not source.confirmed:
            raise UnfundedAccount(
                f"Account {source.public_key} is {source.status.value}; "
                "only confirmed accounts can send"
            )

        source_before = await self.oracle.get_balance(source.public_key)
        dest_before = await self.oracle.get_balance(destination)
        logger.info(
            f"Starting balances: source {source_before}, destination {dest_before}"
        )

        window = await self.ledger.get_latest_blockhash()
        instruction = transfer(
            TransferParams(
                from_pubkey=source.public_key,
                to_pubkey=destination,
                lamports=amount,
            )
        )
        message = Message.new_with_blockhash([instruction], source.public_key, window.blockhash)
        transaction = Transaction([source.keypair], message, window.blockhash)

        fee = await self.ledger.get_fee_for_message(message)
        if fee is None:
            fee = DEFAULT_SIGNATURE_FEE
        if source_before < amount + fee:
            raise InsufficientFunds(
                f"Source holds {source_before} lamports but the transfer needs "
                f"{amount + fee} including fees",
                required=amount + fee,
                available=source_before,
            )

        signature = await self.ledger.submit_and_confirm(transaction, window)
        logger.info(f"Transfer signature {signature}")

        source_after = await self.oracle.get_balance(source.public_key)
        dest_after = await self.oracle.get_balance(destination)
        logger.info(
            f"Finished balances: source {source_after}, destination {dest_after}"
        )

        return TransferResult(
            signature=str(signature),
            source=str(source.public_key),
            destination=str(destination),
            amount=amount,
            fee=fee,
            source_balance_before=source_before,
            source_balance_after=source_after,
            dest_balance_before=dest_before,
            dest_balance_after=dest_after,
            timestamp=datetime.now(timezone.utc),
        )
