"""Async ledger access: blockhash windows, airdrops, balances and confirmation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from .errors import (
    BlockhashExpired,
    InsufficientFunds,
    NetworkError,
    TransactionFailure,
)

logger = logging.getLogger("walletlink.ledger")

# Statuses that satisfy "confirmed" commitment.
_CONFIRMED_STATUSES = (
    TransactionConfirmationStatus.Confirmed,
    TransactionConfirmationStatus.Finalized,
)

_INSUFFICIENT_MARKERS = (
    "insufficient lamports",
    "insufficient funds",
    "insufficientfunds",
    "no record of a prior credit",
)


@dataclass(frozen=True)
class BlockhashWindow:
    """A recent blockhash and the last block height it can confirm at."""

    blockhash: Hash
    last_valid_block_height: int


def _looks_like_insufficient_funds(error: Any) -> bool:
    text = str(error).lower()
    return any(marker in text for marker in _INSUFFICIENT_MARKERS)


class LedgerClient:
    """Wrap an ``AsyncClient`` and translate its failures into session errors.

    Every call is a single attempt. Reads raise ``NetworkError``; submissions
    raise ``TransactionFailure`` or ``InsufficientFunds``.
    """

    def __init__(
        self,
        rpc: AsyncClient,
        commitment: Commitment = Confirmed,
        poll_interval_seconds: float = 0.5,
    ) -> None:
        self.rpc = rpc
        self.commitment = commitment
        self.poll_interval_seconds = poll_interval_seconds

    @classmethod
    def for_endpoint(
        cls, endpoint: str, poll_interval_seconds: float = 0.5
    ) -> "LedgerClient":
        return cls(
            AsyncClient(endpoint, commitment=Confirmed),
            commitment=Confirmed,
            poll_interval_seconds=poll_interval_seconds,
        )

    async def close(self) -> None:
        await self.rpc.close()

    async def _read(self, description: str, call: Any) -> Any:
        try:
            response = await call
        except (SolanaRpcException, RPCException) as exc:
            logger.warning(f"{description} failed: {exc}")
            raise NetworkError(f"{description} failed: {exc}") from exc
        return response.value

    async def get_latest_blockhash(self) -> BlockhashWindow:
        value = await self._read(
            "getLatestBlockhash", self.rpc.get_latest_blockhash(self.commitment)
        )
        return BlockhashWindow(
            blockhash=value.blockhash,
            last_valid_block_height=value.last_valid_block_height,
        )

    async def get_block_height(self) -> int:
        return await self._read("getBlockHeight", self.rpc.get_block_height(self.commitment))

    async def get_balance(self, public_key: Pubkey) -> int:
        return await self._read(
            f"getBalance({public_key})", self.rpc.get_balance(public_key, self.commitment)
        )

    async def get_fee_for_message(self, message: Message) -> Optional[int]:
        return await self._read(
            "getFeeForMessage", self.rpc.get_fee_for_message(message, self.commitment)
        )

    async def request_airdrop(self, public_key: Pubkey, lamports: int) -> Signature:
        signature = await self._read(
            f"requestAirdrop({public_key})",
            self.rpc.request_airdrop(public_key, lamports, self.commitment),
        )
        logger.info(f"Airdrop of {lamports} lamports requested for {public_key}: {signature}")
        return signature

    async def confirm_transaction(self, signature: Signature, window: BlockhashWindow) -> None:
        """Poll until ``signature`` is confirmed or the window's height passes.

        Raises ``BlockhashExpired`` once the block height exceeds the window and
        ``TransactionFailure`` (``InsufficientFunds`` for a fee or balance
        shortfall) when the ledger reports an execution error.
        """

        while True:
            block_height = await self.get_block_height()
            statuses = await self._read(
                "getSignatureStatuses", self.rpc.get_signature_statuses([signature])
            )
            status = statuses[0] if statuses else None
            if status is not None:
                if status.err is not None:
                    if _looks_like_insufficient_funds(status.err):
                        raise InsufficientFunds(
                            f"Transaction {signature} failed: {status.err}"
                        )
                    raise TransactionFailure(
                        f"Transaction {signature} failed: {status.err}", str(signature)
                    )
                if status.confirmation_status in _CONFIRMED_STATUSES:
                    logger.debug(f"{signature} confirmed at height {block_height}")
                    return
            if block_height > window.last_valid_block_height:
                raise BlockhashExpired(str(signature), window.last_valid_block_height)
            await asyncio.sleep(self.poll_interval_seconds)

    async def submit_and_confirm(
        self, transaction: Transaction, window: BlockhashWindow
    ) -> Signature:
        """Send already-signed ``transaction`` once and wait for confirmation.

        The node may rebroadcast the same signed bytes; the signature is the
        ledger's deduplication key, so a rebroadcast cannot apply twice.
        """

        signature = transaction.signatures[0]
        opts = TxOpts(
            skip_confirmation=True,
            preflight_commitment=self.commitment,
            last_valid_block_height=window.last_valid_block_height,
        )
        try:
            await self.rpc.send_raw_transaction(bytes(transaction), opts=opts)
        except RPCException as exc:
            if _looks_like_insufficient_funds(exc):
                raise InsufficientFunds(f"Network rejected transfer: {exc}") from exc
            raise TransactionFailure(
                f"Network rejected transaction: {exc}", str(signature)
            ) from exc
        except SolanaRpcException as exc:
            # Outcome unknown: the transaction may still land under this signature.
            raise TransactionFailure(
                f"Submission outcome unknown: {exc}", str(signature)
            ) from exc

        logger.info(f"Submitted {signature}; waiting for confirmation")
        try:
            await self.confirm_transaction(signature, window)
        except BlockhashExpired as exc:
            raise TransactionFailure(str(exc), str(signature)) from exc
        except NetworkError as exc:
            raise TransactionFailure(
                f"Confirmation of {signature} could not be observed: {exc}", str(signature)
            ) from exc
        return signature
