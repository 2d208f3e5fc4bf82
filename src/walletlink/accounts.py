"""Ephemeral keypairs funded through the cluster faucet."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from .errors import BlockhashExpired, FundingTimeout
from .ledger import LedgerClient

logger = logging.getLogger("walletlink.accounts")


class FundingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"


def require_positive_amount(amount: int) -> int:
    """Return ``amount`` if it is a positive whole number of lamports."""

    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"Amount must be a whole number of lamports, got {amount!r}")
    if amount <= 0:
        raise ValueError("Amount must be greater than zero")
    return amount


@dataclass
class EphemeralAccount:
    """A session-local keypair plus the state of its faucet funding."""

    keypair: Keypair = field(repr=False)
    status: FundingStatus = FundingStatus.PENDING
    funding_signature: Optional[Signature] = None
    funded_lamports: int = 0

    @property
    def public_key(self) -> Pubkey:
        return self.keypair.pubkey()

    @property
    def confirmed(self) -> bool:
        return self.status is FundingStatus.CONFIRMED

    def __repr__(self) -> str:
        return (
            f"EphemeralAccount(public_key={self.public_key}, status={self.status.value}, "
            f"funded_lamports={self.funded_lamports})"
        )


class AccountFactory:
    """Generate keypairs locally and fund them with a faucet airdrop."""

    def __init__(self, ledger: LedgerClient) -> None:
        self.ledger = ledger

    async def create_funded_account(self, amount: int) -> EphemeralAccount:
        """Return a new account whose airdrop of ``amount`` is confirmed.

        The confirmation deadline is the blockhash window fetched right after the
        airdrop request. If the block height passes it first the account is
        discarded and ``FundingTimeout`` is raised.
        """

        require_positive_amount(amount)
        account = EphemeralAccount(keypair=Keypair())
        logger.info(f"New account created: {account.public_key}")

        signature = await self.ledger.request_airdrop(account.public_key, amount)
        account.funding_signature = signature
        window = await self.ledger.get_latest_blockhash()

        try:
            await self.ledger.confirm_transaction(signature, window)
        except BlockhashExpired as exc:
            account.status = FundingStatus.EXPIRED
            logger.warning(f"Airdrop to {account.public_key} expired unconfirmed")
            raise FundingTimeout(
                f"Airdrop {signature} was not confirmed before block height "
                f"{window.last_valid_block_height}"
            ) from exc

        account.status = FundingStatus.CONFIRMED
        account.funded_lamports = amount
        logger.info(f"Airdrop confirmed for {account.public_key}")
        return account
