"""Error taxonomy for wallet sessions, funding and transfers."""

from __future__ import annotations

from typing import Optional


class WalletLinkError(Exception):
    """Base class for failures surfaced by the session core."""


class ProviderAbsent(WalletLinkError):
    """No signing provider was detected in the host environment."""


class UserRejected(WalletLinkError):
    """The signing provider declined the connection request."""

    code = 4001


class NotConnected(WalletLinkError):
    """An operation needed the connected wallet key but none is authorized."""


class NetworkError(WalletLinkError):
    """A ledger request failed at the transport or RPC level."""


class BlockhashExpired(WalletLinkError):
    """The block height passed the confirmation window before confirmation."""

    def __init__(self, signature: str, last_valid_block_height: int) -> None:
        super().__init__(
            f"Signature {signature} was not confirmed before block height "
            f"{last_valid_block_height}"
        )
        self.signature = signature
        self.last_valid_block_height = last_valid_block_height


class FundingTimeout(WalletLinkError):
    """The faucet credit was not confirmed inside its blockhash window."""


class UnfundedAccount(WalletLinkError):
    """A transfer was attempted from an account without confirmed funding."""


class InsufficientFunds(WalletLinkError):
    """The source cannot cover the amount plus the network fee."""

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        available: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.required = required
        self.available = available


class TransactionFailure(WalletLinkError):
    """The network rejected, failed or expired a submitted transaction.

    ``signature`` is set whenever the transaction was signed, so a caller can
    look it up on an explorer when the outcome was ambiguous.
    """

    def __init__(self, message: str, signature: Optional[str] = None) -> None:
        super().__init__(message)
        self.signature = signature
