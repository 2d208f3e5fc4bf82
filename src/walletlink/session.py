"""Session orchestration tying the wallet, the faucet and transfers together."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from solders.pubkey import Pubkey

from .accounts import AccountFactory, EphemeralAccount
from .balance import BalanceOracle
from .config import Settings
from .connection import ConnectionManager, ConnectionState
from .errors import ProviderAbsent, UnfundedAccount
from .ledger import LedgerClient
from .provider import WalletProvider
from .transfer import TransferEngine, TransferResult

logger = logging.getLogger("walletlink.session")


class DemoSession:
    """One user session: a connected wallet and at most one ephemeral account."""

    def __init__(
        self,
        provider: Optional[WalletProvider],
        ledger: LedgerClient,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.provider = provider
        self.ledger = ledger
        self.connection = ConnectionManager(provider) if provider is not None else None
        self.oracle = BalanceOracle(ledger)
        self.accounts = AccountFactory(ledger)
        self.engine = TransferEngine(ledger, self.oracle)
        self.account: Optional[EphemeralAccount] = None
        self.history: list[TransferResult] = []
        self.activity: list[str] = []
        self._activity_listeners: list[Callable[[str], None]] = []

    @classmethod
    def from_settings(
        cls, provider: Optional[WalletProvider], settings: Settings
    ) -> "DemoSession":
        ledger = LedgerClient.for_endpoint(
            settings.endpoint, poll_interval_seconds=settings.poll_interval_seconds
        )
        return cls(provider, ledger, settings)

    async def __aenter__(self) -> "DemoSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.ledger.close()

    @property
    def provider_detected(self) -> bool:
        return self.connection is not None

    @property
    def connected(self) -> bool:
        return self.connection is not None and self.connection.state.connected

    @property
    def public_key(self) -> Optional[Pubkey]:
        return self.connection.public_key if self.connection is not None else None

    def subscribe_activity(self, listener: Callable[[str], None]) -> None:
        self._activity_listeners.append(listener)

    def subscribe_connection(self, listener: Callable[[ConnectionState], None]) -> None:
        if self.connection is not None:
            self.connection.subscribe(listener)

    def record_activity(self, description: str) -> None:
        self.activity.append(description)
        for listener in self._activity_listeners:
            listener(description)

    def _require_connection(self) -> ConnectionManager:
        if self.connection is None:
            raise ProviderAbsent("No wallet provider detected")
        return self.connection

    async def connect(self, only_if_trusted: bool = False) -> Pubkey:
        public_key = await self._require_connection().connect(only_if_trusted)
        self.record_activity(f"Connected wallet {public_key}")
        return public_key

    def disconnect(self) -> None:
        if self.connection is not None and self.connection.state.connected:
            self.connection.disconnect()
            self.record_activity("Wallet disconnected")

    async def create_funded_account(self, amount: Optional[int] = None) -> EphemeralAccount:
        """Create and fund a new account; it replaces the live one only on success."""

        if not self.settings.faucet_available:
            raise ValueError(f"No faucet is available on {self.settings.network}")
        amount = self.settings.airdrop_lamports if amount is None else amount
        account = await self.accounts.create_funded_account(amount)
        self.account = account
        self.record_activity(f"Funded {account.public_key} with {amount} lamports")
        return account

    async def get_balance(self, public_key: Pubkey) -> int:
        return await self.oracle.get_balance(public_key)

    async def transfer_to_wallet(self, amount: Optional[int] = None) -> TransferResult:
        """Send ``amount`` from the live ephemeral account to the connected wallet."""

        destination = self._require_connection().require_public_key()
        if self.account is None:
            raise UnfundedAccount("Create a funded account before transferring")
        amount = self.settings.transfer_lamports if amount is None else amount
        result = await self.engine.transfer(self.account, destination, amount)
        self.history.append(result)
        self.record_activity(
            f"Transferred {result.amount} lamports to {result.destination} "
            f"({result.signature})"
        )
        return result
