"""Connection lifecycle for the injected signing provider."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from solders.pubkey import Pubkey

from .errors import NotConnected, UserRejected
from .provider import WalletProvider

logger = logging.getLogger("walletlink.connection")


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class ConnectionState:
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    public_key: Optional[Pubkey] = None

    @property
    def connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED


DISCONNECTED = ConnectionState()
CONNECTING = ConnectionState(ConnectionStatus.CONNECTING)


class ConnectionManager:
    """Own the authorized wallet key for one session.

    Only this class calls the provider's ``connect``. ``disconnect`` is local:
    the provider may keep trusting the application afterwards.
    """

    def __init__(self, provider: WalletProvider) -> None:
        self.provider = provider
        self._state = DISCONNECTED
        self._lock = asyncio.Lock()
        self._listeners: list[Callable[[ConnectionState], None]] = []
        provider.on("disconnect", self._on_provider_disconnect)
        provider.on("accountChanged", self._on_account_changed)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def public_key(self) -> Optional[Pubkey]:
        return self._state.public_key if self._state.connected else None

    def require_public_key(self) -> Pubkey:
        if not self._state.connected or self._state.public_key is None:
            raise NotConnected("Connect a wallet first")
        return self._state.public_key

    def subscribe(self, listener: Callable[[ConnectionState], None]) -> None:
        self._listeners.append(listener)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in self._listeners:
            listener(state)

    async def connect(self, only_if_trusted: bool = False) -> Pubkey:
        """Authorize with the provider, or return the cached key if connected."""

        async with self._lock:
            if self._state.connected and self._state.public_key is not None:
                return self._state.public_key

            self._set_state(CONNECTING)
            try:
                public_key = await self.provider.connect(only_if_trusted=only_if_trusted)
            except UserRejected:
                logger.info("Wallet connection rejected by user")
                self._set_state(DISCONNECTED)
                raise
            except Exception:
                self._set_state(DISCONNECTED)
                raise

            logger.info(f"Wallet account {public_key}")
            self._set_state(ConnectionState(ConnectionStatus.CONNECTED, public_key))
            return public_key

    def disconnect(self) -> None:
        if self._state.connected:
            logger.info(f"Disconnected wallet {self._state.public_key}")
        self._set_state(DISCONNECTED)

    def _on_provider_disconnect(self, _payload: Any = None) -> None:
        self.disconnect()

    def _on_account_changed(self, public_key: Optional[Pubkey]) -> None:
        if public_key is None:
            self.disconnect()
            return
        if self._state.connected:
            logger.info(f"Wallet account changed to {public_key}")
            self._set_state(ConnectionState(ConnectionStatus.CONNECTED, public_key))
