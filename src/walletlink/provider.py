"""Signing-provider capability, detection in a host environment, and a local provider."""

from __future__ import annotations

import asyncio
import logging
from typing import (
    Any,
    Callable,
    Literal,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Union,
    runtime_checkable,
)

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from .config import Settings
from .errors import UserRejected
from .keystore import Keystore

logger = logging.getLogger("walletlink.provider")

ProviderEvent = Literal["connect", "disconnect", "accountChanged"]
DisplayEncoding = Literal["utf8", "hex"]

PROVIDER_SLOT = "solana"
CAPABILITY_MARKER = "is_phantom"


@runtime_checkable
class WalletProvider(Protocol):
    """Operations an injected wallet exposes without revealing key material."""

    public_key: Optional[Pubkey]
    is_connected: bool

    async def connect(self, only_if_trusted: bool = False) -> Pubkey: ...

    async def disconnect(self) -> None: ...

    async def sign_transaction(self, transaction: Transaction) -> Transaction: ...

    async def sign_all_transactions(
        self, transactions: Sequence[Transaction]
    ) -> list[Transaction]: ...

    async def sign_message(
        self, message: Union[bytes, str], display: DisplayEncoding = "utf8"
    ) -> Signature: ...

    def on(self, event: ProviderEvent, handler: Callable[[Any], None]) -> None: ...

    async def request(self, method: str, params: Any = None) -> Any: ...


def detect(host: Any) -> Optional[WalletProvider]:
    """Return the host's injected provider if it carries the capability marker.

    ``host`` may be a mapping or any object with a ``solana`` attribute. A
    missing slot, a false marker, or a lookup that raises all mean "no
    provider"; this function never raises.
    """

    try:
        if isinstance(host, Mapping):
            candidate = host.get(PROVIDER_SLOT)
        else:
            candidate = getattr(host, PROVIDER_SLOT, None)
        if candidate is not None and bool(getattr(candidate, CAPABILITY_MARKER, False)):
            return candidate
    except Exception as exc:  # noqa: BLE001 - a broken host has no provider
        logger.debug(f"Provider lookup failed: {exc}")
    return None


class KeystoreProvider:
    """Desktop signing provider holding a keystore-backed key in memory.

    Connecting asks ``ask_passphrase`` for the keystore passphrase the first
    time; later connections are trusted until ``lock`` is called.
    """

    is_phantom = True

    def __init__(
        self,
        keystore: Keystore,
        ask_passphrase: Callable[[], Optional[str]],
    ) -> None:
        self.keystore = keystore
        self.ask_passphrase = ask_passphrase
        self.is_connected = False
        self._keypair: Optional[Keypair] = None
        self._handlers: dict[str, list[Callable[[Any], None]]] = {
            "connect": [],
            "disconnect": [],
            "accountChanged": [],
        }

    @property
    def public_key(self) -> Optional[Pubkey]:
        if not self.is_connected or self._keypair is None:
            return None
        return self._keypair.pubkey()

    @property
    def trusted(self) -> bool:
        return self._keypair is not None

    def on(self, event: ProviderEvent, handler: Callable[[Any], None]) -> None:
        if event not in self._handlers:
            raise ValueError(f"Unsupported provider event: {event}")
        self._handlers[event].append(handler)

    def _emit(self, event: ProviderEvent, payload: Any = None) -> None:
        for handler in list(self._handlers[event]):
            handler(payload)

    async def connect(self, only_if_trusted: bool = False) -> Pubkey:
        if self._keypair is None:
            if only_if_trusted:
                raise UserRejected("Wallet has not approved this application yet")
            passphrase = self.ask_passphrase()
            if not passphrase:
                raise UserRejected("User rejected the request.")
            try:
                # PBKDF2 unlock runs off the event loop.
                keypair = await asyncio.to_thread(self.keystore.unlock, passphrase)
            except ValueError as exc:
                raise UserRejected(str(exc)) from exc
            self._keypair = keypair

        self.is_connected = True
        public_key = self._keypair.pubkey()
        self._emit("connect", public_key)
        return public_key

    async def disconnect(self) -> None:
        self.is_connected = False
        self._emit("disconnect")

    def lock(self) -> None:
        """Drop the in-memory key; the next connect prompts again."""

        was_connected = self.is_connected
        self._keypair = None
        self.is_connected = False
        if was_connected:
            self._emit("accountChanged", None)

    def _require_keypair(self) -> Keypair:
        if not self.is_connected or self._keypair is None:
            raise RuntimeError("Wallet is not connected")
        return self._keypair

    async def sign_transaction(self, transaction: Transaction) -> Transaction:
        keypair = self._require_keypair()
        transaction.partial_sign([keypair], transaction.message.recent_blockhash)
        return transaction

    async def sign_all_transactions(
        self, transactions: Sequence[Transaction]
    ) -> list[Transaction]:
        return [await self.sign_transaction(transaction) for transaction in transactions]

    async def sign_message(
        self, message: Union[bytes, str], display: DisplayEncoding = "utf8"
    ) -> Signature:
        keypair = self._require_keypair()
        if isinstance(message, str):
            data = bytes.fromhex(message) if display == "hex" else message.encode("utf-8")
        else:
            data = bytes(message)
        return keypair.sign_message(data)

    async def request(self, method: str, params: Any = None) -> Any:
        """Dispatch a provider RPC by its wallet-standard method name."""

        params = params or {}
        if method == "connect":
            return await self.connect(bool(params.get("onlyIfTrusted", False)))
        if method == "disconnect":
            return await self.disconnect()
        if method == "signTransaction":
            return await self.sign_transaction(params["transaction"])
        if method == "signAllTransactions":
            return await self.sign_all_transactions(params["transactions"])
        if method == "signMessage":
            return await self.sign_message(params["message"], params.get("display", "utf8"))
        raise ValueError(f"Unsupported provider method: {method}")


def build_host_environment(
    settings: Settings, ask_passphrase: Callable[[], Optional[str]]
) -> dict[str, Any]:
    """Assemble the desktop host, injecting a provider only if a keystore exists."""

    keystore = Keystore(settings.keystore_path)
    if not keystore.exists:
        logger.info(f"No keystore at {settings.keystore_path}; no provider injected")
        return {}
    return {PROVIDER_SLOT: KeystoreProvider(keystore, ask_passphrase)}
