"""Connect a signing wallet, fund a throwaway account and transfer to the wallet."""

from .accounts import AccountFactory, EphemeralAccount, FundingStatus
from .balance import BalanceOracle
from .config import LAMPORTS_PER_SOL, Settings
from .connection import ConnectionManager, ConnectionState, ConnectionStatus
from .errors import (
    FundingTimeout,
    InsufficientFunds,
    NetworkError,
    NotConnected,
    ProviderAbsent,
    TransactionFailure,
    UnfundedAccount,
    UserRejected,
    WalletLinkError,
)
from .ledger import BlockhashWindow, LedgerClient
from .provider import KeystoreProvider, WalletProvider, detect
from .session import DemoSession
from .transfer import TransferEngine, TransferResult

__version__ = "0.1.0"

__all__ = [
    "AccountFactory",
    "BalanceOracle",
    "BlockhashWindow",
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "DemoSession",
    "EphemeralAccount",
    "FundingStatus",
    "FundingTimeout",
    "InsufficientFunds",
    "KeystoreProvider",
    "LAMPORTS_PER_SOL",
    "LedgerClient",
    "NetworkError",
    "NotConnected",
    "ProviderAbsent",
    "Settings",
    "TransactionFailure",
    "TransferEngine",
    "TransferResult",
    "UnfundedAccount",
    "UserRejected",
    "WalletLinkError",
    "WalletProvider",
    "detect",
]
