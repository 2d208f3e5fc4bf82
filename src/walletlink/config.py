"""Runtime settings for the wallet session console."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping, Optional

from dotenv import load_dotenv

Network = Literal["Mainnet", "Testnet", "Devnet"]
NETWORKS: list[Network] = ["Mainnet", "Testnet", "Devnet"]

DEFAULT_ENDPOINTS: dict[Network, list[str]] = {
    "Mainnet": [
        "https://api.mainnet-beta.solana.com",
    ],
    "Testnet": [
        "https://api.testnet.solana.com",
    ],
    "Devnet": [
        "https://api.devnet.solana.com",
        "https://rpc.ankr.com/solana_devnet",
    ],
}

LAMPORTS_PER_SOL = 1_000_000_000

DEFAULT_KEYSTORE = Path.home() / ".walletlink" / "keystore.json"
INSTALL_URL = "https://phantom.app/"

ENV_PREFIX = "WALLETLINK_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be positive, got {value}")
    return value


@dataclass
class Settings:
    """Cluster, keystore and demo amounts used by the session."""

    network: Network = "Devnet"
    rpc_url: Optional[str] = None
    keystore_path: Path = field(default_factory=lambda: DEFAULT_KEYSTORE)
    airdrop_lamports: int = 2 * LAMPORTS_PER_SOL
    transfer_lamports: int = LAMPORTS_PER_SOL
    poll_interval_seconds: float = 0.5
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.network not in NETWORKS:
            raise ValueError(
                f"Unknown network {self.network!r}. Available: {', '.join(NETWORKS)}"
            )
        if self.poll_interval_seconds < 0:
            raise ValueError("Poll interval cannot be negative")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Unknown log level {self.log_level!r}. Available: {', '.join(LOG_LEVELS)}"
            )

    @property
    def endpoint(self) -> str:
        """Return the explicit RPC URL or the first endpoint of the network."""

        return self.rpc_url or DEFAULT_ENDPOINTS[self.network][0]

    @property
    def faucet_available(self) -> bool:
        return self.network != "Mainnet"

    def explorer_url(self, signature: str) -> str:
        cluster = self.network.lower()
        cluster_param = "" if cluster == "mainnet" else f"?cluster={cluster}"
        return f"https://explorer.solana.com/tx/{signature}{cluster_param}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``WALLETLINK_*`` variables, reading ``.env`` first."""

        if environ is None:
            load_dotenv()
            environ = os.environ

        def get(name: str) -> Optional[str]:
            value = environ.get(f"{ENV_PREFIX}{name}")
            return value.strip() if value and value.strip() else None

        kwargs: dict = {}
        network = get("NETWORK")
        if network is not None:
            kwargs["network"] = network.capitalize()
        if get("RPC_URL") is not None:
            kwargs["rpc_url"] = get("RPC_URL")
        keystore = get("KEYSTORE")
        if keystore is not None:
            kwargs["keystore_path"] = Path(keystore).expanduser()
        for name, key in (
            ("AIRDROP_LAMPORTS", "airdrop_lamports"),
            ("TRANSFER_LAMPORTS", "transfer_lamports"),
        ):
            raw = get(name)
            if raw is not None:
                kwargs[key] = _positive_int(name, raw)
        poll = get("POLL_SECONDS")
        if poll is not None:
            try:
                kwargs["poll_interval_seconds"] = float(poll)
            except ValueError as exc:
                raise ValueError(f"{ENV_PREFIX}POLL_SECONDS must be a number") from exc
        level = get("LOG_LEVEL")
        if level is not None:
            kwargs["log_level"] = level.upper()
        return cls(**kwargs)


def configure_logging(level: str = "INFO") -> None:
    """Install a console handler for the ``walletlink`` loggers."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
