"""Desktop console that drives a wallet session."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Awaitable, Optional, TypeVar

from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QLineEdit,
    QListWidget,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from .config import INSTALL_URL, LAMPORTS_PER_SOL, Settings, configure_logging
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
from .provider import build_host_environment, detect
from .session import DemoSession
from .theme import STYLESHEET, link, muted

logger = logging.getLogger("walletlink.app")

T = TypeVar("T")

ERROR_TITLES: dict[type, str] = {
    ProviderAbsent: "No wallet provider",
    UserRejected: "Connection rejected",
    NotConnected: "Wallet not connected",
    FundingTimeout: "Airdrop not confirmed",
    UnfundedAccount: "No funded account",
    InsufficientFunds: "Insufficient funds",
    TransactionFailure: "Transfer failed",
    NetworkError: "Network error",
}

AIRDROP_TITLES: dict[type, str] = {**ERROR_TITLES, TransactionFailure: "Airdrop failed"}


def _sol(lamports: int) -> str:
    return f"{lamports / LAMPORTS_PER_SOL:.4f} SOL"


def ask_passphrase() -> Optional[str]:
    """Prompt for the keystore passphrase; ``None`` when the user cancels."""

    passphrase, ok = QInputDialog.getText(
        None,
        "Approve connection",
        "Keystore passphrase:",
        QLineEdit.EchoMode.Password,
    )
    return passphrase if ok and passphrase else None


class DemoConsole(QWidget):
    def __init__(
        self,
        session: DemoSession,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        super().__init__()
        self.session = session
        self._loop = loop or asyncio.new_event_loop()
        self.setWindowTitle("Wallet Session Demo")
        self.setMinimumSize(640, 480)
        self._build()
        self.session.subscribe_connection(lambda _state: self._update_view())
        self.session.subscribe_activity(self._append_activity)
        self._update_view()

    def _build(self) -> None:
        layout = QVBoxLayout()

        navbar = QHBoxLayout()
        self.create_button = QPushButton("Create a new Solana account")
        self.create_button.clicked.connect(self._create_account)
        self.transfer_button = QPushButton("Transfer to connected wallet")
        self.transfer_button.clicked.connect(self._transfer)
        self.disconnect_button = QPushButton("Disconnect")
        self.disconnect_button.clicked.connect(self._disconnect_wallet)
        navbar.addWidget(self.create_button)
        navbar.addWidget(self.transfer_button)
        navbar.addStretch()
        navbar.addWidget(self.disconnect_button)

        header = QLabel("Connect to Phantom Wallet")
        header.setStyleSheet("font-size: 20pt; font-weight: 700;")

        self.connect_button = QPushButton("Connect Wallet")
        self.connect_button.clicked.connect(self._connect_wallet)

        self.public_key_label = QLabel("")
        self.public_key_label.setObjectName("muted")

        self.fallback_label = QLabel(
            f"No provider found. Install {link(INSTALL_URL, 'Phantom Browser extension')} "
            f"or create a keystore at {self.session.settings.keystore_path}"
        )
        self.fallback_label.setOpenExternalLinks(True)
        self.fallback_label.setWordWrap(True)

        self.activity_list = QListWidget()
        self.activity_list.addItem("Ready.")

        layout.addLayout(navbar)
        layout.addWidget(header)
        layout.addWidget(self.connect_button)
        layout.addWidget(self.public_key_label)
        layout.addWidget(self.fallback_label)
        layout.addWidget(QLabel(muted(f"Cluster: {self.session.settings.network}")))
        layout.addWidget(self.activity_list)
        self.setLayout(layout)

    @property
    def action_buttons(self) -> list[QPushButton]:
        return [self.create_button, self.transfer_button, self.disconnect_button]

    def _update_view(self) -> None:
        detected = self.session.provider_detected
        connected = self.session.connected
        for button in self.action_buttons:
            button.setVisible(detected and connected)
        self.connect_button.setVisible(detected and not connected)
        self.public_key_label.setVisible(detected and connected)
        self.public_key_label.setText(str(self.session.public_key or ""))
        self.fallback_label.setVisible(not detected)

    def _run(
        self, coro: Awaitable[T], titles: Optional[dict[type, str]] = None
    ) -> Optional[T]:
        """Run ``coro`` on the console's loop; report failures and return None.

        ``titles`` overrides the dialog title per error type for this action.
        """

        try:
            return self._loop.run_until_complete(coro)
        except WalletLinkError as exc:
            titles = titles or ERROR_TITLES
            title = next(
                (text for kind, text in titles.items() if isinstance(exc, kind)),
                "Wallet error",
            )
            logger.warning(f"{title}: {exc}")
            self._show_error(title, str(exc))
        except ValueError as exc:
            self._show_error("Invalid request", str(exc))
        return None

    def _connect_wallet(self) -> None:
        self._run(self.session.connect())

    def _disconnect_wallet(self) -> None:
        self.session.disconnect()

    def _create_account(self) -> None:
        account = self._run(self.session.create_funded_account(), AIRDROP_TITLES)
        if account is not None:
            self._append_activity(f"Airdrop confirmed: {_sol(account.funded_lamports)}")

    def _transfer(self) -> None:
        result = self._run(self.session.transfer_to_wallet())
        if result is None:
            return
        self._append_activity(
            f"Connected wallet {_sol(result.dest_balance_before)} -> "
            f"{_sol(result.dest_balance_after)}"
        )
        self._append_activity(
            f"Ephemeral account {_sol(result.source_balance_before)} -> "
            f"{_sol(result.source_balance_after)}"
        )
        self._append_activity(
            f"Explorer: {self.session.settings.explorer_url(result.signature)}"
        )

    def _append_activity(self, message: str) -> None:
        self.activity_list.addItem(message)

    def _show_error(self, title: str, message: str) -> None:
        QMessageBox.critical(self, title, message)

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt override
        if not self._loop.is_closed():
            self._loop.run_until_complete(self.session.close())
            self._loop.close()
        super().closeEvent(event)


def build_window(settings: Settings) -> DemoConsole:
    host: dict[str, Any] = build_host_environment(settings, ask_passphrase)
    provider = detect(host)
    session = DemoSession.from_settings(provider, settings)
    return DemoConsole(session)


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = QApplication(sys.argv)
    app.setStyleSheet(STYLESHEET)
    window = build_window(settings)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
