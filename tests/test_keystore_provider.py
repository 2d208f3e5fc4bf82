"""Local signing provider: trust, events, signing and request dispatch."""

from __future__ import annotations

import asyncio
import sys
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from walletlink.errors import UserRejected
from walletlink.keystore import Keystore
from walletlink.provider import KeystoreProvider, WalletProvider


class KeystoreProviderTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.temp_dir = TemporaryDirectory()
        self.keypair = Keypair()
        keystore = Keystore(Path(self.temp_dir.name) / "keystore.json")
        keystore.persist("open sesame", self.keypair)
        self.answers: list = ["open sesame"]
        self.prompts = 0
        self.provider = KeystoreProvider(keystore, self._ask)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _ask(self):
        self.prompts += 1
        return self.answers.pop(0) if self.answers else None

    def test_satisfies_wallet_provider_protocol(self) -> None:
        self.assertIsInstance(self.provider, WalletProvider)

    async def test_only_if_trusted_rejects_before_first_approval(self) -> None:
        with self.assertRaises(UserRejected):
            await self.provider.connect(only_if_trusted=True)
        self.assertEqual(self.prompts, 0)

    async def test_connect_prompts_once_then_trusts(self) -> None:
        first = await self.provider.connect()
        await self.provider.disconnect()
        self.assertIsNone(self.provider.public_key)

        second = await self.provider.connect(only_if_trusted=True)

        self.assertEqual(first, self.keypair.pubkey())
        self.assertEqual(second, first)
        self.assertEqual(self.prompts, 1)

    async def test_cancelled_prompt_or_wrong_passphrase_rejects(self) -> None:
        self.answers = [None, "wrong"]
        with self.assertRaises(UserRejected):
            await self.provider.connect()
        with self.assertRaises(UserRejected):
            await self.provider.connect()
        self.assertFalse(self.provider.is_connected)

    async def test_unlock_leaves_event_loop_responsive(self) -> None:
        ticks = 0

        async def tick() -> None:
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0)

        ticker = asyncio.create_task(tick())
        try:
            await self.provider.connect()
            self.assertGreater(ticks, 0)
        finally:
            ticker.cancel()
        self.assertTrue(self.provider.is_connected)

    async def test_events_are_delivered(self) -> None:
        seen: list = []
        self.provider.on("connect", lambda key: seen.append(("connect", key)))
        self.provider.on("disconnect", lambda _: seen.append(("disconnect", None)))
        self.provider.on("accountChanged", lambda key: seen.append(("accountChanged", key)))

        await self.provider.connect()
        await self.provider.disconnect()
        await self.provider.connect()
        self.provider.lock()

        self.assertEqual(
            seen,
            [
                ("connect", self.keypair.pubkey()),
                ("disconnect", None),
                ("connect", self.keypair.pubkey()),
                ("accountChanged", None),
            ],
        )
        self.assertFalse(self.provider.trusted)

    async def test_signing_requires_connection(self) -> None:
        with self.assertRaises(RuntimeError):
            await self.provider.sign_message(b"hello")

    async def test_sign_message_and_transaction(self) -> None:
        await self.provider.connect()
        signature = await self.provider.sign_message("hello")
        self.assertTrue(signature.verify(self.keypair.pubkey(), b"hello"))

        blockhash = Hash.new_unique()
        instruction = transfer(
            TransferParams(
                from_pubkey=self.keypair.pubkey(),
                to_pubkey=Pubkey.new_unique(),
                lamports=10,
            )
        )
        message = Message.new_with_blockhash([instruction], self.keypair.pubkey(), blockhash)
        unsigned = Transaction.new_unsigned(message)

        signed = await self.provider.sign_transaction(unsigned)
        signed.verify()

    async def test_request_dispatches_by_method_name(self) -> None:
        public_key = await self.provider.request("connect", {"onlyIfTrusted": False})
        self.assertEqual(public_key, self.keypair.pubkey())

        signature = await self.provider.request(
            "signMessage", {"message": "68656c6c6f", "display": "hex"}
        )
        self.assertTrue(signature.verify(self.keypair.pubkey(), b"hello"))

        await self.provider.request("disconnect")
        self.assertFalse(self.provider.is_connected)

        with self.assertRaises(ValueError):
            await self.provider.request("getAccounts")


if __name__ == "__main__":
    unittest.main()
