"""Ephemeral account funding against a fake cluster."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from fakes import FakeRpc

from walletlink.accounts import AccountFactory, FundingStatus, require_positive_amount
from walletlink.config import LAMPORTS_PER_SOL
from walletlink.errors import FundingTimeout, NetworkError
from walletlink.ledger import LedgerClient


class AccountFactoryTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.rpc = FakeRpc(confirm_after_polls=2)
        self.factory = AccountFactory(LedgerClient(self.rpc, poll_interval_seconds=0))

    async def test_funded_account_is_confirmed_with_balance(self) -> None:
        account = await self.factory.create_funded_account(2 * LAMPORTS_PER_SOL)

        self.assertIs(account.status, FundingStatus.CONFIRMED)
        self.assertEqual(account.funded_lamports, 2_000_000_000)
        self.assertGreaterEqual(self.rpc.balances[account.public_key], 2_000_000_000)

    async def test_window_is_fetched_after_airdrop_request(self) -> None:
        await self.factory.create_funded_account(1_000)

        self.assertLess(
            self.rpc.calls.index("request_airdrop"),
            self.rpc.calls.index("get_latest_blockhash"),
        )

    async def test_unconfirmed_airdrop_times_out(self) -> None:
        self.rpc.drop_airdrops = True
        self.rpc.window = 3

        with self.assertRaises(FundingTimeout):
            await self.factory.create_funded_account(LAMPORTS_PER_SOL)

    async def test_each_call_generates_a_new_keypair(self) -> None:
        first = await self.factory.create_funded_account(1_000)
        second = await self.factory.create_funded_account(1_000)

        self.assertNotEqual(first.public_key, second.public_key)

    async def test_faucet_failure_is_network_error(self) -> None:
        self.rpc.fail_reads = True

        with self.assertRaises(NetworkError):
            await self.factory.create_funded_account(1_000)

    async def test_amount_must_be_positive(self) -> None:
        for amount in (0, -5, 1.5, True):
            with self.assertRaises(ValueError):
                await self.factory.create_funded_account(amount)
        self.assertEqual(self.rpc.calls, [])

    async def test_repr_hides_secret_key(self) -> None:
        account = await self.factory.create_funded_account(1_000)

        self.assertNotIn(str(account.keypair), repr(account))
        self.assertIn(str(account.public_key), repr(account))


def test_require_positive_amount_passes_through() -> None:
    assert require_positive_amount(42) == 42


if __name__ == "__main__":
    unittest.main()
