"""Ledger client error translation and confirmation polling."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from fakes import FakeRpc, transport_error
from solana.rpc.core import RPCException
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from walletlink.balance import BalanceOracle
from walletlink.errors import (
    BlockhashExpired,
    InsufficientFunds,
    NetworkError,
    TransactionFailure,
)
from walletlink.ledger import LedgerClient


def _signed_transfer(source: Keypair, blockhash, lamports: int = 1_000) -> Transaction:
    instruction = transfer(
        TransferParams(
            from_pubkey=source.pubkey(), to_pubkey=Pubkey.new_unique(), lamports=lamports
        )
    )
    message = Message.new_with_blockhash([instruction], source.pubkey(), blockhash)
    return Transaction([source], message, blockhash)


class LedgerClientTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.rpc = FakeRpc()
        self.ledger = LedgerClient(self.rpc, poll_interval_seconds=0)

    async def test_blockhash_window_tracks_last_valid_height(self) -> None:
        window = await self.ledger.get_latest_blockhash()

        self.assertEqual(window.last_valid_block_height, 1_150)

    async def test_reads_translate_transport_errors(self) -> None:
        self.rpc.fail_reads = True

        with self.assertRaises(NetworkError):
            await self.ledger.get_balance(Pubkey.new_unique())
        with self.assertRaises(NetworkError):
            await BalanceOracle(self.ledger).get_balance(Pubkey.new_unique())

    async def test_balance_read_is_single_attempt(self) -> None:
        self.rpc.fail_reads = True

        with self.assertRaises(NetworkError):
            await self.ledger.get_balance(Pubkey.new_unique())
        self.assertEqual(self.rpc.calls, ["get_balance"])

    async def test_confirm_waits_for_landing(self) -> None:
        self.rpc.confirm_after_polls = 3
        owner = Pubkey.new_unique()
        signature = await self.ledger.request_airdrop(owner, 500)
        window = await self.ledger.get_latest_blockhash()

        await self.ledger.confirm_transaction(signature, window)

        self.assertEqual(self.rpc.balances[owner], 500)
        self.assertEqual(self.rpc.calls.count("get_signature_statuses"), 4)

    async def test_confirm_stops_when_window_closes(self) -> None:
        self.rpc.drop_airdrops = True
        self.rpc.window = 5
        signature = await self.ledger.request_airdrop(Pubkey.new_unique(), 500)
        window = await self.ledger.get_latest_blockhash()

        with self.assertRaises(BlockhashExpired):
            await self.ledger.confirm_transaction(signature, window)

        self.assertEqual(self.rpc.block_height, window.last_valid_block_height + 1)

    async def test_confirm_reports_failed_status(self) -> None:
        self.rpc.failed_status = "InstructionError"
        signature = await self.ledger.request_airdrop(Pubkey.new_unique(), 500)
        window = await self.ledger.get_latest_blockhash()

        with self.assertRaises(TransactionFailure) as ctx:
            await self.ledger.confirm_transaction(signature, window)
        self.assertEqual(ctx.exception.signature, str(signature))

    async def test_submit_rejection_is_transaction_failure(self) -> None:
        source = Keypair()
        self.rpc.balances[source.pubkey()] = 10_000_000
        self.rpc.fail_sends = RPCException("Blockhash not found")
        window = await self.ledger.get_latest_blockhash()
        transaction = _signed_transfer(source, window.blockhash)

        with self.assertRaises(TransactionFailure) as ctx:
            await self.ledger.submit_and_confirm(transaction, window)
        self.assertEqual(ctx.exception.signature, str(transaction.signatures[0]))

    async def test_submit_transport_error_keeps_signature(self) -> None:
        source = Keypair()
        self.rpc.fail_sends = transport_error(
            self.rpc.send_raw_transaction, "sendTransaction"
        )
        window = await self.ledger.get_latest_blockhash()
        transaction = _signed_transfer(source, window.blockhash)

        with self.assertRaises(TransactionFailure) as ctx:
            await self.ledger.submit_and_confirm(transaction, window)
        self.assertIn("unknown", str(ctx.exception))
        self.assertEqual(ctx.exception.signature, str(transaction.signatures[0]))

    async def test_submit_insufficient_funds_from_network(self) -> None:
        source = Keypair()
        window = await self.ledger.get_latest_blockhash()

        with self.assertRaises(InsufficientFunds):
            await self.ledger.submit_and_confirm(
                _signed_transfer(source, window.blockhash), window
            )

    async def test_submit_and_confirm_applies_once(self) -> None:
        source = Keypair()
        self.rpc.balances[source.pubkey()] = 10_000_000
        window = await self.ledger.get_latest_blockhash()
        transaction = _signed_transfer(source, window.blockhash, lamports=1_000)

        signature = await self.ledger.submit_and_confirm(transaction, window)

        self.assertEqual(signature, transaction.signatures[0])
        self.assertEqual(self.rpc.balances[source.pubkey()], 10_000_000 - 1_000 - 5_000)

    async def test_close_closes_rpc(self) -> None:
        await self.ledger.close()

        self.assertTrue(self.rpc.closed)


if __name__ == "__main__":
    unittest.main()
