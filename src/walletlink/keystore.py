"""Passphrase-protected keystore backing the local signing provider."""

from __future__ import annotations

import base64
import json
import logging
import time
from pathlib import Path
from typing import Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

logger = logging.getLogger("walletlink.keystore")


def _xor_bytes(left: bytes, right: bytes) -> bytes:
    """XOR two byte strings, truncating to the shorter length."""

    return bytes(a ^ b for a, b in zip(left, right))


def _derive_key(passphrase: str, salt: bytes, length: int = 64) -> bytes:
    """Derive a deterministic byte key from the provided passphrase and salt."""

    import hashlib

    return hashlib.pbkdf2_hmac("sha256", passphrase.encode("utf-8"), salt, 200_000, dklen=length)


class Keystore:
    """A single keypair stored on disk, encrypted with a passphrase."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._metadata: Optional[dict] = None
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return

        try:
            metadata = json.loads(self.path.read_text())
        except json.JSONDecodeError:
            # Malformed keystore is treated as absent so it can never unlock.
            logger.warning(f"Ignoring malformed keystore at {self.path}")
            return
        if isinstance(metadata, dict):
            self._metadata = metadata

    @property
    def exists(self) -> bool:
        return self._metadata is not None

    @property
    def public_key(self) -> Optional[Pubkey]:
        """Public key recorded next to the ciphertext, readable while locked."""

        if self._metadata is None or not self._metadata.get("public_key"):
            return None
        return Pubkey.from_string(self._metadata["public_key"])

    def persist(self, passphrase: str, keypair: Keypair) -> None:
        """Encrypt ``keypair`` with ``passphrase`` and write it to disk."""

        if not passphrase:
            raise ValueError("A passphrase is required to persist the keystore")

        salt = bytes(Keypair())[:16]
        derived_key = _derive_key(passphrase, salt)
        ciphertext = _xor_bytes(bytes(keypair), derived_key)
        metadata = {
            "salt": base64.b64encode(salt).decode("utf-8"),
            "ciphertext": base64.b64encode(ciphertext).decode("utf-8"),
            "public_key": str(keypair.pubkey()),
            "created": time.time(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(metadata))
        self._metadata = metadata
        logger.info(f"Keystore written for {keypair.pubkey()}")

    def unlock(self, passphrase: str) -> Keypair:
        """Decrypt the stored keypair; ``ValueError`` on a wrong passphrase."""

        if self._metadata is None:
            raise RuntimeError(f"No keystore found at {self.path}")

        salt_b64 = self._metadata.get("salt")
        ciphertext_b64 = self._metadata.get("ciphertext")
        if not salt_b64 or not ciphertext_b64:
            raise ValueError("Incomplete keystore metadata")

        salt = base64.b64decode(salt_b64)
        ciphertext = base64.b64decode(ciphertext_b64)
        derived_key = _derive_key(passphrase, salt, length=len(ciphertext))
        plaintext = _xor_bytes(ciphertext, derived_key)

        try:
            keypair = Keypair.from_bytes(plaintext)
        except Exception as exc:  # noqa: BLE001 - conversion failure signals bad passphrase
            raise ValueError("Failed to decrypt keystore with provided passphrase") from exc

        expected = self.public_key
        if expected is not None and keypair.pubkey() != expected:
            raise ValueError("Failed to decrypt keystore with provided passphrase")
        return keypair
