# src/sss_control/crypto/keypair.py
from __future__ import annotations

from typing import Any, List, Sequence

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from sss_control.crypto.pubkey import Pubkey
from sss_control.errors import ValidationError


class Keypair:
    """Ed25519 signing keypair.

    The client never signs on its own; keypairs are handed to the executor
    together with the instruction list. The mint keypair of a new stablecoin
    is the one place the client needs a fresh key.
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._sk = private_key
        raw = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        self._pubkey = Pubkey(raw)

    @staticmethod
    def generate() -> "Keypair":
        return Keypair(Ed25519PrivateKey.generate())

    @staticmethod
    def from_seed(seed: bytes) -> "Keypair":
        if len(seed) != 32:
            raise ValidationError("ed25519 seed must be 32 bytes", {"len": len(seed)})
        return Keypair(Ed25519PrivateKey.from_private_bytes(bytes(seed)))

    @property
    def pubkey(self) -> Pubkey:
        return self._pubkey

    def sign(self, message: bytes) -> bytes:
        return self._sk.sign(message)

    def __repr__(self) -> str:
        return f"Keypair({self._pubkey})"


def signer_pubkeys(signers: Sequence[Any]) -> List[Pubkey]:
    out: List[Pubkey] = []
    for s in signers:
        pk = s.pubkey if isinstance(s, Keypair) else s
        if not isinstance(pk, Pubkey):
            raise ValidationError("signer must be a Keypair or Pubkey", {"type": type(s).__name__})
        if pk not in out:
            out.append(pk)
    return out


__all__ = ["Keypair", "signer_pubkeys"]
