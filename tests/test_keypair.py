# tests/test_keypair.py
from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from sss_control.crypto.keypair import Keypair, signer_pubkeys
from sss_control.errors import ValidationError
from sss_control.testing.keys import deterministic_keypair


def test_from_seed_is_deterministic() -> None:
    a = Keypair.from_seed(b"\x07" * 32)
    b = Keypair.from_seed(b"\x07" * 32)
    assert a.pubkey == b.pubkey
    assert Keypair.generate().pubkey != a.pubkey
    with pytest.raises(ValidationError):
        Keypair.from_seed(b"\x07" * 31)


def test_signature_verifies_against_pubkey() -> None:
    kp = deterministic_keypair("signer")
    msg = b"sss-control message"
    sig = kp.sign(msg)
    assert len(sig) == 64
    Ed25519PublicKey.from_public_bytes(kp.pubkey.raw).verify(sig, msg)


def test_signer_pubkeys_dedupes_and_rejects_junk() -> None:
    a, b = deterministic_keypair("a"), deterministic_keypair("b")
    assert signer_pubkeys([a, b.pubkey, a]) == [a.pubkey, b.pubkey]
    with pytest.raises(ValidationError):
        signer_pubkeys([a, "not-a-key"])
