# src/sss_control/pda.py
from __future__ import annotations

import hashlib
import logging
from typing import Final, List, Sequence, Tuple

from sss_control.crypto.pubkey import Pubkey, is_on_curve
from sss_control.errors import DerivationExhausted, ValidationError
from sss_control.logging_utils import get_logger, log_event

CORE_PROGRAM_ID: Final[Pubkey] = Pubkey.from_base58("SSSCFmmtaU1oToJ9eMqzTtPbK9EAyoXdivUG4irBHVP")
HOOK_PROGRAM_ID: Final[Pubkey] = Pubkey.from_base58("HookFvKFaoF9KL8TUXUnQK5r2mJoMYdBENu549seRyXW")
TOKEN_2022_PROGRAM_ID: Final[Pubkey] = Pubkey.from_base58("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")
ASSOCIATED_TOKEN_PROGRAM_ID: Final[Pubkey] = Pubkey.from_base58("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
SYSTEM_PROGRAM_ID: Final[Pubkey] = Pubkey.from_base58("11111111111111111111111111111111")
SYSVAR_INSTRUCTIONS_ID: Final[Pubkey] = Pubkey.from_base58("Sysvar1nstructions1111111111111111111111111")
ZK_ELGAMAL_PROOF_PROGRAM_ID: Final[Pubkey] = Pubkey.from_base58("ZkE1Gama1Proof11111111111111111111111111111")

CONFIG_SEED: Final[bytes] = b"sss-config"
ROLE_SEED: Final[bytes] = b"sss-role"
BLACKLIST_SEED: Final[bytes] = b"blacklist"
EXTRA_ACCOUNT_METAS_SEED: Final[bytes] = b"extra-account-metas"

MAX_SEEDS: Final[int] = 16
MAX_SEED_LEN: Final[int] = 32

_PDA_MARKER: Final[bytes] = b"ProgramDerivedAddress"

_log = get_logger("pda")


def _check_seeds(seeds: Sequence[bytes]) -> List[bytes]:
    if len(seeds) > MAX_SEEDS:
        raise ValidationError("too many seeds", {"count": len(seeds), "max": MAX_SEEDS})
    out: List[bytes] = []
    for i, s in enumerate(seeds):
        if isinstance(s, Pubkey):
            s = s.raw
        if not isinstance(s, (bytes, bytearray)):
            raise ValidationError("seed must be bytes", {"index": i, "type": type(s).__name__})
        if len(s) > MAX_SEED_LEN:
            raise ValidationError("seed longer than 32 bytes", {"index": i, "len": len(s)})
        out.append(bytes(s))
    return out


def _hash(seeds: Sequence[bytes], program_id: Pubkey) -> bytes:
    h = hashlib.sha256()
    for s in seeds:
        h.update(s)
    h.update(program_id.raw)
    h.update(_PDA_MARKER)
    return h.digest()


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    """Hash `seeds` (bump included by the caller) into an address.

    Raises ValidationError when the hash lands on the curve; such an address
    could have a private key and is never a valid program address.
    """
    checked = _check_seeds(seeds)
    digest = _hash(checked, program_id)
    if is_on_curve(digest):
        raise ValidationError("seeds produce an on-curve address")
    return Pubkey(digest)


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Canonical derivation: first off-curve hash scanning bump 255 down to 0."""
    checked = _check_seeds(seeds)
    if len(checked) + 1 > MAX_SEEDS:
        raise ValidationError("too many seeds", {"count": len(checked), "max": MAX_SEEDS - 1})
    for bump in range(255, -1, -1):
        digest = _hash(checked + [bytes([bump])], program_id)
        if not is_on_curve(digest):
            return Pubkey(digest), bump

    log_event(
        _log,
        "pda_derivation_exhausted",
        level=logging.ERROR,
        program_id=str(program_id),
        seeds=[s.hex() for s in checked],
    )
    raise DerivationExhausted("no off-curve bump found", {"program_id": str(program_id)})


def derive_config(mint: Pubkey, program_id: Pubkey = CORE_PROGRAM_ID) -> Tuple[Pubkey, int]:
    return find_program_address([CONFIG_SEED, mint.raw], program_id)


def derive_role(config: Pubkey, address: Pubkey, role: int, program_id: Pubkey = CORE_PROGRAM_ID) -> Tuple[Pubkey, int]:
    code = int(role)
    if code < 0 or code > 255:
        raise ValidationError("role code out of range", {"role": code})
    return find_program_address([ROLE_SEED, config.raw, address.raw, bytes([code])], program_id)


def derive_blacklist(mint: Pubkey, address: Pubkey, program_id: Pubkey = HOOK_PROGRAM_ID) -> Tuple[Pubkey, int]:
    return find_program_address([BLACKLIST_SEED, mint.raw, address.raw], program_id)


def derive_extra_account_metas(mint: Pubkey, program_id: Pubkey = HOOK_PROGRAM_ID) -> Tuple[Pubkey, int]:
    return find_program_address([EXTRA_ACCOUNT_METAS_SEED, mint.raw], program_id)


def derive_associated_token_account(
    owner: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey = TOKEN_2022_PROGRAM_ID,
) -> Pubkey:
    addr, _ = find_program_address([owner.raw, token_program_id.raw, mint.raw], ASSOCIATED_TOKEN_PROGRAM_ID)
    return addr


__all__ = [
    "CORE_PROGRAM_ID",
    "HOOK_PROGRAM_ID",
    "TOKEN_2022_PROGRAM_ID",
    "ASSOCIATED_TOKEN_PROGRAM_ID",
    "SYSTEM_PROGRAM_ID",
    "SYSVAR_INSTRUCTIONS_ID",
    "ZK_ELGAMAL_PROOF_PROGRAM_ID",
    "CONFIG_SEED",
    "ROLE_SEED",
    "BLACKLIST_SEED",
    "EXTRA_ACCOUNT_METAS_SEED",
    "create_program_address",
    "find_program_address",
    "derive_config",
    "derive_role",
    "derive_blacklist",
    "derive_extra_account_metas",
    "derive_associated_token_account",
]
