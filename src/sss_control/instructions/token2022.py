# src/sss_control/instructions/token2022.py
"""Token-2022, system and associated-token builders used by the client.

Only the subset needed to create an SSS mint, open token accounts and move
balances in and out of the confidential-transfer extension.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, Iterable, Optional, Sequence

from sss_control.codec import Writer
from sss_control.crypto.pubkey import Pubkey
from sss_control.errors import ValidationError
from sss_control.instructions.types import Instruction, anchor_discriminator, readonly, signer, writable
from sss_control.pda import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    SYSVAR_INSTRUCTIONS_ID,
    TOKEN_2022_PROGRAM_ID,
    ZK_ELGAMAL_PROOF_PROGRAM_ID,
    derive_associated_token_account,
)
from sss_control.presets import ExtensionType
from sss_control.state import TokenAccountState

# Token instruction tags.
INITIALIZE_MINT2 = 20
SET_AUTHORITY = 6
DEFAULT_ACCOUNT_STATE_EXTENSION = 28
CONFIDENTIAL_TRANSFER_EXTENSION = 27
PERMANENT_DELEGATE_INIT = 35
TRANSFER_HOOK_EXTENSION = 36
METADATA_POINTER_EXTENSION = 39

# Confidential-transfer sub-instructions.
CT_INITIALIZE_MINT = 0
CT_DEPOSIT = 5
CT_WITHDRAW = 6
CT_TRANSFER = 7
CT_APPLY_PENDING_BALANCE = 8

TOKEN_METADATA_INITIALIZE = anchor_discriminator("spl_token_metadata_interface", "initialize_account")

AE_CIPHERTEXT_LEN = 36
ELGAMAL_CIPHERTEXT_LEN = 64
ELGAMAL_PUBKEY_LEN = 32

ACCOUNT_SIZE = 165
ACCOUNT_TYPE_SIZE = 1
TLV_HEADER_SIZE = 4
MULTISIG_SIZE = 355

EXTENSION_SIZES: Dict[ExtensionType, int] = {
    ExtensionType.METADATA_POINTER: 64,
    ExtensionType.PERMANENT_DELEGATE: 32,
    ExtensionType.TRANSFER_HOOK: 64,
    ExtensionType.DEFAULT_ACCOUNT_STATE: 1,
    ExtensionType.CONFIDENTIAL_TRANSFER_MINT: 65,
}


class AuthorityType(IntEnum):
    MINT_TOKENS = 0
    FREEZE_ACCOUNT = 1


def mint_space(extensions: Iterable[ExtensionType]) -> int:
    """Size of a mint account carrying the given fixed-size extensions."""
    exts = list(extensions)
    if not exts:
        return 82
    total = ACCOUNT_SIZE + ACCOUNT_TYPE_SIZE
    for ext in exts:
        if ext not in EXTENSION_SIZES:
            raise ValidationError("unsupported mint extension", {"extension": int(ext)})
        total += TLV_HEADER_SIZE + EXTENSION_SIZES[ext]
    if total == MULTISIG_SIZE:
        total += 2
    return total


def metadata_space(name: str, symbol: str, uri: str) -> int:
    """Packed TokenMetadata length: two pubkeys, three strings, empty vec."""
    return 32 + 32 + sum(4 + len(s.encode("utf-8")) for s in (name, symbol, uri)) + 4


def _opt_pubkey(w: Writer, pk: Optional[Pubkey]) -> Writer:
    # OptionalNonZeroPubkey: all zeros means None.
    return w.raw(pk.raw if pk is not None else bytes(32))


# ---------------------------------------------------------------------------
# System / associated token
# ---------------------------------------------------------------------------


def create_account(payer: Pubkey, new_account: Pubkey, lamports: int, space: int, owner: Pubkey) -> Instruction:
    data = Writer().u32(0).u64(lamports, "lamports").u64(space, "space").pubkey(owner).bytes()
    return Instruction(SYSTEM_PROGRAM_ID, [signer(payer, writable=True), signer(new_account, writable=True)], data)


def create_associated_token_account_idempotent(
    payer: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    *,
    token_program_id: Pubkey = TOKEN_2022_PROGRAM_ID,
) -> Instruction:
    ata = derive_associated_token_account(owner, mint, token_program_id)
    return Instruction(
        ASSOCIATED_TOKEN_PROGRAM_ID,
        [
            signer(payer, writable=True),
            writable(ata),
            readonly(owner),
            readonly(mint),
            readonly(SYSTEM_PROGRAM_ID),
            readonly(token_program_id),
        ],
        bytes([1]),
    )


# ---------------------------------------------------------------------------
# Mint extensions and initialization
# ---------------------------------------------------------------------------


def initialize_metadata_pointer(mint: Pubkey, authority: Optional[Pubkey], metadata_address: Optional[Pubkey]) -> Instruction:
    w = Writer().u8(METADATA_POINTER_EXTENSION).u8(0)
    _opt_pubkey(w, authority)
    _opt_pubkey(w, metadata_address)
    return Instruction(TOKEN_2022_PROGRAM_ID, [writable(mint)], w.bytes())


def initialize_permanent_delegate(mint: Pubkey, delegate: Pubkey) -> Instruction:
    data = Writer().u8(PERMANENT_DELEGATE_INIT).pubkey(delegate).bytes()
    return Instruction(TOKEN_2022_PROGRAM_ID, [writable(mint)], data)


def initialize_transfer_hook(mint: Pubkey, authority: Optional[Pubkey], hook_program_id: Pubkey) -> Instruction:
    w = Writer().u8(TRANSFER_HOOK_EXTENSION).u8(0)
    _opt_pubkey(w, authority)
    _opt_pubkey(w, hook_program_id)
    return Instruction(TOKEN_2022_PROGRAM_ID, [writable(mint)], w.bytes())


def initialize_default_account_state(mint: Pubkey, state: TokenAccountState) -> Instruction:
    data = Writer().u8(DEFAULT_ACCOUNT_STATE_EXTENSION).u8(0).u8(int(state)).bytes()
    return Instruction(TOKEN_2022_PROGRAM_ID, [writable(mint)], data)


def initialize_confidential_transfer_mint(
    mint: Pubkey,
    authority: Optional[Pubkey],
    *,
    auto_approve_new_accounts: bool = True,
    auditor_elgamal_pubkey: Optional[bytes] = None,
) -> Instruction:
    if auditor_elgamal_pubkey is not None and len(auditor_elgamal_pubkey) != ELGAMAL_PUBKEY_LEN:
        raise ValidationError("auditor ElGamal pubkey must be 32 bytes", {"len": len(auditor_elgamal_pubkey)})
    w = Writer().u8(CONFIDENTIAL_TRANSFER_EXTENSION).u8(CT_INITIALIZE_MINT)
    _opt_pubkey(w, authority)
    w.bool(auto_approve_new_accounts)
    w.raw(auditor_elgamal_pubkey if auditor_elgamal_pubkey is not None else bytes(ELGAMAL_PUBKEY_LEN))
    return Instruction(TOKEN_2022_PROGRAM_ID, [writable(mint)], w.bytes())


def initialize_mint2(mint: Pubkey, decimals: int, mint_authority: Pubkey, freeze_authority: Optional[Pubkey]) -> Instruction:
    w = Writer().u8(INITIALIZE_MINT2).u8(decimals, "decimals").pubkey(mint_authority)
    if freeze_authority is None:
        w.u8(0)
    else:
        w.u8(1).pubkey(freeze_authority)
    return Instruction(TOKEN_2022_PROGRAM_ID, [writable(mint)], w.bytes())


def initialize_token_metadata(
    mint: Pubkey,
    *,
    update_authority: Pubkey,
    mint_authority: Pubkey,
    name: str,
    symbol: str,
    uri: str,
) -> Instruction:
    """Token metadata stored in the mint itself (metadata address == mint)."""
    data = Writer().raw(TOKEN_METADATA_INITIALIZE).string(name).string(symbol).string(uri).bytes()
    return Instruction(
        TOKEN_2022_PROGRAM_ID,
        [writable(mint), readonly(update_authority), readonly(mint), signer(mint_authority)],
        data,
    )


def set_authority(account: Pubkey, current_authority: Pubkey, authority_type: AuthorityType, new_authority: Optional[Pubkey]) -> Instruction:
    w = Writer().u8(SET_AUTHORITY).u8(int(authority_type))
    if new_authority is None:
        w.u8(0)
    else:
        w.u8(1).pubkey(new_authority)
    return Instruction(TOKEN_2022_PROGRAM_ID, [writable(account), signer(current_authority)], w.bytes())


# ---------------------------------------------------------------------------
# Confidential transfer account operations
# ---------------------------------------------------------------------------


def _ct(sub: int) -> Writer:
    return Writer().u8(CONFIDENTIAL_TRANSFER_EXTENSION).u8(sub)


def _check_len(b: bytes, n: int, what: str) -> bytes:
    if len(b) != n:
        raise ValidationError(f"{what} must be {n} bytes", {"len": len(b)})
    return bytes(b)


def confidential_deposit(token_account: Pubkey, mint: Pubkey, owner: Pubkey, amount: int, decimals: int) -> Instruction:
    data = _ct(CT_DEPOSIT).u64(amount).u8(decimals, "decimals").bytes()
    return Instruction(TOKEN_2022_PROGRAM_ID, [writable(token_account), readonly(mint), signer(owner)], data)


def confidential_apply_pending_balance(
    token_account: Pubkey,
    owner: Pubkey,
    expected_pending_balance_credit_counter: int,
    new_decryptable_available_balance: bytes,
) -> Instruction:
    data = (
        _ct(CT_APPLY_PENDING_BALANCE)
        .u64(expected_pending_balance_credit_counter, "expected_pending_balance_credit_counter")
        .raw(_check_len(new_decryptable_available_balance, AE_CIPHERTEXT_LEN, "decryptable balance"))
        .bytes()
    )
    return Instruction(TOKEN_2022_PROGRAM_ID, [writable(token_account), signer(owner)], data)


def proof_instruction(proof_data: bytes) -> Instruction:
    """A ZK ElGamal proof verification carried inline, with no context account."""
    if not proof_data:
        raise ValidationError("empty proof data")
    return Instruction(ZK_ELGAMAL_PROOF_PROGRAM_ID, [], bytes(proof_data))


def _relative_offsets(count: int) -> Sequence[int]:
    # Proofs sit immediately before the operation, in order.
    return [i - count for i in range(count)]


def confidential_withdraw(
    token_account: Pubkey,
    mint: Pubkey,
    owner: Pubkey,
    amount: int,
    decimals: int,
    *,
    new_decryptable_available_balance: bytes,
    equality_proof: bytes,
    range_proof: bytes,
) -> list[Instruction]:
    """[equality proof, range proof, withdraw]; the withdraw points back at both."""
    eq_off, range_off = _relative_offsets(2)
    data = (
        _ct(CT_WITHDRAW)
        .u64(amount)
        .u8(decimals, "decimals")
        .raw(_check_len(new_decryptable_available_balance, AE_CIPHERTEXT_LEN, "decryptable balance"))
        .i8(eq_off)
        .i8(range_off)
        .bytes()
    )
    withdraw = Instruction(
        TOKEN_2022_PROGRAM_ID,
        [writable(token_account), readonly(mint), readonly(SYSVAR_INSTRUCTIONS_ID), signer(owner)],
        data,
    )
    return [proof_instruction(equality_proof), proof_instruction(range_proof), withdraw]


def confidential_transfer(
    source: Pubkey,
    mint: Pubkey,
    destination: Pubkey,
    owner: Pubkey,
    *,
    new_source_decryptable_available_balance: bytes,
    auditor_ciphertext_lo: bytes,
    auditor_ciphertext_hi: bytes,
    equality_proof: bytes,
    validity_proof: bytes,
    range_proof: bytes,
) -> list[Instruction]:
    """[equality, ciphertext-validity, range proofs, transfer]."""
    eq_off, validity_off, range_off = _relative_offsets(3)
    data = (
        _ct(CT_TRANSFER)
        .raw(_check_len(new_source_decryptable_available_balance, AE_CIPHERTEXT_LEN, "decryptable balance"))
        .raw(_check_len(auditor_ciphertext_lo, ELGAMAL_CIPHERTEXT_LEN, "auditor ciphertext lo"))
        .raw(_check_len(auditor_ciphertext_hi, ELGAMAL_CIPHERTEXT_LEN, "auditor ciphertext hi"))
        .i8(eq_off)
        .i8(validity_off)
        .i8(range_off)
        .bytes()
    )
    transfer = Instruction(
        TOKEN_2022_PROGRAM_ID,
        [
            writable(source),
            readonly(mint),
            writable(destination),
            readonly(SYSVAR_INSTRUCTIONS_ID),
            signer(owner),
        ],
        data,
    )
    return [
        proof_instruction(equality_proof),
        proof_instruction(validity_proof),
        proof_instruction(range_proof),
        transfer,
    ]


__all__ = [
    "AuthorityType",
    "EXTENSION_SIZES",
    "TOKEN_METADATA_INITIALIZE",
    "mint_space",
    "metadata_space",
    "create_account",
    "create_associated_token_account_idempotent",
    "initialize_metadata_pointer",
    "initialize_permanent_delegate",
    "initialize_transfer_hook",
    "initialize_default_account_state",
    "initialize_confidential_transfer_mint",
    "initialize_mint2",
    "initialize_token_metadata",
    "set_authority",
    "confidential_deposit",
    "confidential_apply_pending_balance",
    "proof_instruction",
    "confidential_withdraw",
    "confidential_transfer",
]
