# src/sss_control/state.py
"""Decoders (and encoders) for the accounts the client reads.

Layouts are borsh/little-endian exactly as the programs store them:

  StablecoinConfig  8-byte discriminator, then fields in declaration order
  RoleAccount       8-byte discriminator, then fields in declaration order
  BlacklistEntry    8-byte discriminator, then fields in declaration order
  Mint / Account    Token-2022 base layout, account-type byte at 165, TLV after

Encoders exist so the in-memory ledger stores real bytes and every read goes
through the same decoder as production.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Optional

from sss_control.codec import Reader, Writer
from sss_control.crypto.pubkey import Pubkey
from sss_control.errors import CorruptState
from sss_control.presets import ExtensionType, PauseState, Preset

CONFIG_DISCRIMINATOR = bytes([127, 25, 244, 213, 1, 192, 101, 6])
ROLE_DISCRIMINATOR = bytes([142, 236, 135, 197, 214, 3, 244, 226])
BLACKLIST_DISCRIMINATOR = bytes([218, 179, 231, 40, 141, 25, 168, 189])

MAX_NAME_LEN = 32
MAX_SYMBOL_LEN = 10
MAX_URI_LEN = 200
MAX_REASON_LEN = 512

CONFIG_SPACE = 8 + 32 + 32 + 1 + 1 + 9 + 8 + 8 + 1 + 36 + 14 + 204 + 1 + 1 + 1 + 1 + 4
ROLE_SPACE = 8 + 32 + 32 + 1 + 32 + 8 + 1 + 9 + 8
BLACKLIST_SPACE = 629  # upper bound; entries are sized to their reason

# Token-2022 base layouts.
MINT_BASE_LEN = 82
TOKEN_ACCOUNT_BASE_LEN = 165
ACCOUNT_TYPE_OFFSET = 165

CONFIDENTIAL_TRANSFER_ACCOUNT_LEN = 295
ELGAMAL_CIPHERTEXT_LEN = 64
AE_CIPHERTEXT_LEN = 36


def _expect_discriminator(r: Reader, want: bytes, what: str) -> None:
    got = r.take(8)
    if got != want:
        raise CorruptState(f"{what} discriminator mismatch", {"got": got.hex(), "want": want.hex()})


# ---------------------------------------------------------------------------
# Core program accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StablecoinConfig:
    authority: Pubkey
    mint: Pubkey
    preset: Preset
    paused: bool
    supply_cap: Optional[int]
    total_minted: int
    total_burned: int
    bump: int
    name: str
    symbol: str
    uri: str
    decimals: int
    enable_permanent_delegate: bool
    enable_transfer_hook: bool
    default_account_frozen: bool
    admin_count: int

    @property
    def current_supply(self) -> int:
        return current_supply(self.total_minted, self.total_burned)

    @property
    def pause_state(self) -> PauseState:
        return PauseState.of(self.paused)


def current_supply(total_minted: int, total_burned: int) -> int:
    if total_burned > total_minted:
        raise CorruptState(
            "total_burned exceeds total_minted",
            {"total_minted": total_minted, "total_burned": total_burned},
        )
    return total_minted - total_burned


def decode_config(data: bytes) -> StablecoinConfig:
    r = Reader(data, what="config")
    _expect_discriminator(r, CONFIG_DISCRIMINATOR, "config")
    authority = r.pubkey()
    mint = r.pubkey()
    preset_code = r.u8()
    try:
        preset = Preset(preset_code)
    except ValueError as e:
        raise CorruptState("config has unknown preset", {"preset": preset_code}) from e
    cfg = StablecoinConfig(
        authority=authority,
        mint=mint,
        preset=preset,
        paused=r.bool(),
        supply_cap=r.option_u64(),
        total_minted=r.u64(),
        total_burned=r.u64(),
        bump=r.u8(),
        name=r.string(),
        symbol=r.string(),
        uri=r.string(),
        decimals=r.u8(),
        enable_permanent_delegate=r.bool(),
        enable_transfer_hook=r.bool(),
        default_account_frozen=r.bool(),
        admin_count=r.u32(),
    )
    # Negative supply is never clamped.
    current_supply(cfg.total_minted, cfg.total_burned)
    return cfg


def encode_config(cfg: StablecoinConfig) -> bytes:
    w = Writer().raw(CONFIG_DISCRIMINATOR)
    w.pubkey(cfg.authority).pubkey(cfg.mint)
    w.u8(int(cfg.preset), "preset").bool(cfg.paused)
    w.option_u64(cfg.supply_cap, "supply_cap")
    w.u64(cfg.total_minted, "total_minted").u64(cfg.total_burned, "total_burned")
    w.u8(cfg.bump, "bump")
    w.string(cfg.name).string(cfg.symbol).string(cfg.uri)
    w.u8(cfg.decimals, "decimals")
    w.bool(cfg.enable_permanent_delegate).bool(cfg.enable_transfer_hook).bool(cfg.default_account_frozen)
    w.u32(cfg.admin_count, "admin_count")
    out = w.bytes()
    return out + bytes(max(0, CONFIG_SPACE - len(out)))


@dataclass(frozen=True)
class RoleGrant:
    config: Pubkey
    address: Pubkey
    role: int
    granted_by: Pubkey
    granted_at: int
    bump: int
    mint_quota: Optional[int] = None
    amount_minted: int = 0


def decode_role(data: bytes) -> RoleGrant:
    r = Reader(data, what="role")
    _expect_discriminator(r, ROLE_DISCRIMINATOR, "role")
    return RoleGrant(
        config=r.pubkey(),
        address=r.pubkey(),
        role=r.u8(),
        granted_by=r.pubkey(),
        granted_at=r.i64(),
        bump=r.u8(),
        mint_quota=r.option_u64(),
        amount_minted=r.u64(),
    )


def encode_role(g: RoleGrant) -> bytes:
    w = Writer().raw(ROLE_DISCRIMINATOR)
    w.pubkey(g.config).pubkey(g.address).u8(g.role, "role").pubkey(g.granted_by)
    w.i64(g.granted_at, "granted_at").u8(g.bump, "bump")
    w.option_u64(g.mint_quota, "mint_quota").u64(g.amount_minted, "amount_minted")
    out = w.bytes()
    return out + bytes(max(0, ROLE_SPACE - len(out)))


# ---------------------------------------------------------------------------
# Hook program accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BlacklistEntry:
    mint: Pubkey
    address: Pubkey
    added_by: Pubkey
    added_at: int
    reason: str
    bump: int


def decode_blacklist_entry(data: bytes) -> BlacklistEntry:
    r = Reader(data, what="blacklist entry")
    _expect_discriminator(r, BLACKLIST_DISCRIMINATOR, "blacklist entry")
    return BlacklistEntry(
        mint=r.pubkey(),
        address=r.pubkey(),
        added_by=r.pubkey(),
        added_at=r.i64(),
        reason=r.string(),
        bump=r.u8(),
    )


def encode_blacklist_entry(e: BlacklistEntry) -> bytes:
    w = Writer().raw(BLACKLIST_DISCRIMINATOR)
    w.pubkey(e.mint).pubkey(e.address).pubkey(e.added_by).i64(e.added_at, "added_at")
    w.string(e.reason).u8(e.bump, "bump")
    return w.bytes()


# ---------------------------------------------------------------------------
# Token-2022 accounts
# ---------------------------------------------------------------------------


class AccountType(IntEnum):
    UNINITIALIZED = 0
    MINT = 1
    ACCOUNT = 2


class TokenAccountState(IntEnum):
    UNINITIALIZED = 0
    INITIALIZED = 1
    FROZEN = 2


def _read_coption_pubkey(r: Reader) -> Optional[Pubkey]:
    tag = r.u32()
    pk = r.pubkey()
    if tag == 0:
        return None
    if tag != 1:
        raise CorruptState("invalid COption tag", {"tag": tag})
    return pk


def _write_coption_pubkey(w: Writer, pk: Optional[Pubkey]) -> None:
    if pk is None:
        w.u32(0).raw(bytes(32))
    else:
        w.u32(1).pubkey(pk)


def parse_tlv(data: bytes, start: int = ACCOUNT_TYPE_OFFSET + 1) -> Dict[int, bytes]:
    """Token-2022 extension area: repeated (u16 type, u16 len, value)."""
    out: Dict[int, bytes] = {}
    off = start
    while off + 4 <= len(data):
        ext_type, ln = struct.unpack_from("<HH", data, off)
        off += 4
        if ext_type == ExtensionType.UNINITIALIZED and ln == 0:
            break
        if off + ln > len(data):
            raise CorruptState("extension TLV overruns account", {"type": ext_type, "len": ln})
        out[ext_type] = bytes(data[off:off + ln])
        off += ln
    return out


def encode_tlv(extensions: Dict[int, bytes]) -> bytes:
    out = bytearray()
    for ext_type, value in extensions.items():
        out += struct.pack("<HH", int(ext_type), len(value)) + value
    return bytes(out)


@dataclass(frozen=True)
class MintInfo:
    mint_authority: Optional[Pubkey]
    supply: int
    decimals: int
    is_initialized: bool
    freeze_authority: Optional[Pubkey]
    extensions: Dict[int, bytes] = field(default_factory=dict)

    def has_extension(self, ext: ExtensionType) -> bool:
        return int(ext) in self.extensions


def decode_mint(data: bytes) -> MintInfo:
    r = Reader(data, what="mint")
    mint_authority = _read_coption_pubkey(r)
    supply = r.u64()
    decimals = r.u8()
    is_initialized = r.bool()
    freeze_authority = _read_coption_pubkey(r)
    extensions: Dict[int, bytes] = {}
    if len(data) > ACCOUNT_TYPE_OFFSET:
        if data[ACCOUNT_TYPE_OFFSET] != AccountType.MINT:
            raise CorruptState("account type is not mint", {"account_type": data[ACCOUNT_TYPE_OFFSET]})
        extensions = parse_tlv(data)
    return MintInfo(mint_authority, supply, decimals, is_initialized, freeze_authority, extensions)


def encode_mint(m: MintInfo) -> bytes:
    w = Writer()
    _write_coption_pubkey(w, m.mint_authority)
    w.u64(m.supply, "supply").u8(m.decimals, "decimals").bool(m.is_initialized)
    _write_coption_pubkey(w, m.freeze_authority)
    base = w.bytes()
    if not m.extensions:
        return base
    pad = bytes(ACCOUNT_TYPE_OFFSET - len(base))
    return base + pad + bytes([AccountType.MINT]) + encode_tlv(m.extensions)


@dataclass(frozen=True)
class ConfidentialTransferAccount:
    approved: bool
    elgamal_pubkey: bytes
    pending_balance_lo: bytes
    pending_balance_hi: bytes
    available_balance: bytes
    decryptable_available_balance: bytes
    allow_confidential_credits: bool
    allow_non_confidential_credits: bool
    pending_balance_credit_counter: int
    maximum_pending_balance_credit_counter: int
    expected_pending_balance_credit_counter: int
    actual_pending_balance_credit_counter: int


def decode_confidential_transfer_account(value: bytes) -> ConfidentialTransferAccount:
    if len(value) != CONFIDENTIAL_TRANSFER_ACCOUNT_LEN:
        raise CorruptState("confidential transfer extension has wrong size", {"len": len(value)})
    r = Reader(value, what="confidential transfer extension")
    return ConfidentialTransferAccount(
        approved=r.bool(),
        elgamal_pubkey=r.take(32),
        pending_balance_lo=r.take(ELGAMAL_CIPHERTEXT_LEN),
        pending_balance_hi=r.take(ELGAMAL_CIPHERTEXT_LEN),
        available_balance=r.take(ELGAMAL_CIPHERTEXT_LEN),
        decryptable_available_balance=r.take(AE_CIPHERTEXT_LEN),
        allow_confidential_credits=r.bool(),
        allow_non_confidential_credits=r.bool(),
        pending_balance_credit_counter=r.u64(),
        maximum_pending_balance_credit_counter=r.u64(),
        expected_pending_balance_credit_counter=r.u64(),
        actual_pending_balance_credit_counter=r.u64(),
    )


def encode_confidential_transfer_account(c: ConfidentialTransferAccount) -> bytes:
    w = Writer().bool(c.approved).raw(c.elgamal_pubkey)
    w.raw(c.pending_balance_lo).raw(c.pending_balance_hi).raw(c.available_balance)
    w.raw(c.decryptable_available_balance)
    w.bool(c.allow_confidential_credits).bool(c.allow_non_confidential_credits)
    w.u64(c.pending_balance_credit_counter).u64(c.maximum_pending_balance_credit_counter)
    w.u64(c.expected_pending_balance_credit_counter).u64(c.actual_pending_balance_credit_counter)
    return w.bytes()


@dataclass(frozen=True)
class TokenAccount:
    mint: Pubkey
    owner: Pubkey
    amount: int
    delegate: Optional[Pubkey]
    state: TokenAccountState
    delegated_amount: int = 0
    extensions: Dict[int, bytes] = field(default_factory=dict)

    @property
    def is_frozen(self) -> bool:
        return self.state is TokenAccountState.FROZEN

    def confidential(self) -> Optional[ConfidentialTransferAccount]:
        raw = self.extensions.get(int(ExtensionType.CONFIDENTIAL_TRANSFER_ACCOUNT))
        if raw is None:
            return None
        return decode_confidential_transfer_account(raw)


def decode_token_account(data: bytes) -> TokenAccount:
    r = Reader(data, what="token account")
    mint = r.pubkey()
    owner = r.pubkey()
    amount = r.u64()
    delegate = _read_coption_pubkey(r)
    state_code = r.u8()
    try:
        state = TokenAccountState(state_code)
    except ValueError as e:
        raise CorruptState("token account has invalid state", {"state": state_code}) from e
    r.take(12)  # is_native COption<u64>
    delegated_amount = r.u64()
    r.take(36)  # close_authority
    extensions: Dict[int, bytes] = {}
    if len(data) > ACCOUNT_TYPE_OFFSET:
        if data[ACCOUNT_TYPE_OFFSET] != AccountType.ACCOUNT:
            raise CorruptState("account type is not token account", {"account_type": data[ACCOUNT_TYPE_OFFSET]})
        extensions = parse_tlv(data)
    return TokenAccount(mint, owner, amount, delegate, state, delegated_amount, extensions)


def encode_token_account(a: TokenAccount) -> bytes:
    w = Writer().pubkey(a.mint).pubkey(a.owner).u64(a.amount)
    _write_coption_pubkey(w, a.delegate)
    w.u8(int(a.state), "state")
    w.raw(bytes(12))
    w.u64(a.delegated_amount)
    w.raw(bytes(36))
    base = w.bytes()
    if not a.extensions:
        return base
    return base + bytes([AccountType.ACCOUNT]) + encode_tlv(a.extensions)


__all__ = [
    "CONFIG_DISCRIMINATOR",
    "ROLE_DISCRIMINATOR",
    "BLACKLIST_DISCRIMINATOR",
    "MAX_NAME_LEN",
    "MAX_SYMBOL_LEN",
    "MAX_URI_LEN",
    "MAX_REASON_LEN",
    "StablecoinConfig",
    "current_supply",
    "decode_config",
    "encode_config",
    "RoleGrant",
    "decode_role",
    "encode_role",
    "BlacklistEntry",
    "decode_blacklist_entry",
    "encode_blacklist_entry",
    "AccountType",
    "TokenAccountState",
    "parse_tlv",
    "encode_tlv",
    "MintInfo",
    "decode_mint",
    "encode_mint",
    "ConfidentialTransferAccount",
    "decode_confidential_transfer_account",
    "encode_confidential_transfer_account",
    "TokenAccount",
    "decode_token_account",
    "encode_token_account",
]
