# tests/test_instructions.py
from __future__ import annotations

import struct

import pytest

from sss_control.codec import U64_MAX
from sss_control.errors import ValidationError
from sss_control.instructions import core as core_ix
from sss_control.instructions import hook as hook_ix
from sss_control.instructions import token2022 as t22
from sss_control.pda import (
    CORE_PROGRAM_ID,
    HOOK_PROGRAM_ID,
    SYSVAR_INSTRUCTIONS_ID,
    TOKEN_2022_PROGRAM_ID,
    ZK_ELGAMAL_PROOF_PROGRAM_ID,
    derive_blacklist,
    derive_config,
    derive_role,
)
from sss_control.presets import ExtensionType, Preset
from sss_control.roles import Role
from sss_control.testing.keys import deterministic_keypairs

K = deterministic_keypairs("admin", "mint", "alice", "bob")
ADMIN, MINT, ALICE, BOB = (K[n].pubkey for n in ("admin", "mint", "alice", "bob"))


def test_builders_are_pure() -> None:
    a = core_ix.mint_tokens(ALICE, MINT, BOB, 1_000)
    b = core_ix.mint_tokens(ALICE, MINT, BOB, 1_000)
    assert a == b
    assert a.data == b.data


def test_mint_tokens_layout() -> None:
    ix = core_ix.mint_tokens(ALICE, MINT, BOB, 500_000_000_000)
    config, _ = derive_config(MINT)
    assert ix.program_id == CORE_PROGRAM_ID
    assert ix.data[:8] == core_ix.DISCRIMINATORS["mint_tokens"]
    assert struct.unpack("<Q", ix.data[8:]) == (500_000_000_000,)
    assert [m.pubkey for m in ix.accounts] == [
        ALICE,
        config,
        derive_role(config, ALICE, Role.MINTER)[0],
        MINT,
        BOB,
        TOKEN_2022_PROGRAM_ID,
    ]
    assert ix.accounts[0].is_signer and not ix.accounts[0].is_writable
    assert ix.accounts[1].is_writable and ix.accounts[4].is_writable


def test_mint_tokens_price_feed_is_trailing_readonly() -> None:
    plain = core_ix.mint_tokens(ALICE, MINT, BOB, 10)
    ix = core_ix.mint_tokens(ALICE, MINT, BOB, 10, price_feed=ADMIN)
    assert ix.data == plain.data
    assert ix.accounts[:-1] == plain.accounts
    feed = ix.accounts[-1]
    assert feed.pubkey == ADMIN
    assert not feed.is_signer and not feed.is_writable


@pytest.mark.parametrize("amount", [-1, U64_MAX + 1, 1.5, True])
def test_amounts_must_be_u64(amount) -> None:
    with pytest.raises(ValidationError):
        core_ix.mint_tokens(ALICE, MINT, BOB, amount)
    with pytest.raises(ValidationError):
        core_ix.seize(ALICE, MINT, BOB, ALICE, amount)


def test_initialize_payload() -> None:
    ix = core_ix.initialize(
        ADMIN,
        MINT,
        preset=Preset.COMPLIANT,
        name="USD",
        symbol="U",
        uri="",
        decimals=6,
        supply_cap=None,
        enable_transfer_hook=True,
    )
    want = (
        core_ix.DISCRIMINATORS["initialize"]
        + bytes([2])
        + struct.pack("<I", 3) + b"USD"
        + struct.pack("<I", 1) + b"U"
        + struct.pack("<I", 0)
        + bytes([6])
        + bytes([0])  # supply cap: None
        + bytes([0])  # permanent delegate: preset default
        + bytes([1, 1])  # transfer hook: Some(true)
        + bytes([0])  # default frozen: preset default
    )
    assert ix.data == want
    config, _ = derive_config(MINT)
    assert ix.accounts[3].pubkey == derive_role(config, ADMIN, Role.ADMIN)[0]


def test_update_supply_cap_option_encoding() -> None:
    some = core_ix.update_supply_cap(ADMIN, MINT, 10)
    none = core_ix.update_supply_cap(ADMIN, MINT, None)
    assert some.data[8:] == bytes([1]) + struct.pack("<Q", 10)
    assert none.data[8:] == bytes([0])


def test_pause_and_unpause_share_accounts() -> None:
    p = core_ix.pause(ADMIN, MINT)
    u = core_ix.unpause(ADMIN, MINT)
    assert p.accounts == u.accounts
    assert p.data != u.data
    assert len(p.data) == 8


def test_grant_role_targets_grantee_pda() -> None:
    ix = core_ix.grant_role(ADMIN, MINT, ALICE, Role.SEIZER)
    config, _ = derive_config(MINT)
    assert ix.accounts[4].pubkey == derive_role(config, ALICE, Role.SEIZER)[0]
    assert ix.data == core_ix.DISCRIMINATORS["grant_role"] + bytes([6])


def test_blacklist_builders() -> None:
    ix = hook_ix.add_to_blacklist(ADMIN, MINT, BOB, "sanctions")
    config, _ = derive_config(MINT)
    assert ix.program_id == HOOK_PROGRAM_ID
    assert ix.accounts[1].pubkey == derive_role(config, ADMIN, Role.BLACKLISTER)[0]
    assert ix.accounts[4].pubkey == derive_blacklist(MINT, BOB)[0]
    assert ix.data == hook_ix.DISCRIMINATORS["add_to_blacklist"] + struct.pack("<I", 9) + b"sanctions"

    rm = hook_ix.remove_from_blacklist(ADMIN, MINT, BOB)
    assert rm.accounts[3].pubkey == derive_blacklist(MINT, BOB)[0]
    assert len(rm.accounts) == 4


def test_mint_space() -> None:
    assert t22.mint_space([]) == 82
    assert t22.mint_space([ExtensionType.METADATA_POINTER]) == 166 + 4 + 64
    assert t22.mint_space([ExtensionType.METADATA_POINTER, ExtensionType.PERMANENT_DELEGATE]) == 166 + 68 + 36
    with pytest.raises(ValidationError):
        t22.mint_space([ExtensionType.TOKEN_METADATA])
    assert t22.metadata_space("A", "B", "") == 64 + 5 + 5 + 4 + 4


def test_set_authority_and_mint2_layout() -> None:
    ix = t22.set_authority(MINT, ADMIN, t22.AuthorityType.FREEZE_ACCOUNT, ALICE)
    assert ix.data == bytes([6, 1, 1]) + ALICE.raw
    assert ix.accounts[1].is_signer

    m2 = t22.initialize_mint2(MINT, 6, ADMIN, None)
    assert m2.data == bytes([20, 6]) + ADMIN.raw + bytes([0])


def test_confidential_withdraw_points_back_at_its_proofs() -> None:
    ixs = t22.confidential_withdraw(
        BOB,
        MINT,
        ALICE,
        100,
        6,
        new_decryptable_available_balance=bytes(36),
        equality_proof=b"eq",
        range_proof=b"range",
    )
    assert [ix.program_id for ix in ixs] == [ZK_ELGAMAL_PROOF_PROGRAM_ID, ZK_ELGAMAL_PROOF_PROGRAM_ID, TOKEN_2022_PROGRAM_ID]
    withdraw = ixs[-1]
    assert struct.unpack("<bb", withdraw.data[-2:]) == (-2, -1)
    assert withdraw.accounts[2].pubkey == SYSVAR_INSTRUCTIONS_ID


def test_confidential_transfer_checks_ciphertext_sizes() -> None:
    with pytest.raises(ValidationError):
        t22.confidential_transfer(
            ALICE,
            MINT,
            BOB,
            ADMIN,
            new_source_decryptable_available_balance=bytes(36),
            auditor_ciphertext_lo=bytes(63),
            auditor_ciphertext_hi=bytes(64),
            equality_proof=b"e",
            validity_proof=b"v",
            range_proof=b"r",
        )
    with pytest.raises(ValidationError):
        t22.proof_instruction(b"")
