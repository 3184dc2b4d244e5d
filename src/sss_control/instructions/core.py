# src/sss_control/instructions/core.py
"""Instruction builders for the core stablecoin program.

Every builder is pure: same inputs, same bytes. PDAs are derived from the
mint and the acting signer; nothing is fetched.
"""

from __future__ import annotations

from typing import Dict, Optional

from sss_control.codec import Writer, check_u64
from sss_control.crypto.pubkey import Pubkey
from sss_control.instructions.types import Instruction, readonly, signer, writable
from sss_control.pda import CORE_PROGRAM_ID, SYSTEM_PROGRAM_ID, TOKEN_2022_PROGRAM_ID, derive_config, derive_role
from sss_control.presets import Preset, parse_preset
from sss_control.roles import Role

DISCRIMINATORS: Dict[str, bytes] = {
    "initialize": bytes([175, 175, 109, 31, 13, 152, 155, 237]),
    "mint_tokens": bytes([59, 132, 24, 246, 122, 39, 8, 243]),
    "burn_tokens": bytes([76, 15, 51, 254, 229, 215, 121, 66]),
    "freeze_account": bytes([253, 75, 82, 133, 167, 238, 43, 130]),
    "thaw_account": bytes([115, 152, 79, 213, 213, 169, 184, 35]),
    "pause": bytes([211, 22, 221, 251, 74, 121, 193, 47]),
    "unpause": bytes([169, 144, 4, 38, 10, 141, 188, 255]),
    "seize": bytes([129, 159, 143, 31, 161, 224, 241, 84]),
    "grant_role": bytes([218, 234, 128, 15, 82, 33, 236, 253]),
    "revoke_role": bytes([179, 232, 2, 180, 48, 227, 82, 7]),
    "transfer_authority": bytes([48, 169, 76, 72, 229, 180, 55, 161]),
    "update_minter": bytes([164, 129, 164, 88, 75, 29, 91, 38]),
    "update_supply_cap": bytes([9, 215, 52, 77, 1, 9, 162, 17]),
}


def _config(mint: Pubkey, program_id: Pubkey) -> Pubkey:
    return derive_config(mint, program_id)[0]


def _role(config: Pubkey, who: Pubkey, role: int, program_id: Pubkey) -> Pubkey:
    return derive_role(config, who, role, program_id)[0]


def initialize(
    authority: Pubkey,
    mint: Pubkey,
    *,
    preset: Preset,
    name: str,
    symbol: str,
    uri: str,
    decimals: int,
    supply_cap: Optional[int] = None,
    enable_permanent_delegate: Optional[bool] = None,
    enable_transfer_hook: Optional[bool] = None,
    default_account_frozen: Optional[bool] = None,
    program_id: Pubkey = CORE_PROGRAM_ID,
) -> Instruction:
    config = _config(mint, program_id)
    data = (
        Writer()
        .raw(DISCRIMINATORS["initialize"])
        .u8(int(parse_preset(preset)), "preset")
        .string(name)
        .string(symbol)
        .string(uri)
        .u8(decimals, "decimals")
        .option_u64(supply_cap, "supply_cap")
        .option_bool(enable_permanent_delegate)
        .option_bool(enable_transfer_hook)
        .option_bool(default_account_frozen)
        .bytes()
    )
    return Instruction(
        program_id,
        [
            signer(authority, writable=True),
            writable(config),
            readonly(mint),
            writable(_role(config, authority, Role.ADMIN, program_id)),
            readonly(TOKEN_2022_PROGRAM_ID),
            readonly(SYSTEM_PROGRAM_ID),
        ],
        data,
    )


def mint_tokens(
    minter: Pubkey,
    mint: Pubkey,
    to: Pubkey,
    amount: int,
    *,
    price_feed: Optional[Pubkey] = None,
    program_id: Pubkey = CORE_PROGRAM_ID,
) -> Instruction:
    """`price_feed` (a Pyth price account) makes the program read the cap as USD."""
    config = _config(mint, program_id)
    accounts = [
        signer(minter),
        writable(config),
        writable(_role(config, minter, Role.MINTER, program_id)),
        writable(mint),
        writable(to),
        readonly(TOKEN_2022_PROGRAM_ID),
    ]
    if price_feed is not None:
        accounts.append(readonly(price_feed))
    return Instruction(program_id, accounts, Writer().raw(DISCRIMINATORS["mint_tokens"]).u64(amount).bytes())


def burn_tokens(burner: Pubkey, mint: Pubkey, source: Pubkey, amount: int, *, program_id: Pubkey = CORE_PROGRAM_ID) -> Instruction:
    config = _config(mint, program_id)
    return Instruction(
        program_id,
        [
            signer(burner),
            writable(config),
            readonly(_role(config, burner, Role.BURNER, program_id)),
            writable(mint),
            writable(source),
            readonly(TOKEN_2022_PROGRAM_ID),
        ],
        Writer().raw(DISCRIMINATORS["burn_tokens"]).u64(amount).bytes(),
    )


def _freeze_like(name: str, freezer: Pubkey, mint: Pubkey, token_account: Pubkey, program_id: Pubkey) -> Instruction:
    config = _config(mint, program_id)
    return Instruction(
        program_id,
        [
            signer(freezer),
            readonly(config),
            readonly(_role(config, freezer, Role.FREEZER, program_id)),
            readonly(mint),
            writable(token_account),
            readonly(TOKEN_2022_PROGRAM_ID),
        ],
        DISCRIMINATORS[name],
    )


def freeze_account(freezer: Pubkey, mint: Pubkey, token_account: Pubkey, *, program_id: Pubkey = CORE_PROGRAM_ID) -> Instruction:
    return _freeze_like("freeze_account", freezer, mint, token_account, program_id)


def thaw_account(freezer: Pubkey, mint: Pubkey, token_account: Pubkey, *, program_id: Pubkey = CORE_PROGRAM_ID) -> Instruction:
    return _freeze_like("thaw_account", freezer, mint, token_account, program_id)


def _pause_like(name: str, pauser: Pubkey, mint: Pubkey, program_id: Pubkey) -> Instruction:
    config = _config(mint, program_id)
    return Instruction(
        program_id,
        [
            signer(pauser),
            writable(config),
            readonly(_role(config, pauser, Role.PAUSER, program_id)),
        ],
        DISCRIMINATORS[name],
    )


def pause(pauser: Pubkey, mint: Pubkey, *, program_id: Pubkey = CORE_PROGRAM_ID) -> Instruction:
    return _pause_like("pause", pauser, mint, program_id)


def unpause(pauser: Pubkey, mint: Pubkey, *, program_id: Pubkey = CORE_PROGRAM_ID) -> Instruction:
    return _pause_like("unpause", pauser, mint, program_id)


def seize(
    seizer: Pubkey,
    mint: Pubkey,
    source: Pubkey,
    destination: Pubkey,
    amount: int,
    *,
    program_id: Pubkey = CORE_PROGRAM_ID,
) -> Instruction:
    """Move tokens via the permanent delegate. Not gated by pause."""
    config = _config(mint, program_id)
    return Instruction(
        program_id,
        [
            signer(seizer),
            readonly(config),
            readonly(_role(config, seizer, Role.SEIZER, program_id)),
            readonly(mint),
            writable(source),
            writable(destination),
            readonly(TOKEN_2022_PROGRAM_ID),
        ],
        Writer().raw(DISCRIMINATORS["seize"]).u64(amount).bytes(),
    )


def grant_role(admin: Pubkey, mint: Pubkey, grantee: Pubkey, role: int, *, program_id: Pubkey = CORE_PROGRAM_ID) -> Instruction:
    config = _config(mint, program_id)
    return Instruction(
        program_id,
        [
            signer(admin, writable=True),
            writable(config),
            readonly(_role(config, admin, Role.ADMIN, program_id)),
            readonly(grantee),
            writable(_role(config, grantee, int(role), program_id)),
            readonly(SYSTEM_PROGRAM_ID),
        ],
        Writer().raw(DISCRIMINATORS["grant_role"]).u8(int(role), "role").bytes(),
    )


def revoke_role(admin: Pubkey, mint: Pubkey, holder: Pubkey, role: int, *, program_id: Pubkey = CORE_PROGRAM_ID) -> Instruction:
    config = _config(mint, program_id)
    return Instruction(
        program_id,
        [
            signer(admin, writable=True),
            writable(config),
            readonly(_role(config, admin, Role.ADMIN, program_id)),
            writable(_role(config, holder, int(role), program_id)),
        ],
        DISCRIMINATORS["revoke_role"],
    )


def transfer_authority(admin: Pubkey, mint: Pubkey, new_authority: Pubkey, *, program_id: Pubkey = CORE_PROGRAM_ID) -> Instruction:
    config = _config(mint, program_id)
    return Instruction(
        program_id,
        [
            signer(admin, writable=True),
            writable(config),
            writable(_role(config, admin, Role.ADMIN, program_id)),
            readonly(new_authority),
            writable(_role(config, new_authority, Role.ADMIN, program_id)),
            readonly(SYSTEM_PROGRAM_ID),
        ],
        DISCRIMINATORS["transfer_authority"],
    )


def update_minter(
    admin: Pubkey,
    mint: Pubkey,
    minter: Pubkey,
    new_quota: Optional[int],
    *,
    program_id: Pubkey = CORE_PROGRAM_ID,
) -> Instruction:
    config = _config(mint, program_id)
    return Instruction(
        program_id,
        [
            signer(admin),
            readonly(config),
            readonly(_role(config, admin, Role.ADMIN, program_id)),
            writable(_role(config, minter, Role.MINTER, program_id)),
        ],
        Writer().raw(DISCRIMINATORS["update_minter"]).option_u64(new_quota, "new_quota").bytes(),
    )


def update_supply_cap(
    admin: Pubkey,
    mint: Pubkey,
    new_supply_cap: Optional[int],
    *,
    program_id: Pubkey = CORE_PROGRAM_ID,
) -> Instruction:
    config = _config(mint, program_id)
    if new_supply_cap is not None:
        check_u64(new_supply_cap, "new_supply_cap")
    return Instruction(
        program_id,
        [
            signer(admin),
            writable(config),
            readonly(_role(config, admin, Role.ADMIN, program_id)),
        ],
        Writer().raw(DISCRIMINATORS["update_supply_cap"]).option_u64(new_supply_cap, "new_supply_cap").bytes(),
    )


__all__ = [
    "DISCRIMINATORS",
    "initialize",
    "mint_tokens",
    "burn_tokens",
    "freeze_account",
    "thaw_account",
    "pause",
    "unpause",
    "seize",
    "grant_role",
    "revoke_role",
    "transfer_authority",
    "update_minter",
    "update_supply_cap",
]
