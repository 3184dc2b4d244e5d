# src/sss_control/instructions/hook.py
from __future__ import annotations

from typing import Dict

from sss_control.codec import Writer
from sss_control.crypto.pubkey import Pubkey
from sss_control.instructions.types import Instruction, readonly, signer, writable
from sss_control.pda import (
    CORE_PROGRAM_ID,
    HOOK_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    derive_blacklist,
    derive_config,
    derive_extra_account_metas,
    derive_role,
)
from sss_control.roles import Role

DISCRIMINATORS: Dict[str, bytes] = {
    "add_to_blacklist": bytes([90, 115, 98, 231, 173, 119, 117, 176]),
    "initialize_extra_account_metas": bytes([22, 213, 130, 114, 1, 174, 121, 36]),
    "remove_from_blacklist": bytes([47, 105, 20, 10, 165, 168, 203, 219]),
    "transfer_hook": bytes([220, 57, 220, 152, 126, 125, 97, 168]),
}


def _blacklister_role(blacklister: Pubkey, mint: Pubkey, core_program_id: Pubkey) -> Pubkey:
    config, _ = derive_config(mint, core_program_id)
    role, _ = derive_role(config, blacklister, Role.BLACKLISTER, core_program_id)
    return role


def initialize_extra_account_metas(
    payer: Pubkey,
    mint: Pubkey,
    *,
    program_id: Pubkey = HOOK_PROGRAM_ID,
) -> Instruction:
    metas, _ = derive_extra_account_metas(mint, program_id)
    return Instruction(
        program_id,
        [
            signer(payer, writable=True),
            writable(metas),
            readonly(mint),
            readonly(SYSTEM_PROGRAM_ID),
        ],
        DISCRIMINATORS["initialize_extra_account_metas"],
    )


def add_to_blacklist(
    blacklister: Pubkey,
    mint: Pubkey,
    address: Pubkey,
    reason: str,
    *,
    program_id: Pubkey = HOOK_PROGRAM_ID,
    core_program_id: Pubkey = CORE_PROGRAM_ID,
) -> Instruction:
    entry, _ = derive_blacklist(mint, address, program_id)
    return Instruction(
        program_id,
        [
            signer(blacklister, writable=True),
            readonly(_blacklister_role(blacklister, mint, core_program_id)),
            readonly(mint),
            readonly(address),
            writable(entry),
            readonly(SYSTEM_PROGRAM_ID),
        ],
        Writer().raw(DISCRIMINATORS["add_to_blacklist"]).string(reason).bytes(),
    )


def remove_from_blacklist(
    blacklister: Pubkey,
    mint: Pubkey,
    address: Pubkey,
    *,
    program_id: Pubkey = HOOK_PROGRAM_ID,
    core_program_id: Pubkey = CORE_PROGRAM_ID,
) -> Instruction:
    entry, _ = derive_blacklist(mint, address, program_id)
    return Instruction(
        program_id,
        [
            signer(blacklister, writable=True),
            readonly(_blacklister_role(blacklister, mint, core_program_id)),
            readonly(mint),
            writable(entry),
        ],
        DISCRIMINATORS["remove_from_blacklist"],
    )


__all__ = [
    "DISCRIMINATORS",
    "initialize_extra_account_metas",
    "add_to_blacklist",
    "remove_from_blacklist",
]
