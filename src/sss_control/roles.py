# src/sss_control/roles.py
"""Role model.

A role grant is a PDA under the core program; the account existing IS the
grant. There is no local bookkeeping: re-granting or revoking something that
is not granted is left to the program to reject.
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Optional

from sss_control.crypto.pubkey import Pubkey
from sss_control.errors import ValidationError
from sss_control.pda import CORE_PROGRAM_ID, derive_role
from sss_control.state import RoleGrant, decode_role

if TYPE_CHECKING:
    from sss_control.execution import AccountReader
    from sss_control.instructions.types import Instruction


class Role(IntEnum):
    ADMIN = 0
    MINTER = 1
    FREEZER = 2
    PAUSER = 3
    BURNER = 4
    BLACKLISTER = 5
    SEIZER = 6

    @property
    def label(self) -> str:
        return self.name.lower()


def parse_role(v: Any) -> Role:
    """Names (any case) or numeric codes. Anything else is rejected here."""
    if isinstance(v, Role):
        return v
    if isinstance(v, bool):
        raise ValidationError("invalid role", {"value": v})
    if isinstance(v, int):
        try:
            return Role(v)
        except ValueError as e:
            raise ValidationError("invalid role code", {"value": v}) from e
    if isinstance(v, str):
        s = v.strip()
        if s.isdigit():
            return parse_role(int(s))
        try:
            return Role[s.upper()]
        except KeyError as e:
            raise ValidationError("invalid role name", {"value": s}) from e
    raise ValidationError("invalid role", {"value": repr(v)})


def role_address(config: Pubkey, address: Pubkey, role: Any, program_id: Pubkey = CORE_PROGRAM_ID) -> Pubkey:
    return derive_role(config, address, parse_role(role), program_id)[0]


def grant(admin: Pubkey, mint: Pubkey, grantee: Pubkey, role: Any, *, program_id: Pubkey = CORE_PROGRAM_ID) -> "Instruction":
    from sss_control.instructions import core as core_ix

    return core_ix.grant_role(admin, mint, grantee, parse_role(role), program_id=program_id)


def revoke(admin: Pubkey, mint: Pubkey, holder: Pubkey, role: Any, *, program_id: Pubkey = CORE_PROGRAM_ID) -> "Instruction":
    from sss_control.instructions import core as core_ix

    return core_ix.revoke_role(admin, mint, holder, parse_role(role), program_id=program_id)


def check(
    reader: "AccountReader",
    config: Pubkey,
    address: Pubkey,
    role: Any,
    *,
    program_id: Pubkey = CORE_PROGRAM_ID,
) -> bool:
    """True iff the grant account exists. Absence is an answer, not an error."""
    return reader.get_account(role_address(config, address, role, program_id)) is not None


def fetch_role(
    reader: "AccountReader",
    config: Pubkey,
    address: Pubkey,
    role: Any,
    *,
    program_id: Pubkey = CORE_PROGRAM_ID,
) -> Optional[RoleGrant]:
    info = reader.get_account(role_address(config, address, role, program_id))
    if info is None:
        return None
    return decode_role(info.data)


__all__ = ["Role", "parse_role", "role_address", "grant", "revoke", "check", "fetch_role"]
