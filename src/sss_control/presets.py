# src/sss_control/presets.py
"""Preset and pause-state model.

A preset is picked once, at creation, and fixes which Token-2022 extensions
the mint carries and which companion accounts exist. It is stored as a u8 in
the config account.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, Optional

from sss_control.codec import U64_MAX
from sss_control.errors import PreconditionFailed, PresetMismatch, ValidationError
from sss_control.oracle import OraclePrice, effective_supply_cap


class Preset(IntEnum):
    MINIMAL = 1
    COMPLIANT = 2
    CONFIDENTIAL = 3

    @property
    def label(self) -> str:
        return f"sss-{int(self)}"


class ExtensionType(IntEnum):
    """Token-2022 extension type tags (TLV type field)."""

    UNINITIALIZED = 0
    TRANSFER_FEE_CONFIG = 1
    TRANSFER_FEE_AMOUNT = 2
    MINT_CLOSE_AUTHORITY = 3
    CONFIDENTIAL_TRANSFER_MINT = 4
    CONFIDENTIAL_TRANSFER_ACCOUNT = 5
    DEFAULT_ACCOUNT_STATE = 6
    IMMUTABLE_OWNER = 7
    MEMO_TRANSFER = 8
    NON_TRANSFERABLE = 9
    INTEREST_BEARING_CONFIG = 10
    CPI_GUARD = 11
    PERMANENT_DELEGATE = 12
    NON_TRANSFERABLE_ACCOUNT = 13
    TRANSFER_HOOK = 14
    TRANSFER_HOOK_ACCOUNT = 15
    CONFIDENTIAL_TRANSFER_FEE_CONFIG = 16
    CONFIDENTIAL_TRANSFER_FEE_AMOUNT = 17
    METADATA_POINTER = 18
    TOKEN_METADATA = 19


@dataclass(frozen=True)
class PresetFeatures:
    permanent_delegate: bool
    transfer_hook: bool
    default_account_frozen: bool
    confidential: bool


_FEATURES: Dict[Preset, PresetFeatures] = {
    Preset.MINIMAL: PresetFeatures(True, False, False, False),
    Preset.COMPLIANT: PresetFeatures(True, True, True, False),
    Preset.CONFIDENTIAL: PresetFeatures(True, False, False, True),
}

_ALIASES: Dict[str, Preset] = {
    "sss-1": Preset.MINIMAL,
    "minimal": Preset.MINIMAL,
    "sss-2": Preset.COMPLIANT,
    "compliant": Preset.COMPLIANT,
    "sss-3": Preset.CONFIDENTIAL,
    "confidential": Preset.CONFIDENTIAL,
}


def parse_preset(v: Any) -> Preset:
    if isinstance(v, Preset):
        return v
    if isinstance(v, bool):
        raise ValidationError("invalid preset", {"value": v})
    if isinstance(v, int):
        try:
            return Preset(v)
        except ValueError as e:
            raise ValidationError("invalid preset code", {"value": v}) from e
    if isinstance(v, str):
        p = _ALIASES.get(v.strip().lower())
        if p is not None:
            return p
    raise ValidationError("invalid preset (expected sss-1, sss-2 or sss-3)", {"value": repr(v)})


def features(preset: Preset) -> PresetFeatures:
    return _FEATURES[parse_preset(preset)]


def infer_preset(*, confidential: bool = False, transfer_hook: bool = False) -> Preset:
    """Pick a preset from an extension selection. Confidential wins over hook."""
    if confidential:
        return Preset.CONFIDENTIAL
    if transfer_hook:
        return Preset.COMPLIANT
    return Preset.MINIMAL


_REQUIRED_EXTENSIONS: Dict[Preset, tuple] = {
    Preset.MINIMAL: (),
    Preset.COMPLIANT: (ExtensionType.TRANSFER_HOOK,),
    Preset.CONFIDENTIAL: (ExtensionType.CONFIDENTIAL_TRANSFER_MINT,),
}


def check_mint_extensions(preset: Preset, present: Iterable[int]) -> None:
    """Fail fast when a pre-created mint cannot back the requested preset."""
    have = {int(x) for x in present}
    missing = [e for e in _REQUIRED_EXTENSIONS[parse_preset(preset)] if int(e) not in have]
    if missing:
        raise PresetMismatch(
            f"mint lacks extension required by {preset.label}",
            {"preset": preset.label, "missing": [e.name for e in missing]},
        )


class PauseState(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"

    @staticmethod
    def of(paused: bool) -> "PauseState":
        return PauseState.PAUSED if paused else PauseState.ACTIVE


def pause_transition(current: PauseState, *, pause: bool) -> PauseState:
    """Active -> Paused on pause, Paused -> Active on unpause; nothing else."""
    if pause and current is PauseState.PAUSED:
        raise PreconditionFailed("already paused", code="already_paused")
    if not pause and current is PauseState.ACTIVE:
        raise PreconditionFailed("not paused", code="not_paused")
    return PauseState.PAUSED if pause else PauseState.ACTIVE


def can_mint(
    total_minted: int,
    total_burned: int,
    supply_cap: Optional[int],
    amount: int,
    *,
    price: Optional[OraclePrice] = None,
    decimals: int = 6,
) -> bool:
    """Same arithmetic as the program's mint check (overflow counts as a no).

    With a `price` the cap is read as USD and converted to token units first.
    """
    supply_cap = effective_supply_cap(supply_cap, price, decimals)
    if amount <= 0:
        return False
    if total_minted + amount > U64_MAX:
        return False
    if supply_cap is None:
        return True
    return (total_minted - total_burned) + amount <= supply_cap


__all__ = [
    "Preset",
    "ExtensionType",
    "PresetFeatures",
    "parse_preset",
    "features",
    "infer_preset",
    "check_mint_extensions",
    "PauseState",
    "pause_transition",
    "can_mint",
]
