"""Error taxonomy for the SSS control-plane client.

Every failure the client surfaces is one of the classes below, so callers can
decide retry vs. abort on the type alone:

  ValidationError      malformed input; raised before any network call
  PreconditionFailed   locally detectable state violation (PresetMismatch is one)
  DerivationExhausted  no bump produced an off-curve address; a defect, never retried
  ProgramError         the ledger program rejected the instruction
  TransportError       network / timeout / RPC failure; retryable by the caller
  CorruptState         decoded account data violates an invariant; always fatal
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


@dataclass
class SssError(Exception):
    """Base class. `code` is a stable machine-readable tag."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class ValidationError(SssError):
    def __init__(self, reason: str, details: Any | None = None, *, code: str = "validation_error") -> None:
        super().__init__(code, reason, details)


class PreconditionFailed(SssError):
    def __init__(self, reason: str, details: Any | None = None, *, code: str = "precondition_failed") -> None:
        super().__init__(code, reason, details)


class PresetMismatch(PreconditionFailed):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__(reason, details, code="preset_mismatch")


class DerivationExhausted(SssError):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("derivation_exhausted", reason, details)


class CorruptState(SssError):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("corrupt_state", reason, details)


class TransportError(SssError):
    """Network-level failure. `retryable` is advisory for the caller only."""

    def __init__(self, reason: str, details: Any | None = None, *, retryable: bool = True) -> None:
        super().__init__("transport_error", reason, details)
        self.retryable = retryable


class ProgramErrorKind(str, Enum):
    UNAUTHORIZED = "Unauthorized"
    PAUSED = "Paused"
    SUPPLY_CAP_EXCEEDED = "SupplyCapExceeded"
    BLACKLISTED = "Blacklisted"
    INVALID_ROLE = "InvalidRole"
    OTHER = "Other"


@dataclass
class ProgramError(SssError):
    """The external program rejected an instruction with a numeric code."""

    program_code: Optional[int] = None
    kind: ProgramErrorKind = ProgramErrorKind.OTHER
    program: str = ""
    name: str = ""
    instruction_index: Optional[int] = None
    logs: list[str] = field(default_factory=list)

    @staticmethod
    def from_code(
        program_code: Optional[int],
        *,
        kind: ProgramErrorKind,
        program: str,
        name: str,
        message: str,
        instruction_index: Optional[int] = None,
        logs: Optional[list[str]] = None,
    ) -> "ProgramError":
        return ProgramError(
            "program_error",
            message,
            None,
            program_code=program_code,
            kind=kind,
            program=program,
            name=name,
            instruction_index=instruction_index,
            logs=list(logs or []),
        )

    def __str__(self) -> str:
        code = "?" if self.program_code is None else str(self.program_code)
        return f"{self.code}:{self.kind.value}:{self.name or 'Unknown'}({code}):{self.reason}"


__all__ = [
    "SssError",
    "ValidationError",
    "PreconditionFailed",
    "PresetMismatch",
    "DerivationExhausted",
    "CorruptState",
    "TransportError",
    "ProgramErrorKind",
    "ProgramError",
]
