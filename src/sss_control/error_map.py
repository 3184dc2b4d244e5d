# src/sss_control/error_map.py
"""Translate executor/transport failures into the client's error taxonomy.

Program failures are resolved to (program, custom code) and looked up in the
tables below. Unknown codes stay ProgramError(kind=Other) so nothing is lost.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional, Sequence, Tuple

from sss_control.crypto.pubkey import Pubkey
from sss_control.errors import ProgramError, ProgramErrorKind, SssError, TransportError
from sss_control.execution import ExecutionFailure
from sss_control.instructions.types import Instruction
from sss_control.pda import CORE_PROGRAM_ID, HOOK_PROGRAM_ID, SYSTEM_PROGRAM_ID, TOKEN_2022_PROGRAM_ID

K = ProgramErrorKind

# code -> (name, message, kind)
CORE_ERRORS: Dict[int, Tuple[str, str, ProgramErrorKind]] = {
    6000: ("Paused", "Operations are paused", K.PAUSED),
    6001: ("NotPaused", "Operations are not paused", K.OTHER),
    6002: ("SupplyCapExceeded", "Supply cap exceeded", K.SUPPLY_CAP_EXCEEDED),
    6003: ("Unauthorized", "Unauthorized: missing required role", K.UNAUTHORIZED),
    6004: ("InvalidPreset", "Invalid preset value", K.OTHER),
    6005: ("LastAdmin", "Cannot remove the last admin", K.OTHER),
    6006: ("ArithmeticOverflow", "Overflow in arithmetic operation", K.OTHER),
    6007: ("MintMismatch", "Mint mismatch", K.OTHER),
    6008: ("InvalidSupplyCap", "Invalid supply cap: must be >= current supply", K.OTHER),
    6009: ("ZeroAmount", "Amount must be greater than zero", K.OTHER),
    6010: ("InvalidRole", "Invalid role value", K.INVALID_ROLE),
    6011: ("InvalidOracleData", "Invalid oracle price feed data", K.OTHER),
    6012: ("InvalidOraclePrice", "Oracle price is stale or non-positive", K.OTHER),
    6013: ("QuotaExceeded", "Minter quota exceeded", K.OTHER),
    6014: ("NameTooLong", "Name exceeds maximum length of 32 characters", K.OTHER),
    6015: ("SymbolTooLong", "Symbol exceeds maximum length of 10 characters", K.OTHER),
    6016: ("UriTooLong", "URI exceeds maximum length of 200 characters", K.OTHER),
}

HOOK_ERRORS: Dict[int, Tuple[str, str, ProgramErrorKind]] = {
    6000: ("SenderBlacklisted", "Sender is blacklisted", K.BLACKLISTED),
    6001: ("ReceiverBlacklisted", "Receiver is blacklisted", K.BLACKLISTED),
    6002: ("ReasonTooLong", "Reason exceeds maximum length", K.OTHER),
    6003: ("Unauthorized", "Unauthorized: not an admin", K.UNAUTHORIZED),
}

# Anchor framework codes, shared by both programs.
ANCHOR_ERRORS: Dict[int, Tuple[str, str, ProgramErrorKind]] = {
    100: ("InstructionMissing", "8 byte instruction identifier not provided", K.OTHER),
    101: ("InstructionFallbackNotFound", "Fallback functions are not supported", K.OTHER),
    102: ("InstructionDidNotDeserialize", "The program could not deserialize the given instruction", K.OTHER),
    2000: ("ConstraintMut", "A mut constraint was violated", K.OTHER),
    2002: ("ConstraintSigner", "A signer constraint was violated", K.OTHER),
    2003: ("ConstraintRaw", "A raw constraint was violated", K.OTHER),
    2006: ("ConstraintSeeds", "A seeds constraint was violated", K.OTHER),
    2014: ("ConstraintTokenMint", "A token mint constraint was violated", K.OTHER),
    3001: ("AccountDiscriminatorNotFound", "No 8 byte discriminator was found on the account", K.OTHER),
    3002: ("AccountDiscriminatorMismatch", "8 byte discriminator did not match what was expected", K.OTHER),
    3003: ("AccountDidNotDeserialize", "Failed to deserialize the account", K.OTHER),
    3005: ("AccountNotEnoughKeys", "Not enough account keys given to the instruction", K.OTHER),
    3007: ("AccountOwnedByWrongProgram", "The given account is owned by a different program than expected", K.OTHER),
    3010: ("AccountNotSigner", "The given account did not sign", K.OTHER),
    3012: ("AccountNotInitialized", "The program expected this account to be already initialized", K.OTHER),
}

SYSTEM_ERRORS: Dict[int, Tuple[str, str, ProgramErrorKind]] = {
    0: ("AccountAlreadyInUse", "An account with the same address already exists", K.OTHER),
    1: ("ResultWithNegativeLamports", "Account does not have enough SOL to perform the operation", K.OTHER),
}

TOKEN_ERRORS: Dict[int, Tuple[str, str, ProgramErrorKind]] = {
    1: ("InsufficientFunds", "Insufficient funds", K.OTHER),
    3: ("MintMismatch", "Account not associated with this Mint", K.OTHER),
    4: ("OwnerMismatch", "Owner does not match", K.UNAUTHORIZED),
    6: ("AlreadyInUse", "Account or token already in use", K.OTHER),
    9: ("UninitializedState", "State is uninitialized", K.OTHER),
    12: ("InvalidInstruction", "Invalid instruction", K.OTHER),
    13: ("InvalidState", "Invalid account state for operation", K.OTHER),
    14: ("Overflow", "Operation overflowed", K.OTHER),
    16: ("MintCannotFreeze", "This token mint cannot freeze accounts", K.OTHER),
    17: ("AccountFrozen", "Account is frozen", K.OTHER),
    18: ("MintDecimalsMismatch", "The provided decimals value different from the Mint decimals", K.OTHER),
}

_FAILED_LOG = re.compile(r"^Program (\w+) failed: custom program error: (0x[0-9a-fA-F]+)")


def _program_label(program_id: Optional[Pubkey]) -> str:
    # Core and hook are matched by the caller against the configured ids.
    if program_id == TOKEN_2022_PROGRAM_ID:
        return "token-2022"
    if program_id == SYSTEM_PROGRAM_ID:
        return "system"
    return str(program_id) if program_id is not None else "unknown"


def _table_for(program: str) -> Dict[int, Tuple[str, str, ProgramErrorKind]]:
    if program == "core":
        return CORE_ERRORS
    if program == "hook":
        return HOOK_ERRORS
    if program == "token-2022":
        return TOKEN_ERRORS
    if program == "system":
        return SYSTEM_ERRORS
    return {}


def map_program_error(
    program_id: Optional[Pubkey],
    code: int,
    *,
    instruction_index: Optional[int] = None,
    logs: Optional[Sequence[str]] = None,
    core_program_id: Pubkey = CORE_PROGRAM_ID,
    hook_program_id: Pubkey = HOOK_PROGRAM_ID,
) -> ProgramError:
    """(program, custom code) -> ProgramError with a kind."""
    if program_id is not None and program_id == core_program_id:
        program = "core"
    elif program_id is not None and program_id == hook_program_id:
        program = "hook"
    else:
        program = _program_label(program_id)

    entry = _table_for(program).get(code)
    if entry is None and program in ("core", "hook"):
        entry = ANCHOR_ERRORS.get(code)
    if entry is None:
        return ProgramError.from_code(
            code,
            kind=K.OTHER,
            program=program,
            name="",
            message=f"unknown {program} error code {code}",
            instruction_index=instruction_index,
            logs=list(logs or []),
        )
    name, message, kind = entry
    return ProgramError.from_code(
        code,
        kind=kind,
        program=program,
        name=name,
        message=message,
        instruction_index=instruction_index,
        logs=list(logs or []),
    )


def _origin_from_logs(logs: Sequence[str]) -> Optional[Tuple[Pubkey, int]]:
    # The innermost failing program logs its failure first.
    for line in logs:
        m = _FAILED_LOG.match(line.strip())
        if m is None:
            continue
        try:
            return Pubkey.from_base58(m.group(1)), int(m.group(2), 16)
        except SssError:
            continue
    return None


def map_execution_failure(
    failure: ExecutionFailure,
    instructions: Sequence[Instruction],
    *,
    core_program_id: Pubkey = CORE_PROGRAM_ID,
    hook_program_id: Pubkey = HOOK_PROGRAM_ID,
) -> SssError:
    if failure.custom_code is None:
        return TransportError(
            "transaction failed without a program error code",
            {"message": failure.message, "instruction_index": failure.instruction_index},
            retryable=False,
        )

    program_id: Optional[Pubkey] = None
    origin = _origin_from_logs(failure.logs)
    if origin is not None and origin[1] == failure.custom_code:
        program_id = origin[0]
    elif failure.instruction_index is not None and 0 <= failure.instruction_index < len(instructions):
        program_id = instructions[failure.instruction_index].program_id

    return map_program_error(
        program_id,
        failure.custom_code,
        instruction_index=failure.instruction_index,
        logs=failure.logs,
        core_program_id=core_program_id,
        hook_program_id=hook_program_id,
    )


def parse_instruction_error(err: Any) -> Tuple[Optional[int], Optional[int]]:
    """`{"InstructionError": [index, {"Custom": code}]}` -> (index, code)."""
    if not isinstance(err, dict):
        return None, None
    ie = err.get("InstructionError")
    if not isinstance(ie, (list, tuple)) or len(ie) != 2:
        return None, None
    idx, detail = ie
    index = idx if isinstance(idx, int) and not isinstance(idx, bool) else None
    code = None
    if isinstance(detail, dict):
        c = detail.get("Custom")
        if isinstance(c, int) and not isinstance(c, bool):
            code = c
    return index, code


def failure_from_rpc_error(err: Any, logs: Optional[Sequence[str]] = None) -> ExecutionFailure:
    index, code = parse_instruction_error(err)
    return ExecutionFailure(str(err), instruction_index=index, custom_code=code, logs=logs)


def map_exception(
    exc: BaseException,
    instructions: Sequence[Instruction] = (),
    *,
    core_program_id: Pubkey = CORE_PROGRAM_ID,
    hook_program_id: Pubkey = HOOK_PROGRAM_ID,
) -> SssError:
    """Anything raised by an executor or reader, as an SssError.

    Exceptions outside the transport family propagate unchanged.
    """
    if isinstance(exc, SssError):
        return exc
    if isinstance(exc, ExecutionFailure):
        return map_execution_failure(
            exc,
            instructions,
            core_program_id=core_program_id,
            hook_program_id=hook_program_id,
        )
    if isinstance(exc, TimeoutError):
        return TransportError("request timed out", {"error": str(exc)})
    if isinstance(exc, ConnectionError):
        return TransportError("connection failed", {"error": str(exc)})
    if isinstance(exc, OSError):
        return TransportError("transport failure", {"error": str(exc)})
    raise exc


__all__ = [
    "CORE_ERRORS",
    "HOOK_ERRORS",
    "ANCHOR_ERRORS",
    "SYSTEM_ERRORS",
    "TOKEN_ERRORS",
    "map_program_error",
    "map_execution_failure",
    "parse_instruction_error",
    "failure_from_rpc_error",
    "map_exception",
]
