# tests/test_error_map.py
from __future__ import annotations

import pytest

from sss_control.error_map import (
    failure_from_rpc_error,
    map_exception,
    map_execution_failure,
    map_program_error,
    parse_instruction_error,
)
from sss_control.errors import ProgramError, ProgramErrorKind, TransportError, ValidationError
from sss_control.execution import ExecutionFailure
from sss_control.instructions import core as core_ix
from sss_control.pda import CORE_PROGRAM_ID, HOOK_PROGRAM_ID, SYSTEM_PROGRAM_ID, TOKEN_2022_PROGRAM_ID
from sss_control.testing.keys import deterministic_keypair

K = ProgramErrorKind


def _failed(program, code: int) -> str:
    return f"Program {program} failed: custom program error: {hex(code)}"


def _mint_ix():
    minter = deterministic_keypair("minter").pubkey
    mint = deterministic_keypair("mint").pubkey
    to = deterministic_keypair("to").pubkey
    return core_ix.mint_tokens(minter, mint, to, 1)


@pytest.mark.parametrize(
    "program_id, code, kind, name",
    [
        (CORE_PROGRAM_ID, 6000, K.PAUSED, "Paused"),
        (CORE_PROGRAM_ID, 6002, K.SUPPLY_CAP_EXCEEDED, "SupplyCapExceeded"),
        (CORE_PROGRAM_ID, 6003, K.UNAUTHORIZED, "Unauthorized"),
        (CORE_PROGRAM_ID, 6010, K.INVALID_ROLE, "InvalidRole"),
        (CORE_PROGRAM_ID, 6013, K.OTHER, "QuotaExceeded"),
        (HOOK_PROGRAM_ID, 6000, K.BLACKLISTED, "SenderBlacklisted"),
        (HOOK_PROGRAM_ID, 6001, K.BLACKLISTED, "ReceiverBlacklisted"),
        (HOOK_PROGRAM_ID, 6003, K.UNAUTHORIZED, "Unauthorized"),
        (CORE_PROGRAM_ID, 3012, K.OTHER, "AccountNotInitialized"),
        (HOOK_PROGRAM_ID, 2006, K.OTHER, "ConstraintSeeds"),
        (TOKEN_2022_PROGRAM_ID, 17, K.OTHER, "AccountFrozen"),
        (TOKEN_2022_PROGRAM_ID, 4, K.UNAUTHORIZED, "OwnerMismatch"),
        (SYSTEM_PROGRAM_ID, 0, K.OTHER, "AccountAlreadyInUse"),
    ],
)
def test_known_codes(program_id, code: int, kind: ProgramErrorKind, name: str) -> None:
    err = map_program_error(program_id, code)
    assert isinstance(err, ProgramError)
    assert err.program_code == code
    assert err.kind is kind
    assert err.name == name


def test_unknown_code_is_kept_as_other() -> None:
    err = map_program_error(CORE_PROGRAM_ID, 9999, instruction_index=3)
    assert err.kind is K.OTHER
    assert err.name == ""
    assert err.program_code == 9999
    assert err.program == "core"
    assert err.instruction_index == 3
    assert "Unknown(9999)" in str(err)


def test_anchor_codes_do_not_apply_to_token_program() -> None:
    err = map_program_error(TOKEN_2022_PROGRAM_ID, 3012)
    assert err.name == ""
    assert err.program == "token-2022"


def test_custom_program_ids_are_honored() -> None:
    core = deterministic_keypair("core-fork").pubkey
    err = map_program_error(core, 6000, core_program_id=core)
    assert err.kind is K.PAUSED
    assert err.program == "core"
    # The default core id is now just some other program.
    other = map_program_error(CORE_PROGRAM_ID, 6000, core_program_id=core)
    assert other.kind is K.OTHER


def test_hook_failure_inside_core_instruction_is_attributed_to_hook() -> None:
    logs = [
        f"Program {CORE_PROGRAM_ID} invoke [1]",
        f"Program {TOKEN_2022_PROGRAM_ID} invoke [2]",
        f"Program {HOOK_PROGRAM_ID} invoke [3]",
        _failed(HOOK_PROGRAM_ID, 6001),
        _failed(TOKEN_2022_PROGRAM_ID, 6001),
        _failed(CORE_PROGRAM_ID, 6001),
    ]
    failure = ExecutionFailure("boom", instruction_index=0, custom_code=6001, logs=logs)
    err = map_execution_failure(failure, [_mint_ix()])
    assert isinstance(err, ProgramError)
    assert err.program == "hook"
    assert err.name == "ReceiverBlacklisted"
    assert err.kind is K.BLACKLISTED
    assert err.logs == logs


def test_without_logs_the_failing_instruction_decides() -> None:
    failure = ExecutionFailure("boom", instruction_index=0, custom_code=6001)
    err = map_execution_failure(failure, [_mint_ix()])
    assert err.program == "core"
    assert err.name == "NotPaused"


def test_failure_without_code_is_non_retryable_transport_error() -> None:
    err = map_execution_failure(ExecutionFailure("missing signature"), [_mint_ix()])
    assert isinstance(err, TransportError)
    assert err.retryable is False


def test_parse_instruction_error_shapes() -> None:
    assert parse_instruction_error({"InstructionError": [2, {"Custom": 6003}]}) == (2, 6003)
    assert parse_instruction_error({"InstructionError": [1, "MissingRequiredSignature"]}) == (1, None)
    assert parse_instruction_error("AccountNotFound") == (None, None)
    assert parse_instruction_error({"InstructionError": [True, {"Custom": True}]}) == (None, None)


def test_failure_from_rpc_error() -> None:
    f = failure_from_rpc_error({"InstructionError": [0, {"Custom": 6002}]}, ["log"])
    assert f.instruction_index == 0
    assert f.custom_code == 6002
    assert f.logs == ["log"]


def test_map_exception_transport_family() -> None:
    assert isinstance(map_exception(TimeoutError("slow")), TransportError)
    assert isinstance(map_exception(ConnectionRefusedError("nope")), TransportError)
    assert isinstance(map_exception(OSError("disk")), TransportError)

    original = ValidationError("bad")
    assert map_exception(original) is original

    with pytest.raises(KeyError):
        map_exception(KeyError("not ours"))
