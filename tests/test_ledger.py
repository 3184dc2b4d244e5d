# tests/test_ledger.py
from __future__ import annotations

import pytest

from sss_control.client import Stablecoin
from sss_control.errors import TransportError
from sss_control.execution import ExecutionFailure
from sss_control.instructions import core as core_ix
from sss_control.instructions.types import Instruction
from sss_control.pda import derive_extra_account_metas
from sss_control.roles import Role
from sss_control.testing.keys import deterministic_keypairs
from sss_control.testing.ledger import InMemoryLedger, extra_account_metas_data


def _setup():
    keys = deterministic_keypairs("authority", "mint", "alice", "carol")
    ledger = InMemoryLedger()
    coin = Stablecoin.create(
        ledger,
        ledger,
        keys["authority"],
        {"preset": "sss-1", "name": "Ledger USD", "symbol": "LUSD"},
        mint_keypair=keys["mint"],
    )
    return ledger, coin, keys


def test_rent_and_metas_layout() -> None:
    ledger = InMemoryLedger()
    assert ledger.minimum_balance_for_rent_exemption(0) == 890880
    assert len(extra_account_metas_data()) == 86


def test_failed_transaction_rolls_back_every_instruction() -> None:
    ledger, coin, keys = _setup()
    auth = keys["authority"]
    before = dict(ledger.accounts)
    txs = len(ledger.transactions)

    ixs = [
        core_ix.grant_role(auth.pubkey, coin.mint, keys["alice"].pubkey, Role.MINTER),
        core_ix.pause(auth.pubkey, coin.mint),  # authority holds no pauser role
    ]
    with pytest.raises(ExecutionFailure) as ei:
        ledger.execute(ixs, [auth])

    assert ei.value.instruction_index == 1
    assert ei.value.custom_code == 3012
    assert ei.value.logs == ledger.last_logs
    assert ei.value.logs[-1] == f"Program {coin.config.core_program_id} failed: custom program error: 0xbc4"
    assert ledger.accounts == before
    assert len(ledger.transactions) == txs
    assert not coin.has_role(keys["alice"].pubkey, "minter")


def test_successful_transaction_logs_each_frame() -> None:
    ledger, coin, keys = _setup()
    sig = coin.grant_role(keys["alice"].pubkey, "pauser")
    assert ledger.transactions[-1] == sig
    core = coin.config.core_program_id
    assert ledger.last_logs[0] == f"Program {core} invoke [1]"
    assert "Program 11111111111111111111111111111111 invoke [2]" in ledger.last_logs
    assert ledger.last_logs[-1] == f"Program {core} success"


def test_signatures_are_unique() -> None:
    ledger, coin, keys = _setup()
    a = coin.grant_role(keys["alice"].pubkey, "pauser")
    b = coin.revoke_role(keys["alice"].pubkey, "pauser")
    assert a != b


def test_missing_signature_has_no_program_code() -> None:
    ledger, coin, keys = _setup()
    ix = core_ix.pause(keys["carol"].pubkey, coin.mint)
    with pytest.raises(ExecutionFailure) as ei:
        ledger.execute([ix], [keys["authority"]])
    assert ei.value.custom_code is None
    assert ei.value.instruction_index == 0


def test_unknown_program_is_rejected_without_code() -> None:
    ledger, _coin, keys = _setup()
    stray = Instruction(keys["carol"].pubkey, [], b"\x00")
    with pytest.raises(ExecutionFailure) as ei:
        ledger.execute([stray], [])
    assert ei.value.custom_code is None
    assert ei.value.logs[-1].endswith("is not deployed")


def test_injected_transport_failure_is_one_shot() -> None:
    ledger, coin, keys = _setup()
    coin.grant_role(keys["authority"].pubkey, "pauser")
    ledger.inject_error(TimeoutError("slow node"))
    with pytest.raises(TransportError) as ei:
        coin.pause()
    assert ei.value.retryable is True
    assert coin.info().paused is False

    coin.pause()
    assert coin.info().paused is True


def test_extra_account_metas_only_for_hook_mints() -> None:
    ledger, coin, _keys = _setup()
    assert ledger.get_account(derive_extra_account_metas(coin.mint)[0]) is None
