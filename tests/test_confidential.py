# tests/test_confidential.py
from __future__ import annotations

import pytest

from sss_control import confidential as conf
from sss_control.client import Stablecoin
from sss_control.errors import PreconditionFailed, ValidationError
from sss_control.pda import TOKEN_2022_PROGRAM_ID, ZK_ELGAMAL_PROOF_PROGRAM_ID
from sss_control.presets import ExtensionType, Preset
from sss_control.testing.keys import FakeProofProvider, TransparentBalanceKeys, deterministic_keypairs
from sss_control.testing.ledger import InMemoryLedger

KEYS = TransparentBalanceKeys()


def _setup():
    keys = deterministic_keypairs("authority", "mint", "alice", "bob")
    ledger = InMemoryLedger()
    coin = Stablecoin.create(
        ledger,
        ledger,
        keys["authority"],
        {"preset": "sss-3", "name": "Private USD", "symbol": "PUSD"},
        mint_keypair=keys["mint"],
    )
    coin.grant_role(keys["authority"].pubkey, "minter")
    return ledger, coin, keys


def _funded_alice(amount: int = 100_000_000):
    ledger, coin, keys = _setup()
    alice = keys["alice"].pubkey
    coin.mint_to(alice, amount)
    ledger.configure_confidential_account(alice, coin.mint)
    return ledger, coin, keys, coin.as_signer(keys["alice"])


def test_confidential_mint_extensions() -> None:
    _ledger, coin, _keys = _setup()
    assert coin.info().preset is Preset.CONFIDENTIAL
    m = coin.mint_info()
    assert m.has_extension(ExtensionType.CONFIDENTIAL_TRANSFER_MINT)
    assert not m.has_extension(ExtensionType.TRANSFER_HOOK)
    ct = m.extensions[int(ExtensionType.CONFIDENTIAL_TRANSFER_MINT)]
    assert ct[:32] == coin.config_address.raw
    assert ct[32] == 1


def test_status_progression() -> None:
    ledger, coin, keys = _setup()
    alice = keys["alice"].pubkey
    assert coin.confidential_state(alice).status is conf.ConfidentialStatus.NO_CONFIDENTIAL_ACCOUNT

    coin.mint_to(alice, 5_000)
    state = coin.confidential_state(alice)
    assert state.exists and not state.configured
    assert state.public_amount == 5_000

    ledger.configure_confidential_account(alice, coin.mint)
    state = coin.confidential_state(alice, keys=KEYS)
    assert state.status is conf.ConfidentialStatus.CONFIGURED
    assert state.approved


def test_deposit_and_apply_pending() -> None:
    _ledger, coin, keys, as_alice = _funded_alice()

    as_alice.deposit(100_000_000)
    state = as_alice.confidential_state(keys=KEYS)
    assert state.public_amount == 0
    assert state.pending_amount == 100_000_000
    assert state.pending_balance_credit_counter == 1
    assert state.status is conf.ConfidentialStatus.PENDING_NON_ZERO

    as_alice.apply_pending(KEYS)
    state = as_alice.confidential_state(keys=KEYS)
    assert state.available_amount == 100_000_000
    assert state.pending_amount == 0
    assert state.pending_balance_credit_counter == 0
    assert state.expected_pending_balance_credit_counter == 1
    assert state.status is conf.ConfidentialStatus.AVAILABLE_ONLY

    with pytest.raises(PreconditionFailed) as ei:
        as_alice.apply_pending(KEYS)
    assert ei.value.code == "nothing_pending"

    # Deposits move tokens, not supply.
    assert coin.get_total_supply() == 100_000_000


def test_expected_snapshots_match_the_ledger() -> None:
    _ledger, _coin, _keys, as_alice = _funded_alice(1_000)
    before = as_alice.confidential_state(keys=KEYS)

    as_alice.deposit(400)
    predicted = conf.after_deposit(before, 400)
    actual = as_alice.confidential_state(keys=KEYS)
    assert (predicted.public_amount, predicted.pending_amount) == (actual.public_amount, actual.pending_amount)
    assert predicted.pending_balance_credit_counter == actual.pending_balance_credit_counter

    as_alice.apply_pending(KEYS)
    predicted = conf.after_apply_pending(actual)
    actual = as_alice.confidential_state(keys=KEYS)
    assert (predicted.pending_amount, predicted.available_amount) == (0, 400)
    assert actual.available_amount == 400


def test_deposit_guards() -> None:
    _ledger, coin, keys, as_alice = _funded_alice(1_000)
    with pytest.raises(PreconditionFailed) as ei:
        as_alice.deposit(1_001)
    assert ei.value.code == "insufficient_public_balance"
    with pytest.raises(ValidationError):
        as_alice.deposit(0)

    coin.mint_to(keys["bob"].pubkey, 10)
    with pytest.raises(PreconditionFailed) as ei:
        coin.as_signer(keys["bob"]).deposit(5)
    assert ei.value.code == "confidential_not_configured"


def test_withdraw_and_transfer() -> None:
    ledger, coin, keys, as_alice = _funded_alice()
    bob = keys["bob"].pubkey
    as_alice.deposit(100_000_000)
    as_alice.apply_pending(KEYS)

    proofs = FakeProofProvider()
    as_alice.withdraw(40_000_000, proofs, keys=KEYS)
    assert coin.balance_of(keys["alice"].pubkey) == 40_000_000
    assert as_alice.confidential_state(keys=KEYS).available_amount == 60_000_000
    assert proofs.requests[-1].kind == "withdraw"

    with pytest.raises(PreconditionFailed) as ei:
        as_alice.confidential_transfer(bob, 1, proofs, keys=KEYS)
    assert ei.value.code == "confidential_not_configured"

    coin.open_token_account(bob)
    ledger.configure_confidential_account(bob, coin.mint)
    as_alice.confidential_transfer(bob, 25_000_000, proofs, keys=KEYS)

    assert as_alice.confidential_state(keys=KEYS).available_amount == 35_000_000
    bob_state = coin.confidential_state(bob, keys=KEYS)
    assert bob_state.pending_amount == 25_000_000
    assert bob_state.status is conf.ConfidentialStatus.PENDING_NON_ZERO
    assert proofs.requests[-1].destination == coin.token_account(bob)

    with pytest.raises(PreconditionFailed) as ei:
        as_alice.withdraw(10**9, proofs, keys=KEYS)
    assert ei.value.code == "insufficient_confidential_balance"


def test_withdraw_places_proofs_before_the_operation() -> None:
    _ledger, coin, keys, as_alice = _funded_alice()
    as_alice.deposit(1_000)
    as_alice.apply_pending(KEYS)
    state = as_alice.confidential_state(keys=KEYS)

    ixs = conf.plan_withdraw(state, 500, 6, FakeProofProvider())
    assert [ix.program_id for ix in ixs] == [ZK_ELGAMAL_PROOF_PROGRAM_ID, ZK_ELGAMAL_PROOF_PROGRAM_ID, TOKEN_2022_PROGRAM_ID]
    assert ixs[-1].accounts[0].pubkey == coin.token_account(keys["alice"].pubkey)


def test_apply_pending_needs_keys() -> None:
    _ledger, _coin, _keys, as_alice = _funded_alice(1_000)
    as_alice.deposit(10)
    state = as_alice.confidential_state()
    assert state.pending_amount is None
    assert state.has_pending
    with pytest.raises(ValidationError):
        conf.plan_apply_pending(state, KEYS)
