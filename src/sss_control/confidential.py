# src/sss_control/confidential.py
"""Confidential balance lifecycle (sss-3).

    NoConfidentialAccount -> Configured -> {PendingNonZero, AvailableOnly}

Deposit moves public tokens into the pending balance and needs no proof.
ApplyPendingBalance folds all of pending into available; it must quote the
account's current pending-balance credit counter and a new decryptable
available balance. Transfer and withdraw need zero-knowledge proofs, which
come from an injected ProofProvider as opaque bytes.

Balances on the ledger are ciphertexts. Plaintext amounts are only known
when a BalanceKeys capability is supplied; without one, pending is judged by
the credit counter alone.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Protocol

from sss_control.codec import check_u64
from sss_control.crypto.pubkey import Pubkey
from sss_control.errors import PreconditionFailed, ValidationError
from sss_control.execution import AccountReader
from sss_control.instructions import token2022 as t22
from sss_control.instructions.types import Instruction
from sss_control.pda import TOKEN_2022_PROGRAM_ID, derive_associated_token_account
from sss_control.state import decode_token_account

PENDING_LO_BITS = 16


class ConfidentialStatus(str, Enum):
    NO_CONFIDENTIAL_ACCOUNT = "NoConfidentialAccount"
    CONFIGURED = "Configured"
    PENDING_NON_ZERO = "PendingNonZero"
    AVAILABLE_ONLY = "AvailableOnly"


class BalanceKeys(Protocol):
    """Owner-held keys able to open the account's ciphertexts."""

    def decrypt_elgamal(self, ciphertext: bytes) -> int:
        ...

    def decrypt_decryptable(self, ciphertext: bytes) -> int:
        ...

    def encrypt_decryptable(self, amount: int) -> bytes:
        ...


@dataclass(frozen=True)
class ConfidentialAccountState:
    mint: Pubkey
    owner: Pubkey
    token_account: Pubkey
    exists: bool = False
    configured: bool = False
    public_amount: int = 0
    approved: bool = False
    elgamal_pubkey: bytes = b""
    pending_balance_lo: bytes = b""
    pending_balance_hi: bytes = b""
    available_balance: bytes = b""
    decryptable_available_balance: bytes = b""
    pending_balance_credit_counter: int = 0
    maximum_pending_balance_credit_counter: int = 0
    expected_pending_balance_credit_counter: int = 0
    actual_pending_balance_credit_counter: int = 0
    pending_amount: Optional[int] = None
    available_amount: Optional[int] = None

    @property
    def has_pending(self) -> bool:
        if self.pending_amount is not None:
            return self.pending_amount > 0
        return self.pending_balance_credit_counter > 0

    @property
    def status(self) -> ConfidentialStatus:
        if not self.configured:
            return ConfidentialStatus.NO_CONFIDENTIAL_ACCOUNT
        if self.has_pending:
            return ConfidentialStatus.PENDING_NON_ZERO
        if self.available_amount:
            return ConfidentialStatus.AVAILABLE_ONLY
        return ConfidentialStatus.CONFIGURED


@dataclass(frozen=True)
class ProofRequest:
    kind: str  # "transfer" or "withdraw"
    amount: int
    destination: Optional[Pubkey] = None
    destination_elgamal_pubkey: Optional[bytes] = None


@dataclass(frozen=True)
class ProofBundle:
    """Opaque proof material. The client only places it, never inspects it."""

    new_decryptable_available_balance: bytes
    equality_proof: bytes
    range_proof: bytes
    validity_proof: Optional[bytes] = None
    auditor_ciphertext_lo: Optional[bytes] = None
    auditor_ciphertext_hi: Optional[bytes] = None


class ProofProvider(Protocol):
    def generate(self, state: ConfidentialAccountState, request: ProofRequest) -> ProofBundle:
        ...


def load_state(
    reader: AccountReader,
    mint: Pubkey,
    owner: Pubkey,
    *,
    keys: Optional[BalanceKeys] = None,
    token_program_id: Pubkey = TOKEN_2022_PROGRAM_ID,
) -> ConfidentialAccountState:
    """Snapshot of the owner's associated token account for `mint`."""
    ata = derive_associated_token_account(owner, mint, token_program_id)
    base = ConfidentialAccountState(mint=mint, owner=owner, token_account=ata)
    info = reader.get_account(ata)
    if info is None:
        return base

    acct = decode_token_account(info.data)
    ct = acct.confidential()
    if ct is None:
        return replace(base, exists=True, public_amount=acct.amount)

    pending_amount: Optional[int] = None
    available_amount: Optional[int] = None
    if keys is not None:
        lo = keys.decrypt_elgamal(ct.pending_balance_lo)
        hi = keys.decrypt_elgamal(ct.pending_balance_hi)
        pending_amount = lo + (hi << PENDING_LO_BITS)
        available_amount = keys.decrypt_decryptable(ct.decryptable_available_balance)

    return ConfidentialAccountState(
        mint=mint,
        owner=owner,
        token_account=ata,
        exists=True,
        configured=True,
        public_amount=acct.amount,
        approved=ct.approved,
        elgamal_pubkey=ct.elgamal_pubkey,
        pending_balance_lo=ct.pending_balance_lo,
        pending_balance_hi=ct.pending_balance_hi,
        available_balance=ct.available_balance,
        decryptable_available_balance=ct.decryptable_available_balance,
        pending_balance_credit_counter=ct.pending_balance_credit_counter,
        maximum_pending_balance_credit_counter=ct.maximum_pending_balance_credit_counter,
        expected_pending_balance_credit_counter=ct.expected_pending_balance_credit_counter,
        actual_pending_balance_credit_counter=ct.actual_pending_balance_credit_counter,
        pending_amount=pending_amount,
        available_amount=available_amount,
    )


def require_configured(state: ConfidentialAccountState) -> None:
    if not state.configured:
        raise PreconditionFailed(
            "token account is not configured for confidential transfers",
            {"token_account": str(state.token_account), "owner": str(state.owner)},
            code="confidential_not_configured",
        )


def _positive_amount(amount: int) -> int:
    n = check_u64(amount)
    if n == 0:
        raise ValidationError("amount must be greater than zero")
    return n


def plan_deposit(state: ConfidentialAccountState, amount: int, decimals: int) -> Instruction:
    n = _positive_amount(amount)
    require_configured(state)
    if n > state.public_amount:
        raise PreconditionFailed(
            "deposit exceeds public balance",
            {"amount": n, "public_amount": state.public_amount},
            code="insufficient_public_balance",
        )
    return t22.confidential_deposit(state.token_account, state.mint, state.owner, n, decimals)


def plan_apply_pending(state: ConfidentialAccountState, keys: BalanceKeys) -> Instruction:
    require_configured(state)
    if not state.has_pending:
        raise PreconditionFailed(
            "no pending confidential balance to apply",
            {"token_account": str(state.token_account)},
            code="nothing_pending",
        )
    if state.pending_amount is None or state.available_amount is None:
        raise ValidationError("applying pending balance needs balance keys")
    new_available = state.available_amount + state.pending_amount
    return t22.confidential_apply_pending_balance(
        state.token_account,
        state.owner,
        state.pending_balance_credit_counter,
        keys.encrypt_decryptable(new_available),
    )


def _check_available(state: ConfidentialAccountState, n: int) -> None:
    if state.available_amount is not None and n > state.available_amount:
        raise PreconditionFailed(
            "amount exceeds available confidential balance",
            {"amount": n, "available_amount": state.available_amount},
            code="insufficient_confidential_balance",
        )


def plan_withdraw(
    state: ConfidentialAccountState,
    amount: int,
    decimals: int,
    proofs: ProofProvider,
) -> List[Instruction]:
    n = _positive_amount(amount)
    require_configured(state)
    _check_available(state, n)
    bundle = proofs.generate(state, ProofRequest(kind="withdraw", amount=n))
    return t22.confidential_withdraw(
        state.token_account,
        state.mint,
        state.owner,
        n,
        decimals,
        new_decryptable_available_balance=bundle.new_decryptable_available_balance,
        equality_proof=bundle.equality_proof,
        range_proof=bundle.range_proof,
    )


def plan_transfer(
    state: ConfidentialAccountState,
    destination: ConfidentialAccountState,
    amount: int,
    proofs: ProofProvider,
) -> List[Instruction]:
    n = _positive_amount(amount)
    require_configured(state)
    require_configured(destination)
    _check_available(state, n)
    bundle = proofs.generate(
        state,
        ProofRequest(
            kind="transfer",
            amount=n,
            destination=destination.token_account,
            destination_elgamal_pubkey=destination.elgamal_pubkey,
        ),
    )
    if bundle.validity_proof is None or bundle.auditor_ciphertext_lo is None or bundle.auditor_ciphertext_hi is None:
        raise ValidationError("transfer proof bundle is incomplete")
    return t22.confidential_transfer(
        state.token_account,
        state.mint,
        destination.token_account,
        state.owner,
        new_source_decryptable_available_balance=bundle.new_decryptable_available_balance,
        auditor_ciphertext_lo=bundle.auditor_ciphertext_lo,
        auditor_ciphertext_hi=bundle.auditor_ciphertext_hi,
        equality_proof=bundle.equality_proof,
        validity_proof=bundle.validity_proof,
        range_proof=bundle.range_proof,
    )


def after_deposit(state: ConfidentialAccountState, amount: int) -> ConfidentialAccountState:
    """Expected snapshot once a deposit of `amount` lands."""
    n = _positive_amount(amount)
    require_configured(state)
    return replace(
        state,
        public_amount=state.public_amount - n,
        pending_amount=None if state.pending_amount is None else state.pending_amount + n,
        pending_balance_credit_counter=state.pending_balance_credit_counter + 1,
    )


def after_apply_pending(state: ConfidentialAccountState) -> ConfidentialAccountState:
    """Expected snapshot once pending has been applied."""
    require_configured(state)
    available = None
    if state.available_amount is not None and state.pending_amount is not None:
        available = state.available_amount + state.pending_amount
    return replace(
        state,
        pending_amount=0 if state.pending_amount is not None else None,
        available_amount=available,
        expected_pending_balance_credit_counter=state.pending_balance_credit_counter,
        actual_pending_balance_credit_counter=state.pending_balance_credit_counter,
        pending_balance_credit_counter=0,
    )


__all__ = [
    "ConfidentialStatus",
    "BalanceKeys",
    "ConfidentialAccountState",
    "ProofRequest",
    "ProofBundle",
    "ProofProvider",
    "load_state",
    "require_configured",
    "plan_deposit",
    "plan_apply_pending",
    "plan_withdraw",
    "plan_transfer",
    "after_deposit",
    "after_apply_pending",
]
