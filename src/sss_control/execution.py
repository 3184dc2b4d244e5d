"""Collaborator contracts: reading accounts and executing transactions.

The client never signs, sends or confirms on its own. It hands an ordered
instruction list plus signers to a TransactionExecutor and reads state through
an AccountReader. `sss_control.rpc` provides a JSON-RPC reader and
`sss_control.testing.ledger` an in-memory implementation of both.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from sss_control.crypto.pubkey import Pubkey
from sss_control.instructions.types import Instruction


@dataclass(frozen=True)
class AccountInfo:
    owner: Pubkey
    lamports: int
    data: bytes
    executable: bool = False


class AccountReader(Protocol):
    def get_account(self, address: Pubkey) -> Optional[AccountInfo]:
        ...

    def minimum_balance_for_rent_exemption(self, size: int) -> int:
        ...


class TransactionExecutor(Protocol):
    def execute(self, instructions: Sequence[Instruction], signers: Sequence[Any]) -> str:
        """Submit atomically and return a signature.

        Raises ExecutionFailure when a program rejects the transaction, and
        OSError / TimeoutError for transport problems.
        """
        ...


class ExecutionFailure(Exception):
    """A program rejected the transaction.

    `instruction_index` is the failing instruction (when known) and
    `custom_code` the program's custom error number (when it returned one).
    """

    def __init__(
        self,
        message: str,
        *,
        instruction_index: Optional[int] = None,
        custom_code: Optional[int] = None,
        logs: Optional[Sequence[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.instruction_index = instruction_index
        self.custom_code = custom_code
        self.logs = list(logs or [])


__all__ = ["AccountInfo", "AccountReader", "TransactionExecutor", "ExecutionFailure"]
