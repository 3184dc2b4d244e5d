from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import List, Tuple

from sss_control.crypto.pubkey import Pubkey


@dataclass(frozen=True)
class AccountMeta:
    pubkey: Pubkey
    is_signer: bool = False
    is_writable: bool = False


@dataclass(frozen=True)
class Instruction:
    program_id: Pubkey
    accounts: Tuple[AccountMeta, ...] = field(default_factory=tuple)
    data: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "accounts", tuple(self.accounts))
        object.__setattr__(self, "data", bytes(self.data))

    def account_keys(self) -> List[Pubkey]:
        return [m.pubkey for m in self.accounts]


def signer(pk: Pubkey, writable: bool = False) -> AccountMeta:
    return AccountMeta(pk, True, writable)


def writable(pk: Pubkey) -> AccountMeta:
    return AccountMeta(pk, False, True)


def readonly(pk: Pubkey) -> AccountMeta:
    return AccountMeta(pk, False, False)


def anchor_discriminator(namespace: str, name: str) -> bytes:
    """First 8 bytes of sha256("<namespace>:<name>")."""
    return hashlib.sha256(f"{namespace}:{name}".encode("utf-8")).digest()[:8]


def instruction_discriminator(snake_name: str) -> bytes:
    return anchor_discriminator("global", snake_name)


def account_discriminator(type_name: str) -> bytes:
    return anchor_discriminator("account", type_name)


__all__ = [
    "AccountMeta",
    "Instruction",
    "signer",
    "writable",
    "readonly",
    "anchor_discriminator",
    "instruction_discriminator",
    "account_discriminator",
]
