# src/sss_control/crypto/pubkey.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final

import base58

from sss_control.errors import ValidationError

PUBKEY_LEN: Final[int] = 32

# Edwards25519 field prime and curve constant d = -121665/121666.
_P: Final[int] = 2**255 - 19
_D: Final[int] = (-121665 * pow(121666, _P - 2, _P)) % _P


@dataclass(frozen=True, order=True)
class Pubkey:
    """A 32-byte account address, rendered as base58."""

    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)):
            raise ValidationError("pubkey must be bytes", {"type": type(self.raw).__name__})
        if len(self.raw) != PUBKEY_LEN:
            raise ValidationError("pubkey must be 32 bytes", {"len": len(self.raw)})
        object.__setattr__(self, "raw", bytes(self.raw))

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return base58.b58encode(self.raw).decode("ascii")

    def __repr__(self) -> str:
        return f"Pubkey({self})"

    @staticmethod
    def from_base58(s: str) -> "Pubkey":
        return parse_pubkey(s)

    @staticmethod
    def default() -> "Pubkey":
        return Pubkey(bytes(PUBKEY_LEN))

    def is_on_curve(self) -> bool:
        return is_on_curve(self.raw)


def parse_pubkey(v: Any, *, field: str = "address") -> Pubkey:
    """Single parse boundary for addresses coming from outside the client.

    Accepts a Pubkey, 32 raw bytes, or a base58 string.
    """
    if isinstance(v, Pubkey):
        return v
    if isinstance(v, (bytes, bytearray)):
        if len(v) != PUBKEY_LEN:
            raise ValidationError(f"invalid {field}: expected 32 bytes", {"len": len(v)})
        return Pubkey(bytes(v))
    if not isinstance(v, str) or not v.strip():
        raise ValidationError(f"invalid {field}: expected base58 string", {"value": repr(v)})
    s = v.strip()
    try:
        raw = base58.b58decode(s)
    except ValueError as e:
        raise ValidationError(f"invalid {field}: not base58", {"value": s}) from e
    if len(raw) != PUBKEY_LEN:
        raise ValidationError(f"invalid {field}: decodes to {len(raw)} bytes", {"value": s})
    return Pubkey(raw)


def is_on_curve(b: bytes) -> bool:
    """True if `b` decompresses to a point on Edwards25519.

    Same acceptance rule as curve25519-dalek's CompressedEdwardsY::decompress:
    y is taken mod p (high bit is the sign of x) and the point exists iff
    (y^2 - 1) / (d*y^2 + 1) is a square mod p.
    """
    if len(b) != PUBKEY_LEN:
        return False
    y = int.from_bytes(b, "little") & ((1 << 255) - 1)
    y %= _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    if x2 == 0:
        return True
    return pow(x2, (_P - 1) // 2, _P) == 1


__all__ = ["PUBKEY_LEN", "Pubkey", "parse_pubkey", "is_on_curve"]
