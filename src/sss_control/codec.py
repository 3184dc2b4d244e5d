# src/sss_control/codec.py
from __future__ import annotations

import struct
from typing import Any, Optional

from sss_control.crypto.pubkey import PUBKEY_LEN, Pubkey
from sss_control.errors import CorruptState, ValidationError

U8_MAX = 0xFF
U32_MAX = 0xFFFF_FFFF
U64_MAX = 0xFFFF_FFFF_FFFF_FFFF
I64_MIN = -(1 << 63)
I64_MAX = (1 << 63) - 1


def _coerce_int(v: Any, field: str) -> int:
    if isinstance(v, bool):
        raise ValidationError(f"invalid int field '{field}': bool not allowed")
    if isinstance(v, int):
        return v
    raise ValidationError(f"invalid int field '{field}': expected int, got {type(v).__name__}")


def check_u64(v: Any, field: str = "amount") -> int:
    n = _coerce_int(v, field)
    if n < 0 or n > U64_MAX:
        raise ValidationError(f"{field} out of u64 range", {field: n})
    return n


def check_u8(v: Any, field: str) -> int:
    n = _coerce_int(v, field)
    if n < 0 or n > U8_MAX:
        raise ValidationError(f"{field} out of u8 range", {field: n})
    return n


class Writer:
    """Little-endian writer with borsh conventions for Option and String."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def bytes(self) -> bytes:
        return bytes(self._buf)

    def raw(self, b: bytes) -> "Writer":
        self._buf += b
        return self

    def u8(self, v: int, field: str = "u8") -> "Writer":
        self._buf += struct.pack("<B", check_u8(v, field))
        return self

    def i8(self, v: int) -> "Writer":
        self._buf += struct.pack("<b", v)
        return self

    def bool(self, v: bool) -> "Writer":
        self._buf.append(1 if v else 0)
        return self

    def u32(self, v: int, field: str = "u32") -> "Writer":
        n = _coerce_int(v, field)
        if n < 0 or n > U32_MAX:
            raise ValidationError(f"{field} out of u32 range", {field: n})
        self._buf += struct.pack("<I", n)
        return self

    def u64(self, v: int, field: str = "amount") -> "Writer":
        self._buf += struct.pack("<Q", check_u64(v, field))
        return self

    def i64(self, v: int, field: str = "i64") -> "Writer":
        n = _coerce_int(v, field)
        if n < I64_MIN or n > I64_MAX:
            raise ValidationError(f"{field} out of i64 range", {field: n})
        self._buf += struct.pack("<q", n)
        return self

    def pubkey(self, pk: Pubkey) -> "Writer":
        self._buf += pk.raw
        return self

    def string(self, s: str) -> "Writer":
        b = s.encode("utf-8")
        self.u32(len(b), "string length")
        self._buf += b
        return self

    def option_u64(self, v: Optional[int], field: str = "amount") -> "Writer":
        if v is None:
            self._buf.append(0)
            return self
        self._buf.append(1)
        return self.u64(v, field)

    def option_bool(self, v: Optional[bool]) -> "Writer":
        if v is None:
            self._buf.append(0)
            return self
        self._buf.append(1)
        return self.bool(v)


class Reader:
    """Bounds-checked reader over account data.

    Account data comes from the ledger, so running off the end or reading a
    malformed tag means the account is not what we think it is: CorruptState.
    """

    def __init__(self, data: bytes, offset: int = 0, *, what: str = "account") -> None:
        self._data = bytes(data)
        self._off = offset
        self._what = what

    @property
    def offset(self) -> int:
        return self._off

    def remaining(self) -> int:
        return len(self._data) - self._off

    def take(self, n: int) -> bytes:
        if n < 0 or self._off + n > len(self._data):
            raise CorruptState(
                f"{self._what} data truncated",
                {"offset": self._off, "want": n, "len": len(self._data)},
            )
        out = self._data[self._off:self._off + n]
        self._off += n
        return out

    def u8(self) -> int:
        return self.take(1)[0]

    def bool(self) -> bool:
        v = self.u8()
        if v > 1:
            raise CorruptState(f"{self._what} has invalid bool byte", {"offset": self._off - 1, "value": v})
        return v == 1

    def u32(self) -> int:
        return struct.unpack("<I", self.take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.take(8))[0]

    def i64(self) -> int:
        return struct.unpack("<q", self.take(8))[0]

    def pubkey(self) -> Pubkey:
        return Pubkey(self.take(PUBKEY_LEN))

    def string(self) -> str:
        n = self.u32()
        raw = self.take(n)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptState(f"{self._what} has invalid utf-8 string", {"offset": self._off - n}) from e

    def option_u64(self) -> Optional[int]:
        tag = self.u8()
        if tag == 0:
            return None
        if tag != 1:
            raise CorruptState(f"{self._what} has invalid option tag", {"offset": self._off - 1, "tag": tag})
        return self.u64()

    def option_bool(self) -> Optional[bool]:
        tag = self.u8()
        if tag == 0:
            return None
        if tag != 1:
            raise CorruptState(f"{self._what} has invalid option tag", {"offset": self._off - 1, "tag": tag})
        return self.bool()

    def i8(self) -> int:
        return struct.unpack("<b", self.take(1))[0]


__all__ = [
    "U8_MAX",
    "U32_MAX",
    "U64_MAX",
    "check_u64",
    "check_u8",
    "Writer",
    "Reader",
]
