# src/sss_control/oracle.py
"""Oracle-adjusted supply cap.

A mint instruction may carry a Pyth v2 price account as its trailing
read-only account. The program then reads the supply cap as a USD amount and
converts it to token units at the feed price before the cap check. Without a
feed the raw cap applies.

Pyth v2 price layout (only the fields used here):
  offset 20   exponent, i32 LE
  offset 208  aggregate price, i64 LE
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Final, Optional, Tuple

from sss_control.codec import U64_MAX
from sss_control.crypto.pubkey import Pubkey
from sss_control.errors import PreconditionFailed, ValidationError
from sss_control.execution import AccountReader

PYTH_V2_MAINNET: Final[Pubkey] = Pubkey.from_base58("FsJ3A3u2vn5cTVofAjvy6y5kwABJAqYWpe4975bi2epH")
PYTH_V2_DEVNET: Final[Pubkey] = Pubkey.from_base58("gSbePebfvPy7tRqimPoVecS2UsBvYv46ynrzWocc92s")
PYTH_PROGRAM_IDS: Final[Tuple[Pubkey, ...]] = (PYTH_V2_MAINNET, PYTH_V2_DEVNET)

EXPONENT_OFFSET: Final[int] = 20
PRICE_OFFSET: Final[int] = 208
MIN_PRICE_ACCOUNT_LEN: Final[int] = PRICE_OFFSET + 8


@dataclass(frozen=True)
class OraclePrice:
    price: int
    exponent: int


def read_price_fields(data: bytes) -> Tuple[int, int]:
    """(exponent, price) as stored; no sign check."""
    if len(data) < MIN_PRICE_ACCOUNT_LEN:
        raise ValidationError(
            "price account too short",
            {"len": len(data), "min": MIN_PRICE_ACCOUNT_LEN},
            code="invalid_oracle_data",
        )
    (exponent,) = struct.unpack_from("<i", data, EXPONENT_OFFSET)
    (price,) = struct.unpack_from("<q", data, PRICE_OFFSET)
    return exponent, price


def parse_pyth_price(data: bytes) -> OraclePrice:
    exponent, price = read_price_fields(data)
    if price <= 0:
        raise ValidationError("oracle price must be positive", {"price": price}, code="invalid_oracle_price")
    return OraclePrice(price=price, exponent=exponent)


def encode_pyth_price(price: int, exponent: int, size: int = 224) -> bytes:
    """Minimal price account image; everything but the two fields is zero."""
    buf = bytearray(max(size, MIN_PRICE_ACCOUNT_LEN))
    struct.pack_into("<i", buf, EXPONENT_OFFSET, exponent)
    struct.pack_into("<q", buf, PRICE_OFFSET, price)
    return bytes(buf)


def usd_to_token_amount(usd_amount: int, price: OraclePrice, decimals: int) -> int:
    """Floor of usd_amount * 10^decimals / (price * 10^exponent), saturating at u64."""
    scale = 10**decimals
    if price.exponent < 0:
        out = usd_amount * scale * 10 ** (-price.exponent) // price.price
    else:
        out = usd_amount * scale // (price.price * 10**price.exponent)
    return min(out, U64_MAX)


def effective_supply_cap(supply_cap: Optional[int], price: Optional[OraclePrice], decimals: int) -> Optional[int]:
    if supply_cap is None or price is None:
        return supply_cap
    return usd_to_token_amount(supply_cap, price, decimals)


def fetch_price(reader: AccountReader, feed: Pubkey) -> OraclePrice:
    info = reader.get_account(feed)
    if info is None:
        raise PreconditionFailed("price feed account not found", {"feed": str(feed)}, code="price_feed_not_found")
    if info.owner not in PYTH_PROGRAM_IDS:
        raise ValidationError(
            "price feed is not owned by a Pyth program",
            {"feed": str(feed), "owner": str(info.owner)},
            code="invalid_oracle_data",
        )
    return parse_pyth_price(info.data)


__all__ = [
    "PYTH_V2_MAINNET",
    "PYTH_V2_DEVNET",
    "PYTH_PROGRAM_IDS",
    "OraclePrice",
    "read_price_fields",
    "parse_pyth_price",
    "encode_pyth_price",
    "usd_to_token_amount",
    "effective_supply_cap",
    "fetch_price",
]
