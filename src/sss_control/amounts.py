from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sss_control.codec import U64_MAX
from sss_control.errors import ValidationError


def parse_amount(text: str, decimals: int = 6) -> int:
    """Human amount ("12.5") -> raw base units, exactly.

    Rejects negatives, non-numbers, more fractional digits than `decimals`,
    and anything above u64.
    """
    if not isinstance(text, str):
        raise ValidationError("amount must be a string", {"type": type(text).__name__})
    if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= 255:
        raise ValidationError("invalid decimals", {"decimals": decimals})
    s = text.strip().replace("_", "")
    if not s:
        raise ValidationError("empty amount")
    try:
        d = Decimal(s)
    except InvalidOperation as e:
        raise ValidationError(f'invalid amount: "{text}"') from e
    if not d.is_finite():
        raise ValidationError(f'invalid amount: "{text}"')
    if d < 0:
        raise ValidationError(f'amount must not be negative: "{text}"')

    # Work on the exact digits; Decimal arithmetic would round to the context precision.
    _sign, digits, exp = d.as_tuple()
    if not any(digits):
        return 0
    kept = list(digits)
    while exp < 0 and kept[-1] == 0:
        kept.pop()
        exp += 1
    if exp < -decimals:
        raise ValidationError(f'amount has more than {decimals} decimal places: "{text}"')
    coeff = int("".join(str(x) for x in kept))
    shift = exp + decimals
    if len(str(coeff)) + shift > len(str(U64_MAX)):
        raise ValidationError(f'amount exceeds u64: "{text}"')
    n = coeff * 10**shift
    if n > U64_MAX:
        raise ValidationError(f'amount exceeds u64: "{text}"')
    return n


def format_amount(raw: int, decimals: int = 6) -> str:
    """Raw base units -> human string without trailing zeros."""
    if raw < 0:
        raise ValidationError("raw amount must not be negative", {"raw": raw})
    if decimals == 0:
        return str(raw)
    whole, frac = divmod(raw, 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{frac_str}" if frac_str else str(whole)


__all__ = ["parse_amount", "format_amount"]
