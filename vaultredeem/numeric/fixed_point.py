"""
Integer fixed-point conversions mirroring the vault contract.

Every function works on Python ints and floors exactly like Solidity's
unsigned division, so a client-side preview equals what the contract computes.
Units are explicit in the names: ``usd`` is whole dollars, ``usd18`` is
dollars scaled by 1e18, ``price18`` is a 1e18-scaled USD price per token.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from vaultredeem.domain.errors import DivisionByZero, InvalidAmount

USD18 = 10**18


def _whole(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidAmount(f"{name} must be non-negative, got {value}")
    return value


def _divisor_price(price18) -> int:
    if isinstance(price18, bool) or not isinstance(price18, int):
        raise InvalidAmount(f"price18 must be an integer, got {type(price18).__name__}")
    if price18 <= 0:
        raise DivisionByZero(f"price18 must be > 0, got {price18}")
    return price18


def pow10(n: int) -> int:
    return 10 ** _whole("exponent", n)


def token_to_usd_fixed(amount: int, decimals: int, price18: int) -> int:
    """Raw token amount -> whole USD, floored."""
    amount = _whole("amount", amount)
    price18 = _whole("price18", price18)
    return amount * price18 // pow10(_whole("decimals", decimals) + 18)


def usd_fixed_to_token(usd: int, decimals: int, price18: int) -> int:
    """Whole USD -> raw token amount, floored.

    Takes the integer-USD output of ``token_to_usd_fixed``; the round trip
    never exceeds the original amount.
    """
    usd = _whole("usd", usd)
    price18 = _divisor_price(price18)
    return usd * pow10(_whole("decimals", decimals) + 18) // price18


def usd18_to_token(usd18: int, decimals: int, price18: int) -> int:
    usd18 = _whole("usd18", usd18)
    price18 = _divisor_price(price18)
    return usd18 * pow10(_whole("decimals", decimals)) // price18


def token_to_usd18(amount: int, decimals: int, price18: int) -> int:
    """Raw token amount -> 1e18-scaled USD (the daily-limit quote)."""
    amount = _whole("amount", amount)
    price18 = _whole("price18", price18)
    return amount * price18 // pow10(_whole("decimals", decimals))


def usd_integer_to_stable(usd: int, stable_decimals: int) -> int:
    """Whole USD -> face-value stable units (1 unit of stable == $1)."""
    return _whole("usd", usd) * pow10(stable_decimals)


def stable_to_usd_integer(amount: int, stable_decimals: int) -> int:
    return _whole("amount", amount) // pow10(stable_decimals)


def usd18_to_usd_integer(usd18: int) -> int:
    return _whole("usd18", usd18) // USD18


def usd_integer_to_usd18(usd: int) -> int:
    return _whole("usd", usd) * USD18


def normalize_price18(raw_price: int, decimals: int) -> int:
    """Rescale an oracle answer with ``decimals`` places to 1e18."""
    if isinstance(raw_price, bool) or not isinstance(raw_price, int):
        raise InvalidAmount("oracle price must be an integer")
    if raw_price <= 0:
        raise InvalidAmount(f"oracle price must be > 0, got {raw_price}")
    return raw_price * USD18 // pow10(decimals)


def invert_price18(raw_price: int, decimals: int) -> int:
    """Turn a token-per-USD quote into USD-per-token at 1e18."""
    if isinstance(raw_price, bool) or not isinstance(raw_price, int):
        raise InvalidAmount("oracle price must be an integer")
    if raw_price <= 0:
        raise DivisionByZero("cannot invert a non-positive price")
    return USD18 * pow10(decimals) // raw_price


def parse_units(value, decimals: int) -> int:
    """Human amount ("12.5", "12,5", Decimal, int) -> raw integer units."""
    decimals = _whole("decimals", decimals)
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmount("amount must be given as text, int or Decimal")
    if isinstance(value, int):
        return _whole("amount", value) * pow10(decimals)
    text = str(value if value is not None else "").strip().replace(",", ".")
    if not text:
        raise InvalidAmount("amount is empty")
    try:
        dec = Decimal(text)
    except InvalidOperation:
        raise InvalidAmount(f"amount is not numeric: {value!r}")
    if not dec.is_finite():
        raise InvalidAmount(f"amount is not finite: {value!r}")
    if dec < 0:
        raise InvalidAmount(f"amount must be non-negative: {value!r}")
    scaled = dec.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmount(f"amount has more than {decimals} decimal places: {value!r}")
    return int(scaled)


def format_units(raw: int, decimals: int) -> str:
    raw = _whole("raw", raw)
    decimals = _whole("decimals", decimals)
    if decimals == 0:
        return str(raw)
    whole, frac = divmod(raw, pow10(decimals))
    frac_txt = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{frac_txt}" if frac_txt else f"{whole}.0"

