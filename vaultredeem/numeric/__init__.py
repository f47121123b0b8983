from .fixed_point import (
    USD18,
    format_units,
    invert_price18,
    normalize_price18,
    parse_units,
    pow10,
    stable_to_usd_integer,
    token_to_usd18,
    token_to_usd_fixed,
    usd18_to_token,
    usd18_to_usd_integer,
    usd_fixed_to_token,
    usd_integer_to_stable,
    usd_integer_to_usd18,
)

__all__ = [
    "USD18",
    "format_units",
    "invert_price18",
    "normalize_price18",
    "parse_units",
    "pow10",
    "stable_to_usd_integer",
    "token_to_usd18",
    "token_to_usd_fixed",
    "usd18_to_token",
    "usd18_to_usd_integer",
    "usd_fixed_to_token",
    "usd_integer_to_stable",
    "usd_integer_to_usd18",
]
