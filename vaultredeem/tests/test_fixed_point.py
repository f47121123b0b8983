from decimal import Decimal

import pytest

from vaultredeem.domain import DivisionByZero, InvalidAmount
from vaultredeem.numeric.fixed_point import (
    format_units,
    invert_price18,
    normalize_price18,
    parse_units,
    stable_to_usd_integer,
    token_to_usd18,
    token_to_usd_fixed,
    usd18_to_token,
    usd18_to_usd_integer,
    usd_fixed_to_token,
    usd_integer_to_stable,
)


def test_token_to_usd_fixed_floors() -> None:
    # 1.999999 tokens at $1 is still $1
    assert token_to_usd_fixed(1_999_999, 6, 10**18) == 1
    assert token_to_usd_fixed(2 * 10**18, 18, 3 * 10**18) == 6


def test_round_trip_never_overshoots() -> None:
    cases = [
        (10**18, 18, 10**18),
        (123_456_789, 6, 987_654_321_000_000_000),
        (5 * 10**17 + 3, 18, 2 * 10**16),
        (7, 0, 13 * 10**18),
    ]
    for amount, dec, price in cases:
        usd = token_to_usd_fixed(amount, dec, price)
        assert usd_fixed_to_token(usd, dec, price) <= amount


def test_usd_fixed_to_token_zero_price() -> None:
    with pytest.raises(DivisionByZero):
        usd_fixed_to_token(10, 18, 0)
    with pytest.raises(DivisionByZero):
        usd18_to_token(10, 18, 0)


def test_negative_price_is_division_by_zero() -> None:
    with pytest.raises(DivisionByZero):
        usd_fixed_to_token(10, 18, -1)
    with pytest.raises(DivisionByZero):
        usd18_to_token(10, 18, -(10**18))
    with pytest.raises(InvalidAmount):
        usd_fixed_to_token(10, 18, 1.5)


def test_rejects_floats_bools_negatives() -> None:
    with pytest.raises(InvalidAmount):
        token_to_usd_fixed(1.5, 18, 10**18)
    with pytest.raises(InvalidAmount):
        token_to_usd_fixed(True, 18, 10**18)
    with pytest.raises(InvalidAmount):
        token_to_usd_fixed(-1, 18, 10**18)
    with pytest.raises(InvalidAmount):
        token_to_usd_fixed(1, -1, 10**18)


def test_stable_and_usd18_helpers() -> None:
    assert usd_integer_to_stable(42, 6) == 42_000_000
    assert stable_to_usd_integer(42_999_999, 6) == 42
    assert usd18_to_usd_integer(42 * 10**18 + 10**18 - 1) == 42
    assert token_to_usd18(3 * 10**6, 6, 2 * 10**18) == 6 * 10**18


def test_oracle_normalisation() -> None:
    assert normalize_price18(2 * 10**8, 8) == 2 * 10**18
    assert invert_price18(50 * 10**18, 18) == 2 * 10**16
    with pytest.raises(DivisionByZero):
        invert_price18(0, 18)
    with pytest.raises(InvalidAmount):
        normalize_price18(-5, 8)


def test_parse_units_accepts_text_forms() -> None:
    assert parse_units("12.5", 6) == 12_500_000
    assert parse_units("12,5", 6) == 12_500_000
    assert parse_units(" 3 ", 18) == 3 * 10**18
    assert parse_units(Decimal("0.000001"), 6) == 1
    assert parse_units(7, 2) == 700
    assert parse_units("0", 18) == 0


@pytest.mark.parametrize("bad", ["", "abc", "-1", "NaN", "Infinity", "1.0000001", 1.5, True, None])
def test_parse_units_rejects(bad) -> None:
    with pytest.raises(InvalidAmount):
        parse_units(bad, 6)


def test_format_units() -> None:
    assert format_units(12_500_000, 6) == "12.5"
    assert format_units(10**18, 18) == "1.0"
    assert format_units(1, 18) == "0.000000000000000001"
    assert format_units(42, 0) == "42"
