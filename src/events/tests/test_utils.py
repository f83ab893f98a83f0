import base64
from decimal import Decimal

import pytest

from events.utils import format_money, generate_qr_png, is_zero_decimal_currency, to_minor_units


@pytest.mark.parametrize(
    "amount,currency,expected",
    [
        (Decimal("1000"), "CAD", 100000),
        (Decimal("19.99"), "usd", 1999),
        (Decimal("0.005"), "EUR", 1),
        ("12.344", "EUR", 1234),
        (Decimal("5000"), "JPY", 5000),
        (Decimal("99.5"), "KRW", 100),
        (0, "CAD", 0),
    ],
)
def test_to_minor_units(amount: Decimal, currency: str, expected: int) -> None:
    assert to_minor_units(amount, currency) == expected


def test_zero_decimal_currencies() -> None:
    assert is_zero_decimal_currency("jpy")
    assert is_zero_decimal_currency("VND")
    assert not is_zero_decimal_currency("CAD")


def test_format_money() -> None:
    assert format_money(Decimal("1000"), "cad") == "1,000.00 CAD"
    assert format_money(Decimal("5000"), "JPY") == "5,000 JPY"


def test_generate_qr_png() -> None:
    assert base64.b64decode(generate_qr_png("secret")).startswith(b"\x89PNG")
