import base64
import typing as t
from decimal import ROUND_HALF_UP, Decimal
from io import BytesIO

import qrcode
from django.conf import settings

MoneyAmount = t.Union[Decimal, int, float, str]


def is_zero_decimal_currency(currency: str) -> bool:
    """Currencies that Stripe expects in whole units."""
    return currency.upper() in settings.STRIPE_ZERO_DECIMAL_CURRENCIES


def to_minor_units(amount: MoneyAmount, currency: str) -> int:
    """Convert a decimal amount to Stripe's integer amount convention.

    Zero-decimal currencies are rounded to whole units, everything else is expressed in cents.
    Halves round away from zero.
    """
    value = Decimal(str(amount))
    if not is_zero_decimal_currency(currency):
        value *= 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_money(amount: MoneyAmount, currency: str) -> str:
    """Human readable amount for emails, e.g. ``1,000.00 CAD`` or ``5,000 JPY``."""
    value = Decimal(str(amount))
    if is_zero_decimal_currency(currency):
        return f"{value.quantize(Decimal('1'), rounding=ROUND_HALF_UP):,} {currency.upper()}"
    return f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):,} {currency.upper()}"


def generate_qr_png(data: str) -> str:
    """Render ``data`` as a QR code and return the PNG base64 encoded."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffered = BytesIO()
    img.save(buffered, "PNG")
    return base64.b64encode(buffered.getvalue()).decode("utf-8")
