# backend/tracker/utils/fx_conversion.py
"""
USD/THB conversion utilities.

The tracker supports exactly two currencies and uses ONE rate convention
everywhere:

    fx_rate = THB per 1 USD      (e.g. 35.0 means 1 USD = 35 THB)

    USD → THB: MULTIPLY by fx_rate
    THB → USD: DIVIDE by fx_rate

These helpers keep that convention in one place so no caller has to
remember which way to apply the rate.
"""

from decimal import Decimal, InvalidOperation

from tracker.services.exceptions import FXConversionError

USD = "USD"
THB = "THB"
SUPPORTED_CURRENCIES: frozenset[str] = frozenset({USD, THB})


def to_decimal(value: object) -> Decimal:
    """
    Coerce a numeric-ish value to Decimal.

    None, empty strings and non-numeric values become 0. Floats go through
    str() so 0.1 becomes Decimal("0.1") rather than its binary expansion.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")
    if isinstance(value, bool):
        return Decimal(int(value))
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return result if result.is_finite() else Decimal("0")


def normalize_currency(code: str | None) -> str:
    """Map a stored currency code onto USD/THB (anything but THB is USD)."""
    return THB if (code or "").strip().upper() == THB else USD


def safe_fx_rate(fx_rate: object, default: Decimal) -> Decimal:
    """
    Return fx_rate when it is a usable positive number, otherwise default.

    Guards every division by the rate against zero, negative, missing and
    non-numeric values.
    """
    rate = to_decimal(fx_rate)
    return rate if rate > 0 else default


def convert_amount(
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        fx_rate: Decimal,
) -> Decimal:
    """
    Convert an amount between USD and THB.

    Args:
        amount: Amount in from_currency
        from_currency: "USD" or "THB"
        to_currency: "USD" or "THB"
        fx_rate: THB per 1 USD (must be positive)

    Returns:
        Amount in to_currency

    Raises:
        FXConversionError: If a currency is unsupported or the rate is not positive
    """
    source = (from_currency or USD).upper()
    target = (to_currency or USD).upper()

    for code in (source, target):
        if code not in SUPPORTED_CURRENCIES:
            raise FXConversionError(
                f"Unsupported currency '{code}' (supported: USD, THB)",
                base_currency=source,
                quote_currency=target,
            )

    if source == target:
        return amount

    if fx_rate <= 0:
        raise FXConversionError(
            f"FX rate must be positive, got {fx_rate}",
            base_currency=source,
            quote_currency=target,
        )

    if source == USD:
        return amount * fx_rate
    return amount / fx_rate
