"""Unit conversions and display formatting for fees and prices.

Fees travel as integer wei; conversions to gwei and native units are exact
Decimal divisions.
"""

from decimal import ROUND_HALF_UP, Decimal

WEI_PER_GWEI = 10**9
WEI_PER_NATIVE = 10**18


def wei_to_gwei(wei: int) -> Decimal:
    """Convert integer wei to gwei."""
    return Decimal(wei) / Decimal(WEI_PER_GWEI)


def wei_to_native(wei: int) -> Decimal:
    """Convert integer wei to whole native-currency units (e.g. ETH)."""
    return Decimal(wei) / Decimal(WEI_PER_NATIVE)



def format_gwei(wei: int) -> str:
    """Render a wei fee as gwei with two decimals, e.g. ``"12.50"``."""
    return str(wei_to_gwei(wei).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_native(amount: Decimal) -> str:
    """Render a native-currency amount with six decimals."""
    return str(amount.quantize(Decimal("0.000001"), rounding=ROUND_HALF_UP))


def format_usd(amount: Decimal) -> str:
    """Render a fiat amount as US dollars, e.g. ``"$1,234.57"``."""
    quantized = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    return f"{sign}${abs(quantized):,.2f}"
