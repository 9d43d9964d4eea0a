"""
Helper functions shared by the cost breakdown and the price tracker.
"""

from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def round_cents(value: float) -> float:
    """
    Round a money or percentage figure to 2 decimals, ties away from zero.

    Works on the exact binary value of the float, so 10.125 becomes 10.13
    while 1.005 (stored as 1.00499...) becomes 1.0.
    """
    return float(Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))
