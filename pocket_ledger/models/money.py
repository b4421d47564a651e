from decimal import Decimal
from typing import Optional

# Largest magnitude a DECIMAL(15, 2) column holds
MAX_MONEY = Decimal("1e13")
# DECIMAL(15, 6) share counts and DECIMAL(15, 4) prices
MAX_SHARES = Decimal("1e9")
MAX_PRICE = Decimal("1e11")


def round_money(v: Optional[Decimal]) -> Optional[Decimal]:
    """Round to cents, rejecting values the ledger columns cannot store"""
    if v is None:
        return v
    if not v.is_finite() or abs(v) >= MAX_MONEY:
        raise ValueError("Amount is out of range")
    return round(v, 2)
