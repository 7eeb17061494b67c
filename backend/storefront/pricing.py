import math
from typing import NamedTuple, Optional


class Pricing(NamedTuple):
    final_price: float
    discount_percent: Optional[int]


def discount_percent(price: float, discount_price: float) -> Optional[int]:
    """
    Percentage off the base price, rounded half-up to a whole number.
    169.9 -> 119.9 gives 29.
    """
    if not price or price <= 0:
        return None
    return int(math.floor((1 - discount_price / price) * 100 + 0.5))


def resolve(price: float, discount_price: Optional[float]) -> Pricing:
    if discount_price is None:
        return Pricing(final_price=price, discount_percent=None)
    return Pricing(
        final_price=discount_price,
        discount_percent=discount_percent(price, discount_price),
    )
