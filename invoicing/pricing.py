# pricing.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from .records import Booking, DiscountTier


ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PricingSnapshot:
    """
    Derived on every render, never stored.

    `total` is the booking's authoritative total whenever that is present and
    positive; only otherwise is it `subtotal - discount_amount`. The discount
    line is still reported in the first case, so the two can disagree.
    """
    traveler_count: int
    unit_price: Decimal
    subtotal: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    total: Decimal
    total_is_authoritative: bool


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def resolve_discount(traveler_count: int, tiers: Optional[Iterable[DiscountTier]]) -> Decimal:
    """
    Percent of the first tier whose inclusive range contains `traveler_count`.
    0 when nothing matches or there are no tiers. Bad counts are not an error.
    """
    if not tiers:
        return ZERO
    for tier in tiers:
        if tier.min_travelers <= traveler_count <= tier.max_travelers:
            return _dec(tier.discount_percent)
    return ZERO


def build_snapshot(booking: Booking, tiers: Optional[Iterable[DiscountTier]] = None) -> PricingSnapshot:
    """Price a booking. Missing schedule/price/total degrade to zero, never raise."""
    schedule = booking.schedule
    unit_price = _dec(getattr(schedule, "unit_price", None)) if schedule else ZERO
    traveler_count = len(booking.travelers or ())

    subtotal = unit_price * traveler_count
    discount_percent = resolve_discount(
        traveler_count,
        booking.discount_tiers if tiers is None else tiers,
    )
    discount_amount = subtotal * discount_percent / HUNDRED

    authoritative = _dec(booking.authoritative_total)
    if authoritative > ZERO:
        total, is_auth = authoritative, True
    else:
        total, is_auth = subtotal - discount_amount, False

    return PricingSnapshot(
        traveler_count=traveler_count,
        unit_price=unit_price,
        subtotal=subtotal,
        discount_percent=discount_percent,
        discount_amount=discount_amount,
        total=total,
        total_is_authoritative=is_auth,
    )
