from decimal import Decimal

from invoicing.pricing import build_snapshot, resolve_discount
from invoicing.records import Booking, DiscountTier

from .conftest import TIERS


def test_resolve_discount_uses_inclusive_bounds():
    assert resolve_discount(4, TIERS) == Decimal("10")
    assert resolve_discount(6, TIERS) == Decimal("10")
    assert resolve_discount(7, TIERS) == Decimal("15")
    assert resolve_discount(10, TIERS) == Decimal("15")


def test_resolve_discount_is_zero_when_nothing_matches():
    assert resolve_discount(3, TIERS) == 0
    assert resolve_discount(12, TIERS) == 0
    assert resolve_discount(0, TIERS) == 0
    assert resolve_discount(5, ()) == 0
    assert resolve_discount(5, None) == 0


def test_overlapping_tiers_first_one_wins():
    tiers = (
        DiscountTier(1, 10, Decimal("5")),
        DiscountTier(4, 6, Decimal("20")),
    )
    assert resolve_discount(5, tiers) == Decimal("5")
    assert resolve_discount(5, tuple(reversed(tiers))) == Decimal("20")


def test_snapshot_computes_total_from_discount(make_booking):
    snap = build_snapshot(make_booking(travelers=6, price="500"))

    assert snap.traveler_count == 6
    assert snap.unit_price == Decimal("500")
    assert snap.subtotal == Decimal("3000")
    assert snap.discount_percent == Decimal("10")
    assert snap.discount_amount == Decimal("300")
    assert snap.total == Decimal("2700")
    assert snap.total_is_authoritative is False


def test_authoritative_total_wins_but_discount_is_still_reported(make_booking):
    snap = build_snapshot(make_booking(total="2750"))

    assert snap.total == Decimal("2750")
    assert snap.total_is_authoritative is True
    assert snap.discount_percent == Decimal("10")
    assert snap.discount_amount == Decimal("300")


def test_zero_or_missing_authoritative_total_falls_back(make_booking):
    assert build_snapshot(make_booking(total="0")).total == Decimal("2700")
    assert build_snapshot(make_booking(total=None)).total == Decimal("2700")


def test_large_group_outside_every_tier_pays_subtotal(make_booking):
    snap = build_snapshot(make_booking(travelers=12))

    assert snap.discount_percent == 0
    assert snap.discount_amount == 0
    assert snap.total == snap.subtotal == Decimal("6000")


def test_intermediate_values_keep_full_precision(make_booking):
    snap = build_snapshot(make_booking(travelers=3, price="33.335", tiers=(DiscountTier(1, 5, Decimal("10")),)))

    assert snap.subtotal == Decimal("100.005")
    assert snap.discount_amount == Decimal("10.0005")
    assert snap.total == Decimal("90.0045")


def test_explicit_tiers_override_the_booking_ones(make_booking):
    snap = build_snapshot(make_booking(), tiers=[DiscountTier(1, 100, Decimal("25"))])
    assert snap.discount_amount == Decimal("750")
    assert snap.total == Decimal("2250")


def test_missing_schedule_and_travelers_degrade_to_zero():
    snap = build_snapshot(Booking(id="bare"))

    assert snap.traveler_count == 0
    assert snap.unit_price == 0
    assert snap.subtotal == 0
    assert snap.total == 0
