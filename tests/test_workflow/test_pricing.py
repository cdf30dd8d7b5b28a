"""Tests for order pricing."""

from decimal import ROUND_HALF_UP, Decimal

import pytest

from fulfillment.workflow.pricing import PricingEngine


@pytest.fixture
def engine() -> PricingEngine:
    return PricingEngine()


def test_no_discount_below_threshold(engine: PricingEngine) -> None:
    """14 persons on a 10-person menu is one short of the bulk tier."""
    result = engine.price(45, 14, 10, 0, is_local=True)

    assert result.subtotal == Decimal("630")
    assert result.discount == Decimal("0")
    assert result.total == Decimal("635.00")


def test_discount_at_threshold(engine: PricingEngine) -> None:
    result = engine.price(45, 15, 10, 0, is_local=True)

    assert result.subtotal == Decimal("675")
    assert result.discount == Decimal("67.50")
    assert result.delivery_fee == Decimal("5.00")
    assert result.total == Decimal("612.50")


def test_local_delivery_ignores_distance(engine: PricingEngine) -> None:
    result = engine.price(45, 10, 10, 25, is_local=True)

    assert result.delivery_fee == Decimal("5.00")
    assert result.distance_km == Decimal("0")


def test_remote_delivery_charges_per_km(engine: PricingEngine) -> None:
    result = engine.price(45, 10, 10, 12, is_local=False)

    # 5.00 + 0.59 * 12
    assert result.delivery_fee == Decimal("12.08")
    assert result.total == Decimal("462.08")
    assert result.is_local is False


def test_total_rounded_half_up_at_the_end(engine: PricingEngine) -> None:
    """Unrounded parts sum to x.xx5 and the total rounds up."""
    result = engine.price(Decimal("12.35"), 15, 10, 0, is_local=True)

    # 185.25 - 18.525 + 5.00 = 171.725
    assert result.discount == Decimal("18.525")
    assert result.total == Decimal("171.73")


@pytest.mark.parametrize(
    "price,headcount,minimum,distance,local",
    [
        (45, 25, 10, 0, True),
        (Decimal("38.90"), 11, 8, Decimal("17.3"), False),
        (Decimal("52.15"), 17, 12, Decimal("41.07"), False),
        (25, 15, 15, 3, False),
    ],
)
def test_total_matches_components(engine, price, headcount, minimum, distance, local) -> None:
    result = engine.price(price, headcount, minimum, distance, is_local=local)

    expected = (result.subtotal - result.discount + result.delivery_fee).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    assert result.total == expected
    assert result.total == result.total.quantize(Decimal("0.01"))


def test_custom_rates() -> None:
    engine = PricingEngine(
        flat_local_fee=Decimal("0"),
        per_km_rate=Decimal("1"),
        bulk_discount_rate=Decimal("0.2"),
        bulk_discount_margin=0,
    )

    result = engine.price(10, 10, 10, 3, is_local=False)

    assert result.discount == Decimal("20.0")
    assert result.delivery_fee == Decimal("3")
    assert result.total == Decimal("83.00")


def test_from_settings(settings) -> None:
    engine = PricingEngine.from_settings(settings)

    assert engine.flat_local_fee == Decimal("5.00")
    assert engine.per_km_rate == Decimal("0.59")
    assert engine.qualifies_for_discount(15, 10)
    assert not engine.qualifies_for_discount(14, 10)


def test_negative_distance_rejected(engine: PricingEngine) -> None:
    with pytest.raises(ValueError):
        engine.price(45, 10, 10, -1, is_local=False)
