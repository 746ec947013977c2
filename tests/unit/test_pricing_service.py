import pytest
from decimal import Decimal

from flower_checkout.errors import PricingError
from flower_checkout.florists.models import MatchResult
from flower_checkout.pricing.fees import LinearDeliveryFee
from flower_checkout.pricing.models import CartLine, CartSnapshot
from flower_checkout.pricing.service import price
from flower_checkout.promos.models import PromoCode

LINEAR = LinearDeliveryFee("120", "5", "15")

def test_pickup_without_promo(cart_roses_tulip, matched_florist):
    order = price(cart_roses_tulip, matched_florist, delivery_type="pickup", fee_policy=LINEAR)
    assert order.items_subtotal == Decimal("390")
    assert order.delivery_fee == 0
    assert order.discount == 0
    assert order.total == Decimal("390")

def test_pickup_with_percent_promo(cart_roses_tulip, matched_florist, welcome10):
    order = price(
        cart_roses_tulip, matched_florist, promo_code="welcome10",
        delivery_type="pickup", fee_policy=LINEAR, promo_lookup=welcome10,
    )
    assert order.discount == Decimal("39")
    assert order.total == Decimal("351")
    assert order.promo_code_applied == "WELCOME10"
    assert order.promo_error is None

def test_delivery_with_promo_and_distance(cart_roses_tulip, matched_florist, welcome10):
    order = price(
        cart_roses_tulip, matched_florist, promo_code="WELCOME10",
        delivery_type="delivery", fee_policy=LINEAR, promo_lookup=welcome10,
    )
    assert order.distance_km == 5.2
    assert order.delivery_fee == Decimal("123")
    assert order.total == Decimal("474")

def test_invalid_promo_is_not_fatal(cart_roses_tulip, matched_florist, welcome10):
    order = price(
        cart_roses_tulip, matched_florist, promo_code="BOGUS",
        delivery_type="pickup", fee_policy=LINEAR, promo_lookup=welcome10,
    )
    assert order.discount == 0
    assert order.total == Decimal("390")
    assert order.promo_error.code == "not_found"

def test_discount_clamped_never_negative_total(cart_roses_tulip, matched_florist):
    huge = PromoCode(code="HUGE", kind="fixed", value=Decimal("1000"))
    order = price(
        cart_roses_tulip, matched_florist, promo_code="HUGE",
        delivery_type="pickup", promo_lookup=lambda c: huge,
    )
    assert order.discount == Decimal("390")
    assert order.total == 0
    assert "discount_clamped" in order.warnings

def test_gifts_count_in_subtotal(matched_florist):
    cart = CartSnapshot.from_lines(
        items=[CartLine(product_id="p1", name="Bukett", unit_price=Decimal("299.90"), qty=1)],
        gifts=[CartLine(product_id="g1", name="Choklad", unit_price=Decimal("49.50"), qty=2)],
    )
    order = price(cart, matched_florist, delivery_type="pickup")
    assert order.gifts_subtotal == Decimal("99.00")
    assert order.total == Decimal("398.90")

def test_platform_fee_and_payout(cart_roses_tulip, matched_florist):
    order = price(cart_roses_tulip, matched_florist, delivery_type="pickup")
    assert order.platform_fee == Decimal("58.50")
    assert order.florist_payout == Decimal("331.50")
    assert order.platform_fee + order.florist_payout == order.total

def test_empty_cart_is_rejected(matched_florist):
    with pytest.raises(PricingError) as exc:
        price(CartSnapshot(), matched_florist)
    assert exc.value.code == "empty_cart"

def test_unmatched_florist_is_rejected(cart_roses_tulip):
    with pytest.raises(PricingError) as exc:
        price(cart_roses_tulip, MatchResult.not_found())
    assert exc.value.code == "no_florist_matched"

def test_money_is_serialized_as_json_numbers(cart_roses_tulip, matched_florist):
    data = price(cart_roses_tulip, matched_florist, delivery_type="pickup").model_dump(mode="json")
    assert data["total"] == 390.0
    assert data["currency"] == "sek"
