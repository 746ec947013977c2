"""
Moteur de prix: sous-totaux, remise promo, frais de livraison, total.

- Arithmétique Decimal; arrondi à l'unité mineure uniquement sur le total.
- total = max(0, articles + cadeaux - remise + livraison).
- Code promo invalide: remise 0 + promo_error (non fatal).
- Remise supérieure au sous-total: plafonnée + avertissement 'discount_clamped'.
- Erreurs fatales: panier vide, aucun fleuriste.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import logging

from flower_checkout.config import STRIPE_CURRENCY
from flower_checkout.errors import PricingError, PromoError
from flower_checkout.florists.models import MatchResult
from flower_checkout.promos import service as promos_service
from . import fees
from .models import CartSnapshot, PricedOrder, PromoIssue

logger = logging.getLogger(__name__)

MINOR_UNIT = Decimal("0.01")


def _subtotal(lines) -> Decimal:
    return sum((line.line_total for line in lines), Decimal(0))


def price(
    cart: CartSnapshot,
    florist: MatchResult,
    promo_code: Optional[str] = None,
    delivery_type: str = "delivery",
    fee_policy=None,
    promo_lookup=None,
    now: Optional[datetime] = None,
) -> PricedOrder:
    if cart.is_empty:
        raise PricingError("Panier vide", code="empty_cart")
    if not florist.matched:
        raise PricingError("Aucun fleuriste pour calculer la livraison", code="no_florist_matched")
    if delivery_type not in ("delivery", "pickup"):
        raise ValueError(f"delivery_type invalide: {delivery_type}")

    items_subtotal = _subtotal(cart.items)
    gifts_subtotal = _subtotal(cart.gifts)
    merchandise = items_subtotal + gifts_subtotal

    discount = Decimal(0)
    promo_applied: Optional[str] = None
    promo_error: Optional[PromoIssue] = None
    warnings = []
    if promo_code and promo_code.strip():
        try:
            promo = promos_service.resolve_promo(promo_code, merchandise, now=now, lookup=promo_lookup)
            discount, clamped = promos_service.discount_for(promo, merchandise)
            promo_applied = promo.code
            if clamped:
                warnings.append("discount_clamped")
        except PromoError as e:
            promo_error = PromoIssue(code=e.code, message=str(e))
            logger.info("pricing: promo refusé code=%s reason=%s", promo_code, e.code)

    delivery_fee = Decimal(0)
    if delivery_type == "delivery":
        policy = fee_policy or fees.default_policy()
        delivery_fee = max(Decimal(0), policy.fee_for(florist.distance_km or 0))

    total = max(Decimal(0), merchandise - discount + delivery_fee).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)
    platform_fee = (total * Decimal(str(florist.platform_fee_percent))).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)

    order = PricedOrder(
        items_subtotal=items_subtotal,
        gifts_subtotal=gifts_subtotal,
        discount=discount,
        delivery_fee=delivery_fee,
        total=total,
        florist_id=florist.florist_id,
        delivery_type=delivery_type,
        distance_km=florist.distance_km,
        promo_code_applied=promo_applied,
        promo_error=promo_error,
        warnings=warnings,
        platform_fee=platform_fee,
        florist_payout=total - platform_fee,
        currency=STRIPE_CURRENCY,
    )
    logger.info(
        "pricing: florist_id=%s items=%s gifts=%s discount=%s fee=%s total=%s",
        order.florist_id, items_subtotal, gifts_subtotal, discount, delivery_fee, total,
    )
    if warnings:
        logger.warning("pricing: florist_id=%s warnings=%s", order.florist_id, warnings)
    return order
