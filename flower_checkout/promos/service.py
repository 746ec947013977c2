from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional, Tuple

from flower_checkout.errors import PromoError
from . import repository
from .models import PromoCode, normalize_code

PromoLookup = Callable[[str], Optional[PromoCode]]


def resolve_promo(
    code: str,
    subtotal: Decimal,
    now: Optional[datetime] = None,
    lookup: Optional[PromoLookup] = None,
) -> PromoCode:
    """
    Valide un code promo pour un sous-total donné.
    Lève PromoError(code=not_found|inactive|expired|exhausted|below_minimum);
    jamais de remise partielle silencieuse.
    """
    lookup = lookup or repository.lookup
    now = now or datetime.now(timezone.utc)
    normalized = normalize_code(code)

    promo = lookup(normalized) if normalized else None
    if promo is None:
        raise PromoError("Code promo introuvable", code="not_found")
    if not promo.active:
        raise PromoError("Code promo inactif", code="inactive")
    if promo.expires_at is not None and promo.expires_at < now:
        raise PromoError("Code promo expiré", code="expired")
    if promo.max_uses is not None and promo.current_uses >= promo.max_uses:
        raise PromoError("Code promo épuisé", code="exhausted")
    if promo.min_order_amount is not None and subtotal < promo.min_order_amount:
        raise PromoError(f"Montant minimum de commande: {promo.min_order_amount}", code="below_minimum")
    return promo


def discount_for(promo: PromoCode, subtotal: Decimal) -> Tuple[Decimal, bool]:
    """Retourne (remise, clamped): la remise ne dépasse jamais le sous-total."""
    if promo.kind == "percent":
        raw = subtotal * promo.value / Decimal(100)
    else:
        raw = promo.value
    raw = max(Decimal(0), raw)
    if raw > subtotal:
        return subtotal, True
    return raw, False
