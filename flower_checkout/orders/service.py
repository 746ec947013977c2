"""Couche service des commandes: puits du webhook Stripe.
Rôles:
- Transformer une session Stripe payée en ligne 'buyer_orders' (idempotent par session).
- Incrémenter l'usage du code promo à la première création seulement.
Le watcher de règlement observe ensuite cette ligne.
"""
from typing import Any, Dict, Optional
import logging

from flower_checkout.payments import metadata as meta
from flower_checkout.promos import repository as promos_repository
from . import repository

logger = logging.getLogger(__name__)

PAID_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def build_order_row(session: Dict[str, Any], metadata: Dict[str, Any], items: list, gifts: list) -> Dict[str, Any]:
    amount_total = session.get("amount_total")
    return {
        "stripe_session_id": session.get("id"),
        "stripe_payment_intent_id": session.get("payment_intent"),
        "buyer_id": metadata.get("buyer_id"),
        "customer_name": metadata.get("customer_name"),
        "customer_phone": metadata.get("customer_phone"),
        "delivery_type": metadata.get("delivery_type") or "delivery",
        "delivery_address": metadata.get("delivery_address") or "",
        "note": metadata.get("note") or None,
        "florist_id": metadata.get("florist_id") or None,
        "items": items,
        "gifts": gifts,
        "promo_code": metadata.get("promo_code") or None,
        "promo_discount": _to_float(metadata.get("promo_discount")),
        "delivery_fee": _to_float(metadata.get("delivery_fee")),
        "distance_km": _to_float(metadata.get("distance_km")),
        "platform_fee": _to_float(metadata.get("platform_fee")),
        "total": (amount_total / 100) if isinstance(amount_total, (int, float)) else None,
        "currency": session.get("currency"),
        "status": "new",
        "payment_status": "paid",
    }


def webhook_handle_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Traite l'événement Stripe: crée la commande si la session est payée.
    - checkout.session.completed avec payment_status != 'paid' (paiement différé): ignoré,
      la commande sera créée sur checkout.session.async_payment_succeeded.
    - Renvoie {"status": "ok", "created": bool} ou {"status": "ignored"}.
    """
    if (event or {}).get("type") not in PAID_EVENTS:
        return {"status": "ignored"}
    session = ((event or {}).get("data") or {}).get("object") or {}
    if session.get("payment_status") not in (None, "paid", "no_payment_required"):
        logger.info("orders.webhook: session %s non payée (%s)", session.get("id"), session.get("payment_status"))
        return {"status": "ignored"}
    if not session.get("id"):
        return {"status": "ignored"}

    metadata, items, gifts = meta.extract_metadata(event)
    order, created = repository.create_from_checkout_session(build_order_row(session, metadata, items, gifts))
    if created and metadata.get("promo_code"):
        promos_repository.increment_usage(metadata["promo_code"])
    logger.info(
        "orders.webhook session_id=%s created=%s order_id=%s",
        session.get("id"), created, (order or {}).get("id"),
    )
    return {"status": "ok", "created": created}
