"""
Sérialisation/désérialisation des métadonnées Stripe (acheteur, livraison, résumé du panier).
Limites Stripe: 500 caractères par valeur; les résumés articles/cadeaux restent du JSON valide.
"""
import json
from typing import Any, Dict, Iterable, List, Tuple

from flower_checkout.config import PLACEHOLDER_EMAIL_DOMAINS
from flower_checkout.pricing.models import CartLine, PricedOrder
from .models import BuyerContact, CheckoutDetails

MAX_VALUE_LENGTH = 500
MAX_NAME_LENGTH = 60

PLACEHOLDER_SUFFIXES = (".local", ".localhost", ".invalid", ".test", ".example")
PLACEHOLDER_DOMAINS = ("example.com", "example.org", "example.net")

# module flower_checkout.payments.metadata
def truncate(value: Any, limit: int = MAX_VALUE_LENGTH) -> str:
    return str(value if value is not None else "")[:limit]

def short_name(name: str) -> str:
    name = name or ""
    if len(name) <= MAX_NAME_LENGTH:
        return name
    return name[: MAX_NAME_LENGTH - 3] + "..."

def summarize_lines(lines: Iterable[CartLine], limit: int = MAX_VALUE_LENGTH) -> str:
    """
    Résumé JSON [{name, price, qty}] d'une liste de lignes.
    - name tronqué à 60 caractères.
    - Les dernières entrées sont retirées tant que le JSON dépasse `limit`
      (jamais de JSON coupé au milieu, le webhook doit pouvoir le relire).
    """
    entries = [{"name": short_name(l.name), "price": float(l.unit_price), "qty": l.qty} for l in lines]
    payload = json.dumps(entries, ensure_ascii=False)
    while len(payload) > limit and entries:
        entries.pop()
        payload = json.dumps(entries, ensure_ascii=False)
    return payload

def is_placeholder_email(email: str) -> bool:
    """
    Emails factices (générés pour les comptes sans email) à ne pas transmettre à Stripe:
    Klarna/Swish les refusent ou se comportent mal.
    """
    email = (email or "").strip().lower()
    if "@" not in email:
        return True
    domain = email.rsplit("@", 1)[1]
    if not domain or "." not in domain:
        return True
    return (
        domain in PLACEHOLDER_EMAIL_DOMAINS
        or domain in PLACEHOLDER_DOMAINS
        or domain.endswith(PLACEHOLDER_SUFFIXES)
    )

def make_metadata(order: PricedOrder, buyer: BuyerContact, details: CheckoutDetails) -> Dict[str, str]:
    """Métadonnées de session; relues par le webhook pour créer la commande."""
    meta: Dict[str, str] = {
        "buyer_id": buyer.buyer_id,
        "customer_name": buyer.name,
        "customer_phone": buyer.phone,
        "delivery_type": details.delivery_type,
        "delivery_address": details.delivery_address or "",
        "note": details.note or "",
        "items": summarize_lines(details.items),
        "gifts": summarize_lines(details.gifts),
        "florist_id": order.florist_id,
        "platform_fee": str(order.platform_fee),
    }
    if order.promo_code_applied:
        meta["promo_code"] = order.promo_code_applied
        meta["promo_discount"] = str(order.discount)
    if order.delivery_fee > 0:
        meta["delivery_fee"] = str(order.delivery_fee)
    if order.distance_km is not None:
        meta["distance_km"] = str(order.distance_km)
    return {k: truncate(v) for k, v in meta.items()}

def _loads_list(raw: Any) -> List[Dict[str, Any]]:
    try:
        data = json.loads(raw) if raw else []
    except (TypeError, ValueError):
        return []
    return data if isinstance(data, list) else []

def extract_metadata(event: Dict[str, Any]) -> Tuple[Dict[str, Any], List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Extrait (metadata, items, gifts) depuis un event Stripe (webhook).
    - Tolérant aux erreurs: listes vides si le JSON est illisible.
    """
    data_obj = ((event or {}).get("data") or {}).get("object") or {} if isinstance(event, dict) else {}
    meta = data_obj.get("metadata") or {}
    return meta, _loads_list(meta.get("items")), _loads_list(meta.get("gifts"))
