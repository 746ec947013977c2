"""
Watcher de règlement partagé par l'application.
- Recherche de commande: orders.repository.find_by_session_id (Supabase).
- À la confirmation: vidage du panier serveur de l'acheteur.
"""
from typing import Any, Dict, Optional
import logging

from flower_checkout.carts import repository as carts_repository
from flower_checkout.orders import repository as orders_repository
from .watcher import SettlementWatcher

logger = logging.getLogger(__name__)

_watcher: Optional[SettlementWatcher] = None


def _find_order(session_id: str) -> Optional[Dict[str, Any]]:
    return orders_repository.find_by_session_id(session_id)


def on_order_confirmed(session_id: str, order: Dict[str, Any]) -> None:
    buyer_id = order.get("buyer_id")
    if not buyer_id:
        logger.warning("settlement.confirmed sans buyer_id session_id=%s", session_id)
        return
    if carts_repository.clear_cart(buyer_id):
        logger.info("settlement.cart_cleared buyer_id=%s session_id=%s", buyer_id, session_id)


def get_watcher() -> SettlementWatcher:
    global _watcher
    if _watcher is None:
        _watcher = SettlementWatcher(_find_order, on_confirmed=on_order_confirmed)
    return _watcher


def reset_watcher() -> None:
    """Oublie l'état mémorisé (tests, rechargement)."""
    global _watcher
    _watcher = None
