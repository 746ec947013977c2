"""
Accès aux données pour la feature 'orders' (table 'buyer_orders').
- Écritures: uniquement depuis le webhook Stripe (service-role).
- Lecture par stripe_session_id: interrogée par le watcher de règlement.
"""
from typing import Any, Dict, Optional, Tuple
import logging
import flower_checkout.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module flower_checkout.orders.repository
def find_by_session_id(session_id: str) -> Optional[Dict[str, Any]]:
    """
    Commande créée pour une session Stripe, ou None.
    - Une erreur de lecture vaut "pas encore" (le watcher réessaiera).
    """
    if not session_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("buyer_orders")
            .select("id, status, buyer_id, total, stripe_session_id")
            .eq("stripe_session_id", session_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("orders.repository.find_by_session_id failed session_id=%s", session_id)
        return None

def create_from_checkout_session(row: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], bool]:
    """
    Insère la commande (service-role) si aucune n'existe pour cette session.
    Retour: (commande, created); created=False si déjà présente (webhook rejoué).
    """
    session_id = row.get("stripe_session_id")
    existing = find_by_session_id(session_id)
    if existing:
        return existing, False
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("buyer_orders")
            .insert(row)
            .execute()
        )
        rows = res.data or []
        return (rows[0] if rows else None), True
    except Exception:
        logger.exception("orders.repository.create_from_checkout_session failed session_id=%s", session_id)
        raise
