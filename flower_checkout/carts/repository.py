"""
Accès aux données pour le panier serveur (table 'cart_items').
"""
import logging
import flower_checkout.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def clear_cart(buyer_id: str) -> bool:
    """Vide le panier d'un acheteur (service-role). Idempotent: vider un panier vide est un succès."""
    if not buyer_id:
        return False
    try:
        (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .delete()
            .eq("buyer_id", buyer_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("carts.repository.clear_cart failed buyer_id=%s", buyer_id)
        return False
