"""
Accès aux données pour la feature 'promos' (table 'promo_codes').
"""
from typing import Optional
import logging
import flower_checkout.infra.supabase_client as supabase_client

from .models import PromoCode, normalize_code

logger = logging.getLogger(__name__)

# module flower_checkout.promos.repository
def lookup(code: str) -> Optional[PromoCode]:
    """
    Récupère un code promo par son code normalisé.
    - Retourne None si introuvable ou en cas d'erreur (traité comme 'not_found').
    """
    normalized = normalize_code(code)
    if not normalized:
        return None
    try:
        res = (
            supabase_client.get_supabase()
            .table("promo_codes")
            .select("*")
            .eq("code", normalized)
            .limit(1)
            .execute()
        )
        rows = res.data or []
    except Exception:
        logger.exception("promos.repository.lookup failed code=%s", normalized)
        return None
    if not rows:
        return None
    try:
        return PromoCode.from_row(rows[0])
    except ValueError:
        logger.exception("promos.repository.lookup: ligne invalide code=%s", normalized)
        return None

def increment_usage(code: str) -> bool:
    """
    Incrémente current_uses (appelé par le webhook quand la commande est enregistrée).
    Lecture puis écriture via service-role; retourne False si le code n'existe plus.
    """
    normalized = normalize_code(code)
    try:
        client = supabase_client.get_service_supabase()
        res = client.table("promo_codes").select("id, current_uses").eq("code", normalized).limit(1).execute()
        rows = res.data or []
        if not rows:
            return False
        current = int(rows[0].get("current_uses") or 0)
        client.table("promo_codes").update({"current_uses": current + 1}).eq("id", rows[0]["id"]).execute()
        return True
    except Exception:
        logger.exception("promos.repository.increment_usage failed code=%s", normalized)
        return False
