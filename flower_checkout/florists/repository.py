"""
Accès aux données pour la feature 'florists' (table 'florists', lecture seule).
"""
from typing import List
import logging
import flower_checkout.infra.supabase_client as supabase_client

from .models import Florist

logger = logging.getLogger(__name__)

FLORIST_COLUMNS = "id, business_name, name, city, country, lat, lon, available, service_radius_km, platform_fee_percent, rating"

# module flower_checkout.florists.repository
def fetch_available_rows() -> List[dict]:
    """
    Récupère les fleuristes disponibles (available = true).
    - Retourne [] en cas d'erreur.
    """
    try:
        res = (
            supabase_client.get_supabase()
            .table("florists")
            .select(FLORIST_COLUMNS)
            .eq("available", True)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("florists.repository.fetch_available_rows failed")
        return []

def list_available() -> List[Florist]:
    """Fleuristes disponibles, lignes invalides ignorées (coordonnée hors bornes, id manquant)."""
    florists: List[Florist] = []
    for row in fetch_available_rows():
        if not row.get("id"):
            continue
        try:
            florists.append(Florist.from_row(row))
        except ValueError:
            logger.warning("florists.repository: ligne ignorée id=%s", row.get("id"))
    return florists
