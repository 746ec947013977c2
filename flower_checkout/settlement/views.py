import asyncio
import logging

from fastapi import APIRouter, Depends, Query

from flower_checkout.errors import SettlementError
from flower_checkout.utils.security import require_buyer
from flower_checkout.settlement import service as settlement_service
from flower_checkout.settlement.watcher import SettlementWatcher

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/settlement", tags=["Settlement API"])

MAX_WAIT_SECONDS = 60

def _ensure_owner(watcher: SettlementWatcher, session_id: str, buyer_id: str) -> None:
    # Session d'un autre acheteur: même réponse qu'une session inconnue
    owner = watcher.owner(session_id)
    if owner is not None and owner != buyer_id:
        logger.warning("settlement.foreign_session buyer_id=%s session_id=%s", buyer_id, session_id)
        raise SettlementError("Session de paiement inconnue", code="unknown_session")

# module flower_checkout.settlement.views
@router.get("/{session_id}")
async def settlement_status(
    session_id: str,
    wait: float = Query(0, ge=0, le=MAX_WAIT_SECONDS),
    buyer_id: str = Depends(require_buyer),
):
    """
    État du règlement d'une session Stripe.
    - wait=0: observation ponctuelle du store.
    - wait>0: long-polling jusqu'à confirmation/abandon ou expiration (timed_out).
    - Session d'un autre acheteur: 404 (unknown_session).
    Réponse: {"session_id", "state", "order_id"}
    """
    watcher = settlement_service.get_watcher()
    _ensure_owner(watcher, session_id, buyer_id)
    if wait > 0:
        status = await watcher.await_confirmation(session_id, timeout=wait)
    else:
        status = await asyncio.to_thread(watcher.check, session_id)
    # La commande trouvée peut révéler le propriétaire
    _ensure_owner(watcher, session_id, buyer_id)
    logger.info("settlement.status buyer_id=%s session_id=%s state=%s", buyer_id, session_id, status.state.value)
    return status.model_dump(mode="json")

@router.post("/{session_id}/abandon")
async def settlement_abandon(session_id: str, buyer_id: str = Depends(require_buyer)):
    """
    L'acheteur a fermé la page de paiement: libère les attentes (Stripe n'est pas contacté).
    Seul l'acheteur de la session peut l'abandonner; sinon 404 (unknown_session).
    """
    watcher = settlement_service.get_watcher()
    if watcher.owner(session_id) != buyer_id:
        logger.warning("settlement.abandon refused buyer_id=%s session_id=%s", buyer_id, session_id)
        raise SettlementError("Session de paiement inconnue", code="unknown_session")
    status = watcher.abandon(session_id)
    logger.info("settlement.abandon buyer_id=%s session_id=%s", buyer_id, session_id)
    return status.model_dump(mode="json")
