import logging
from fastapi import APIRouter, Depends

from flower_checkout.utils.security import require_buyer
from flower_checkout.florists import service as florists_service
from flower_checkout.florists.models import MatchRequest, MatchResult

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/florists", tags=["Florists API"])

# module flower_checkout.florists.views
@router.post("/match", response_model=MatchResult)
def match_florist(body: MatchRequest, buyer_id: str = Depends(require_buyer)):
    """
    Fleuriste le plus proche pour une adresse de livraison.
    - Coordonnée fournie par l'app, sinon géocodage de l'adresse.
    - Aucun fleuriste: MatchingError(not_found) => 404 {"detail", "code"}.
    """
    coordinate, country = florists_service.resolve_position(
        body.delivery_address, body.coordinate, body.country_hint
    )
    result = florists_service.match_nearest(coordinate, body.delivery_address, country)
    logger.info("florists.match buyer_id=%s matched=%s florist_id=%s", buyer_id, result.matched, result.florist_id)
    return florists_service.require_match(result)
