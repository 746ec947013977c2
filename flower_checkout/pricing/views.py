import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from flower_checkout.errors import CheckoutError, PricingError
from flower_checkout.utils.security import require_buyer
from flower_checkout.florists import service as florists_service
from flower_checkout.pricing import service as pricing_service
from flower_checkout.pricing.models import QuoteRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/pricing", tags=["Pricing API"])

# module flower_checkout.pricing.views
@router.post("/quote")
def quote(body: QuoteRequest, buyer_id: str = Depends(require_buyer)):
    """
    Devis affiché avant paiement (mêmes règles que le checkout, sans session Stripe).
    - Réponse: {"order": PricedOrder, "florist": MatchResult}
    - 422 si panier vide ou aucun fleuriste; un code promo refusé reste dans promo_error.
    """
    try:
        cart = body.cart()
        if cart.is_empty:
            raise PricingError("Panier vide", code="empty_cart")
        coordinate, country = florists_service.resolve_position(
            body.delivery_address, body.coordinate, body.country_hint
        )
        match = florists_service.match_nearest(coordinate, body.delivery_address, country)
        order = pricing_service.price(
            cart,
            match,
            promo_code=body.promo_code,
            delivery_type=body.delivery_type,
        )
        return JSONResponse({
            "order": order.model_dump(mode="json"),
            "florist": match.model_dump(mode="json"),
        })
    except (CheckoutError, HTTPException):
        raise
    except Exception:
        logger.exception("Erreur pricing.quote buyer_id=%s", buyer_id)
        raise HTTPException(status_code=500, detail="Erreur lors du calcul du prix")
