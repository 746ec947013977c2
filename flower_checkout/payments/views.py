import asyncio
import logging

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import JSONResponse

from flower_checkout.errors import CheckoutError
from flower_checkout.utils.security import require_buyer
from flower_checkout.utils.rate_limit import optional_rate_limit
from flower_checkout.payments import stripe_client
from flower_checkout.payments import service as payments_service
from flower_checkout.payments.models import CheckoutRequest
from flower_checkout.orders import service as orders_service
from flower_checkout.settlement import service as settlement_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module flower_checkout.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(body: CheckoutRequest, buyer_id: str = Depends(require_buyer)):
    """
    Ouvre une session Stripe Checkout pour le panier de l'acheteur.
    - Sécurité: X-Buyer-Id + rate limit (10 req / 60s)
    - Étapes: matching fleuriste, prix, session Stripe (avec repli des moyens de paiement)
    - Réponse: {id, url, accepted_payment_methods, fallback_reason, order, florist}
    - Erreurs typées: 404 (fleuriste), 422 (panier), 502/504/500 (Stripe)
    """
    try:
        result = payments_service.process_checkout(
            buyer=body.buyer(buyer_id),
            cart=body.cart(),
            details=body.details(),
            promo_code=body.promo_code,
            customer_coordinate=body.coordinate,
            country_hint=body.country_hint,
        )
    except (CheckoutError, HTTPException):
        raise
    except Exception:
        logger.exception("Erreur create_checkout_session buyer_id=%s", buyer_id)
        raise HTTPException(status_code=500, detail="Erreur lors de la création du paiement")

    session = result["session"]
    return JSONResponse({
        "id": session.session_id,
        "url": session.checkout_url,
        "accepted_payment_methods": list(session.accepted_payment_methods),
        "fallback_reason": session.fallback_reason,
        "order": result["order"].model_dump(mode="json"),
        "florist": result["match"].model_dump(mode="json"),
    })

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe (Checkout): crée la commande d'une session payée.
    - Signature: stripe_client.parse_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - Création idempotente par stripe_session_id (webhook rejoué => created=False)
    - Le watcher réobserve la session tout de suite (panier vidé sans attendre le client)
    - Réponses: {"status": "ok", "created": bool} ou {"status": "ignored"}
    """
    try:
        event = await stripe_client.parse_event(request)
        result = await asyncio.to_thread(orders_service.webhook_handle_event, event)
        if result.get("status") == "ok":
            session_id = (((event or {}).get("data") or {}).get("object") or {}).get("id")
            await asyncio.to_thread(settlement_service.get_watcher().check, session_id)
        return JSONResponse(result)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Erreur webhook_stripe")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")
