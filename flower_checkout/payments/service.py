"""
Cas d'usage 'payments': négociation de la session Stripe + orchestration du checkout.

Négociation des moyens de paiement:
- Politique déclarée = liste ordonnée de MethodSet (préféré puis repli), au plus 2.
- Rejet Stripe (4xx, erreur API) sur un jeu => tentative suivante, raison conservée.
- Erreur de connexion / timeout => fatale tout de suite (pas de deuxième attente).
- Échec du dernier jeu => SessionError(provider_rejected).
- Appels strictement séquentiels; aucune écriture locale.
"""
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

import stripe

from flower_checkout.config import (
    BASE_URL,
    CHECKOUT_SUCCESS_PATH,
    CHECKOUT_CANCEL_PATH,
    STRIPE_CURRENCY,
    STRIPE_LOCALE,
    STRIPE_PRODUCT_NAME,
    STRIPE_SHIPPING_COUNTRIES,
    STRIPE_PAYMENT_METHOD_SETS,
)
from flower_checkout.errors import PricingError, SessionError
from flower_checkout.florists import service as florists_service
from flower_checkout.florists.models import Coordinate
from flower_checkout.pricing import service as pricing_service
from flower_checkout.pricing.models import CartSnapshot
from flower_checkout.settlement import service as settlement_service
from . import stripe_client
from . import metadata as meta
from .models import BuyerContact, CheckoutDetails, CheckoutSession, MethodSet, SessionAttempt

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


class CheckoutSessionBroker:
    def __init__(
        self,
        method_sets: Optional[Iterable[Iterable[str]]] = None,
        create: Optional[Callable[..., Dict[str, Any]]] = None,
    ):
        raw = STRIPE_PAYMENT_METHOD_SETS if method_sets is None else method_sets
        self.method_sets: List[MethodSet] = [MethodSet(methods=tuple(m)) for m in raw if m]
        self._create = create or stripe_client.create_session

    def build_params(self, order, buyer: BuyerContact, details: CheckoutDetails) -> Dict[str, Any]:
        """
        Paramètres communs à toutes les tentatives.
        - Une seule ligne = total de la commande (unit_amount en unité mineure).
        - customer_email seulement si l'email n'est pas factice.
        """
        sep = "&" if "?" in CHECKOUT_SUCCESS_PATH else "?"
        params: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [{
                "quantity": 1,
                "price_data": {
                    "currency": STRIPE_CURRENCY,
                    "unit_amount": int(round(order.total * 100)),
                    "product_data": {"name": STRIPE_PRODUCT_NAME},
                },
            }],
            "success_url": f"{BASE_URL}{CHECKOUT_SUCCESS_PATH}{sep}session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{BASE_URL}{CHECKOUT_CANCEL_PATH}",
            "locale": STRIPE_LOCALE,
            "billing_address_collection": "required",
            "metadata": meta.make_metadata(order, buyer, details),
        }
        if STRIPE_SHIPPING_COUNTRIES:
            params["shipping_address_collection"] = {"allowed_countries": list(STRIPE_SHIPPING_COUNTRIES)}
        if buyer.email and not meta.is_placeholder_email(buyer.email):
            params["customer_email"] = buyer.email.strip()
        return params

    def _attempt(self, base: Dict[str, Any], method_set: MethodSet) -> SessionAttempt:
        params = dict(base, payment_method_types=list(method_set.methods))
        try:
            session = self._create(**params)
        except stripe.APIConnectionError as e:
            logger.error("payments.session: Stripe injoignable methods=%s", method_set.methods)
            raise SessionError(f"Stripe injoignable: {e}", code="timeout") from e
        except stripe.StripeError as e:
            reason = getattr(e, "user_message", None) or str(e) or type(e).__name__
            logger.warning("payments.session: rejet Stripe methods=%s reason=%s", method_set.methods, reason)
            return SessionAttempt(method_set=method_set, ok=False, error=reason)

        session_id, url = (session or {}).get("id"), (session or {}).get("url")
        if not session_id or not url:
            return SessionAttempt(method_set=method_set, ok=False, error="Session Stripe invalide")
        return SessionAttempt(method_set=method_set, ok=True, session_id=session_id, checkout_url=url)

    def create_session(self, order, buyer: BuyerContact, details: CheckoutDetails) -> CheckoutSession:
        if not self.method_sets or len(self.method_sets) > MAX_ATTEMPTS:
            raise SessionError("Politique de moyens de paiement invalide", code="invalid_config")
        if order.total <= 0:
            raise SessionError("Montant nul: aucune session à ouvrir", code="invalid_amount")

        base = self.build_params(order, buyer, details)
        attempts: List[SessionAttempt] = []
        for method_set in self.method_sets:
            attempt = self._attempt(base, method_set)
            attempts.append(attempt)
            if not attempt.ok:
                continue
            rejected = [a.error for a in attempts if not a.ok]
            session = CheckoutSession(
                session_id=attempt.session_id,
                checkout_url=attempt.checkout_url,
                accepted_payment_methods=method_set.methods,
                fallback_reason="; ".join(rejected) if rejected else None,
            )
            logger.info(
                "payments.session: created session_id=%s methods=%s fallback=%s",
                session.session_id, session.accepted_payment_methods, bool(rejected),
            )
            return session

        raise SessionError(
            f"Session Stripe refusée: {attempts[-1].error}" if attempts else "Session Stripe refusée",
            code="provider_rejected",
        )


def process_checkout(
    *,
    buyer: BuyerContact,
    cart: CartSnapshot,
    details: CheckoutDetails,
    promo_code: Optional[str] = None,
    customer_coordinate: Optional[Coordinate] = None,
    country_hint: Optional[str] = None,
    broker: Optional[CheckoutSessionBroker] = None,
) -> Dict[str, Any]:
    """
    Enchaîne le pipeline complet pour un acheteur.
    1) Panier vide => PricingError(empty_cart) avant tout matching
    2) Position (coordonnée fournie ou géocodage de l'adresse)
    3) Matching fleuriste (MatchingError(not_found) => pas de session)
    4) Prix
    5) Session Stripe avec repli des moyens de paiement
    6) Le watcher de règlement passe en AwaitingPayment pour cette session
    """
    if cart.is_empty:
        raise PricingError("Panier vide", code="empty_cart")

    coordinate, country = florists_service.resolve_position(
        details.delivery_address, customer_coordinate, country_hint
    )
    match = florists_service.require_match(
        florists_service.match_nearest(coordinate, details.delivery_address, country)
    )
    order = pricing_service.price(cart, match, promo_code=promo_code, delivery_type=details.delivery_type)
    session = (broker or CheckoutSessionBroker()).create_session(order, buyer, details)
    settlement_service.get_watcher().begin(session.session_id, buyer_id=buyer.buyer_id)
    return {"session": session, "order": order, "match": match}
