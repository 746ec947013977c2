from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from flower_checkout.pricing.models import CartLine, DeliveryType, QuoteRequest


class BuyerContact(BaseModel):
    model_config = ConfigDict(frozen=True)

    buyer_id: str
    name: str
    phone: str
    email: Optional[str] = None


class CheckoutDetails(BaseModel):
    """Contexte de livraison + lignes du panier, sérialisés dans les metadata Stripe."""

    model_config = ConfigDict(frozen=True)

    delivery_type: DeliveryType = "delivery"
    delivery_address: str = ""
    note: Optional[str] = None
    items: Tuple[CartLine, ...] = ()
    gifts: Tuple[CartLine, ...] = ()


class MethodSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    methods: Tuple[str, ...] = Field(min_length=1)


class SessionAttempt(BaseModel):
    """Résultat typé d'une tentative de création de session pour un MethodSet."""

    model_config = ConfigDict(frozen=True)

    method_set: MethodSet
    ok: bool
    session_id: Optional[str] = None
    checkout_url: Optional[str] = None
    error: Optional[str] = None


class CheckoutSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    checkout_url: str
    accepted_payment_methods: Tuple[str, ...]
    fallback_reason: Optional[str] = None


class CheckoutRequest(QuoteRequest):
    """Corps de /payments/checkout: QuoteRequest + coordonnées de l'acheteur."""

    name: str = Field(min_length=1, max_length=120)
    phone: str = Field(min_length=3, max_length=40)
    email: Optional[str] = Field(default=None, max_length=254)
    note: Optional[str] = Field(default=None, max_length=500)

    def buyer(self, buyer_id: str) -> BuyerContact:
        return BuyerContact(buyer_id=buyer_id, name=self.name, phone=self.phone, email=self.email)

    def details(self) -> CheckoutDetails:
        return CheckoutDetails(
            delivery_type=self.delivery_type,
            delivery_address=self.delivery_address,
            note=self.note,
            items=tuple(self.items),
            gifts=tuple(self.gifts),
        )
