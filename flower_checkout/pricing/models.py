# module flower_checkout.pricing.models
from decimal import Decimal
from typing import Annotated, Iterable, List, Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from flower_checkout.florists.models import Coordinate

# Décimal en interne, nombre JSON pour les clients
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

DeliveryType = Literal["delivery", "pickup"]


class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    unit_price: Money = Field(ge=0)
    image_ref: Optional[str] = None
    qty: int = Field(ge=1)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.qty


class CartSnapshot(BaseModel):
    """Instantané immuable du panier (articles + cadeaux), copié à la construction."""

    model_config = ConfigDict(frozen=True)

    items: Tuple[CartLine, ...] = ()
    gifts: Tuple[CartLine, ...] = ()

    @classmethod
    def from_lines(cls, items: Iterable[CartLine] = (), gifts: Iterable[CartLine] = ()) -> "CartSnapshot":
        return cls(items=tuple(items or ()), gifts=tuple(gifts or ()))

    @property
    def is_empty(self) -> bool:
        return not self.items and not self.gifts


class PromoIssue(BaseModel):
    code: str
    message: str


class PricedOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    items_subtotal: Money
    gifts_subtotal: Money
    discount: Money
    delivery_fee: Money
    total: Money
    florist_id: str
    delivery_type: DeliveryType
    distance_km: Optional[float] = None
    promo_code_applied: Optional[str] = None
    promo_error: Optional[PromoIssue] = None
    warnings: List[str] = Field(default_factory=list)
    platform_fee: Money = Decimal(0)
    florist_payout: Money = Decimal(0)
    currency: str = "sek"


class QuoteRequest(BaseModel):
    """Corps de /pricing/quote: panier + contexte de livraison (position optionnelle)."""

    items: List[CartLine] = Field(default_factory=list)
    gifts: List[CartLine] = Field(default_factory=list)
    promo_code: Optional[str] = Field(default=None, max_length=64)
    delivery_type: DeliveryType = "delivery"
    delivery_address: str = Field(default="", max_length=300)
    coordinate: Optional[Coordinate] = None
    country_hint: Optional[str] = Field(default=None, max_length=2)

    def cart(self) -> CartSnapshot:
        return CartSnapshot.from_lines(self.items, self.gifts)
