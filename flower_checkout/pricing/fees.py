"""
Barèmes de frais de livraison en fonction de la distance (km).
Contrat: frais >= 0, déterministes, croissants avec la distance.
"""
from decimal import Decimal
from typing import List, Tuple

from flower_checkout.config import (
    DELIVERY_BASE_FEE,
    DELIVERY_INCLUDED_KM,
    DELIVERY_PER_KM_FEE,
    DELIVERY_FEE_TIERS,
)


def _dec(value) -> Decimal:
    return Decimal(str(value))


class LinearDeliveryFee:
    """Forfait de base couvrant les premiers km, puis un prix par km supplémentaire."""

    def __init__(self, base_fee, included_km, per_km_fee):
        self.base_fee = _dec(base_fee)
        self.included_km = _dec(included_km)
        self.per_km_fee = _dec(per_km_fee)
        if min(self.base_fee, self.included_km, self.per_km_fee) < 0:
            raise ValueError("Barème linéaire: valeurs négatives interdites")

    def fee_for(self, distance_km: float) -> Decimal:
        distance = max(Decimal(0), _dec(distance_km))
        extra_km = max(Decimal(0), distance - self.included_km)
        return self.base_fee + extra_km * self.per_km_fee


class TieredDeliveryFee:
    """Paliers (jusqu'à km -> frais); au-delà du dernier palier, le dernier frais s'applique."""

    def __init__(self, tiers: List[Tuple[Decimal, Decimal]]):
        if not tiers:
            raise ValueError("Barème par paliers vide")
        self.tiers = sorted(((_dec(km), _dec(fee)) for km, fee in tiers), key=lambda t: t[0])
        fees = [fee for _, fee in self.tiers]
        if fees[0] < 0 or any(b < a for a, b in zip(fees, fees[1:])):
            raise ValueError("Barème par paliers: frais négatifs ou décroissants")

    @classmethod
    def parse(cls, raw: str) -> "TieredDeliveryFee":
        """'5:120,10:160,20:220' -> paliers."""
        tiers = []
        for chunk in raw.split(","):
            if not chunk.strip():
                continue
            km, fee = chunk.split(":", 1)
            tiers.append((_dec(km.strip()), _dec(fee.strip())))
        return cls(tiers)

    def fee_for(self, distance_km: float) -> Decimal:
        distance = max(Decimal(0), _dec(distance_km))
        for upto_km, fee in self.tiers:
            if distance <= upto_km:
                return fee
        return self.tiers[-1][1]


def default_policy():
    if DELIVERY_FEE_TIERS:
        return TieredDeliveryFee.parse(DELIVERY_FEE_TIERS)
    return LinearDeliveryFee(DELIVERY_BASE_FEE, DELIVERY_INCLUDED_KM, DELIVERY_PER_KM_FEE)
