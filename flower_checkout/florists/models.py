# module flower_checkout.florists.models
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class Florist(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    business_name: str = "Florist"
    city: Optional[str] = None
    country: Optional[str] = None
    coordinate: Optional[Coordinate] = None
    available: bool = False
    service_radius_km: Optional[float] = None
    platform_fee_percent: float = 0.15
    rating: float = 0.0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Florist":
        """
        Construit un Florist depuis une ligne Supabase (table 'florists').
        - lat/lon à plat dans la table; coordonnée absente si l'un des deux manque.
        - business_name retombe sur name puis "Florist".
        """
        lat, lon = row.get("lat"), row.get("lon")
        coordinate = Coordinate(lat=lat, lon=lon) if lat is not None and lon is not None else None
        fee = row.get("platform_fee_percent")
        return cls(
            id=str(row.get("id")),
            business_name=row.get("business_name") or row.get("name") or "Florist",
            city=row.get("city"),
            country=row.get("country"),
            coordinate=coordinate,
            available=bool(row.get("available")),
            service_radius_km=row.get("service_radius_km"),
            platform_fee_percent=0.15 if fee is None else float(fee),
            rating=float(row.get("rating") or 0),
        )


class MatchResult(BaseModel):
    """Issue de match_nearest. matched=False représente le cas NotFound."""

    model_config = ConfigDict(frozen=True)

    matched: bool
    florist_id: Optional[str] = None
    florist_name: Optional[str] = None
    distance_km: Optional[float] = None
    within_radius: bool = False
    distance_estimated: bool = False
    platform_fee_percent: float = 0.15

    @classmethod
    def not_found(cls) -> "MatchResult":
        return cls(matched=False)


class GeocodeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    normalized_address: str = ""
    country_code: Optional[str] = None


class MatchRequest(BaseModel):
    delivery_address: str = Field(min_length=1, max_length=300)
    coordinate: Optional[Coordinate] = None
    country_hint: Optional[str] = Field(default=None, max_length=2)
