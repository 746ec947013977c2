"""
Cas d'usage 'florists': choix du fleuriste qui honorera la commande.

Règles:
- Candidats: fleuristes disponibles ET géolocalisés.
- Indice pays: restreint aux fleuristes du pays s'il y en a, sinon repli global.
- Avec coordonnée client: le plus proche parmi ceux dont le rayon de service couvre
  le client; à défaut, le plus proche tout court si la politique allow_out_of_radius
  l'autorise (MATCH_ALLOW_OUT_OF_RADIUS), sinon NotFound.
- Sans coordonnée: distance inconnue, distance par défaut (estimée); les fleuristes de la
  ville citée dans l'adresse passent devant, puis la note, puis l'id.
- Égalités: distance, puis note la plus haute, puis id le plus petit.
- "Aucun fleuriste" est un résultat (MatchResult.not_found()), jamais une exception.
"""
from typing import Iterable, List, Optional, Tuple
import logging

from flower_checkout.config import MATCH_ALLOW_OUT_OF_RADIUS, MATCH_DEFAULT_DISTANCE_KM
from flower_checkout.errors import MatchingError
from . import geocoding, repository
from .geo import haversine_km
from .models import Coordinate, Florist, MatchResult

logger = logging.getLogger(__name__)


class FloristDirectory:
    def __init__(
        self,
        florists: Iterable[Florist],
        allow_out_of_radius: bool = MATCH_ALLOW_OUT_OF_RADIUS,
        default_distance_km: float = MATCH_DEFAULT_DISTANCE_KM,
    ):
        self._florists: Tuple[Florist, ...] = tuple(florists)
        self.allow_out_of_radius = allow_out_of_radius
        self.default_distance_km = default_distance_km

    def candidates(self, country_hint: Optional[str] = None) -> List[Florist]:
        eligible = [f for f in self._florists if f.available and f.coordinate is not None]
        if not country_hint:
            return eligible
        target = country_hint.strip().lower()
        same_country = [f for f in eligible if (f.country or "").strip().lower() == target]
        if same_country:
            return same_country
        if eligible:
            logger.info("florists.match: aucun fleuriste pour pays=%s, repli global", country_hint)
        return eligible

    def match_nearest(
        self,
        customer_coordinate: Optional[Coordinate],
        delivery_address_text: str,
        country_hint: Optional[str] = None,
    ) -> MatchResult:
        candidates = self.candidates(country_hint)
        if not candidates:
            logger.info("florists.match: aucun fleuriste disponible address=%s", delivery_address_text)
            return MatchResult.not_found()
        if customer_coordinate is None:
            return self._match_without_position(candidates, delivery_address_text)
        return self._match_by_distance(candidates, customer_coordinate)

    def _match_by_distance(self, candidates: List[Florist], customer: Coordinate) -> MatchResult:
        ranked = sorted(
            ((haversine_km(customer, f.coordinate), f) for f in candidates),
            key=lambda pair: (pair[0], -pair[1].rating, pair[1].id),
        )
        in_radius = [
            (d, f) for d, f in ranked
            if f.service_radius_km is None or d <= f.service_radius_km
        ]
        if in_radius:
            distance, florist = in_radius[0]
            return _result(florist, distance, within_radius=True)
        if not self.allow_out_of_radius:
            logger.info("florists.match: aucun fleuriste dans son rayon de service, repli désactivé")
            return MatchResult.not_found()
        distance, florist = ranked[0]
        logger.info("florists.match: repli hors rayon florist_id=%s distance_km=%.1f", florist.id, distance)
        return _result(florist, distance, within_radius=False)

    def _match_without_position(self, candidates: List[Florist], address_text: str) -> MatchResult:
        pool = [f for f in candidates if f.service_radius_km is None]
        within_radius = True
        if not pool:
            if not self.allow_out_of_radius:
                return MatchResult.not_found()
            pool, within_radius = candidates, False

        address = (address_text or "").lower()

        def _key(f: Florist):
            in_city = bool(f.city) and f.city.lower() in address
            return (0 if in_city else 1, -f.rating, f.id)

        florist = sorted(pool, key=_key)[0]
        return _result(florist, self.default_distance_km, within_radius=within_radius, estimated=True)


def _result(florist: Florist, distance: float, within_radius: bool, estimated: bool = False) -> MatchResult:
    return MatchResult(
        matched=True,
        florist_id=florist.id,
        florist_name=florist.business_name,
        distance_km=round(distance, 1),
        within_radius=within_radius,
        distance_estimated=estimated,
        platform_fee_percent=florist.platform_fee_percent,
    )


def resolve_position(
    address: str,
    customer_coordinate: Optional[Coordinate] = None,
    country_hint: Optional[str] = None,
) -> Tuple[Optional[Coordinate], Optional[str]]:
    """
    Coordonnée client + indice pays.
    - Coordonnée fournie: utilisée telle quelle (pas d'appel réseau).
    - Sinon géocodage de l'adresse; le pays géocodé sert d'indice si aucun n'est fourni.
    - Échec du géocodage: (None, country_hint), le matching sait travailler sans position.
    """
    if customer_coordinate is not None:
        return customer_coordinate, country_hint
    result = geocoding.geocode(address)
    if result is None:
        logger.info("florists.position: adresse non géocodée address=%s", address)
        return None, country_hint
    return result.coordinate, country_hint or result.country_code


def match_nearest(
    customer_coordinate: Optional[Coordinate],
    delivery_address_text: str,
    country_hint: Optional[str] = None,
) -> MatchResult:
    """Point d'entrée: charge les fleuristes disponibles (Supabase) puis applique le matching."""
    directory = FloristDirectory(repository.list_available())
    return directory.match_nearest(customer_coordinate, delivery_address_text, country_hint)


def require_match(result: MatchResult) -> MatchResult:
    """Garde d'orchestration: aucune session de paiement sans fleuriste."""
    if not result.matched:
        raise MatchingError("Aucun fleuriste disponible pour cette adresse", code="not_found")
    return result
