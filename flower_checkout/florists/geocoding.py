"""
Adaptateur de géocodage (OpenStreetMap Nominatim).
Collaborateur externe: peut ne rien renvoyer, le matching sait travailler sans coordonnée.
"""
import logging
from typing import Optional

import requests

from flower_checkout.config import GEOCODER_URL, GEOCODER_USER_AGENT, GEOCODER_TIMEOUT
from .models import Coordinate, GeocodeResult

logger = logging.getLogger(__name__)


def geocode(address: str) -> Optional[GeocodeResult]:
    """
    Résout une adresse libre en coordonnée.
    - Retourne None si l'adresse est vide, si l'API échoue ou ne trouve rien.
    - country_code renvoyé en majuscules (Nominatim le donne en minuscules).
    """
    query = (address or "").strip()
    if not query:
        return None
    try:
        res = requests.get(
            GEOCODER_URL,
            params={"q": query, "format": "json", "limit": 1, "addressdetails": 1},
            headers={"User-Agent": GEOCODER_USER_AGENT},
            timeout=GEOCODER_TIMEOUT,
        )
        if res.status_code != 200:
            logger.warning("geocoding failed status=%s address=%s", res.status_code, query)
            return None
        data = res.json() or []
    except (requests.RequestException, ValueError):
        logger.exception("geocoding error address=%s", query)
        return None

    if not data:
        return None
    first = data[0]
    try:
        coordinate = Coordinate(lat=float(first["lat"]), lon=float(first["lon"]))
    except (KeyError, TypeError, ValueError):
        logger.warning("geocoding returned an unusable position address=%s", query)
        return None
    country = (first.get("address") or {}).get("country_code") or first.get("country_code")
    return GeocodeResult(
        coordinate=coordinate,
        normalized_address=first.get("display_name") or query,
        country_code=country.upper() if country else None,
    )
