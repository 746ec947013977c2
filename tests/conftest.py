import os

# Avant tout import de l'app: pas de Redis, pas de vraie clé Stripe, pas de .env local
os.environ["DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS"] = "1"

import pytest
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from flower_checkout.app import app as fastapi_app
from flower_checkout.florists.models import Coordinate, Florist, MatchResult
from flower_checkout.pricing.models import CartLine, CartSnapshot
from flower_checkout.promos.models import PromoCode
from flower_checkout.settlement import service as settlement_service

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app, headers={"X-Buyer-Id": "device-123"}) as c:
        yield c

# Mock Supabase pour tous les tests: aucun accès réseau
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    anon, service = MagicMock(), MagicMock()
    monkeypatch.setattr("flower_checkout.infra.supabase_client.get_supabase", lambda: anon)
    monkeypatch.setattr("flower_checkout.infra.supabase_client.get_service_supabase", lambda: service)
    return {"anon": anon, "service": service}

# Watcher neuf pour chaque test (état mémoire partagé sinon)
@pytest.fixture(autouse=True)
def _fresh_watcher():
    settlement_service.reset_watcher()
    yield
    settlement_service.reset_watcher()

@pytest.fixture
def stockholm() -> Coordinate:
    return Coordinate(lat=59.3293, lon=18.0686)

@pytest.fixture
def florist_factory():
    def _make(id="f1", lat=59.3293, lon=18.0686, radius=10.0, rating=4.0, city="Stockholm", country="SE", available=True):
        return Florist(
            id=id,
            business_name=f"Blommor {id}",
            city=city,
            country=country,
            coordinate=Coordinate(lat=lat, lon=lon) if lat is not None else None,
            available=available,
            service_radius_km=radius,
            rating=rating,
        )
    return _make

@pytest.fixture
def cart_roses_tulip() -> CartSnapshot:
    # Rose x2 @150 + Tulip x1 @90 => 390
    return CartSnapshot.from_lines(items=[
        CartLine(product_id="p-rose", name="Rose", unit_price=Decimal("150"), qty=2),
        CartLine(product_id="p-tulip", name="Tulip", unit_price=Decimal("90"), qty=1),
    ])

@pytest.fixture
def matched_florist() -> MatchResult:
    return MatchResult(
        matched=True,
        florist_id="f1",
        florist_name="Blommor f1",
        distance_km=5.2,
        within_radius=True,
        platform_fee_percent=0.15,
    )

@pytest.fixture
def welcome10():
    promo = PromoCode(code="WELCOME10", kind="percent", value=Decimal("10"))
    return lambda code: promo if code == "WELCOME10" else None
