from fastapi import FastAPI, Depends
from fastapi.testclient import TestClient
from flower_checkout.utils.security import require_buyer


def _client():
    app = FastAPI()

    @app.get("/me")
    def me(buyer_id: str = Depends(require_buyer)):
        return {"buyer_id": buyer_id}

    return TestClient(app)


def test_missing_buyer_header_is_401():
    assert _client().get("/me").status_code == 401


def test_blank_buyer_header_is_401():
    assert _client().get("/me", headers={"X-Buyer-Id": "   "}).status_code == 401


def test_buyer_header_is_stripped():
    r = _client().get("/me", headers={"X-Buyer-Id": " device-1 "})
    assert r.status_code == 200
    assert r.json() == {"buyer_id": "device-1"}


def test_oversized_buyer_id_is_rejected():
    assert _client().get("/me", headers={"X-Buyer-Id": "x" * 200}).status_code == 400
