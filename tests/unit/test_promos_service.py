import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from flower_checkout.errors import PromoError
from flower_checkout.promos.models import PromoCode, normalize_code
from flower_checkout.promos.service import resolve_promo, discount_for

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)

def _lookup(**overrides):
    fields = {"code": "SPRING", "kind": "percent", "value": Decimal("10")}
    fields.update(overrides)
    promo = PromoCode(**fields)
    return lambda code: promo if code == promo.code else None

def test_normalize_code():
    assert normalize_code("  welcome10 ") == "WELCOME10"
    assert normalize_code(None) == ""

def test_resolve_promo_is_case_insensitive():
    promo = resolve_promo(" spring ", Decimal("100"), now=NOW, lookup=_lookup())
    assert promo.code == "SPRING"

@pytest.mark.parametrize("overrides, code", [
    ({"active": False}, "inactive"),
    ({"expires_at": NOW - timedelta(days=1)}, "expired"),
    ({"max_uses": 5, "current_uses": 5}, "exhausted"),
    ({"min_order_amount": Decimal("500")}, "below_minimum"),
])
def test_resolve_promo_rejections(overrides, code):
    with pytest.raises(PromoError) as exc:
        resolve_promo("SPRING", Decimal("100"), now=NOW, lookup=_lookup(**overrides))
    assert exc.value.code == code

def test_resolve_promo_unknown_code():
    with pytest.raises(PromoError) as exc:
        resolve_promo("NOPE", Decimal("100"), now=NOW, lookup=_lookup())
    assert exc.value.code == "not_found"

def test_naive_expiry_is_treated_as_utc():
    promo = PromoCode(code="x", kind="fixed", value=Decimal("5"), expires_at=datetime(2026, 5, 2))
    assert promo.expires_at.tzinfo is not None
    assert resolve_promo("X", Decimal("10"), now=NOW, lookup=lambda c: promo) is promo

def test_percent_discount():
    promo = PromoCode(code="WELCOME10", kind="percent", value=Decimal("10"))
    assert discount_for(promo, Decimal("390")) == (Decimal("39"), False)

def test_fixed_discount_is_clamped_to_subtotal():
    promo = PromoCode(code="BIG", kind="fixed", value=Decimal("500"))
    assert discount_for(promo, Decimal("120")) == (Decimal("120"), True)

def test_promo_from_row():
    promo = PromoCode.from_row({
        "code": "summer",
        "discount_type": "fixed",
        "discount_value": 50,
        "min_order_amount": 200,
        "is_active": True,
        "max_uses": 100,
        "current_uses": None,
    })
    assert promo.code == "SUMMER"
    assert promo.kind == "fixed"
    assert promo.value == Decimal("50")
    assert promo.min_order_amount == Decimal("200")
    assert promo.current_uses == 0

def test_repository_lookup_returns_none_on_error(mock_db_dependency):
    from flower_checkout.promos import repository
    mock_db_dependency["anon"].table.side_effect = RuntimeError("network down")
    assert repository.lookup("WELCOME10") is None

def test_repository_increment_usage(mock_db_dependency):
    from flower_checkout.promos import repository
    table = mock_db_dependency["service"].table.return_value
    table.select.return_value.eq.return_value.limit.return_value.execute.return_value.data = [
        {"id": "p1", "current_uses": 3}
    ]
    assert repository.increment_usage("welcome10") is True
    table.update.assert_called_once_with({"current_uses": 4})
