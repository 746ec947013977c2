import asyncio
import threading
import pytest

from flower_checkout.errors import SettlementError
from flower_checkout.settlement import service as settlement_service
from flower_checkout.settlement.models import SettlementState
from flower_checkout.settlement.watcher import SettlementWatcher

class OrderStore:
    """Store en mémoire: la commande apparaît quand le 'webhook' l'insère."""

    def __init__(self):
        self.orders = {}
        self.lookups = 0

    def find(self, session_id):
        self.lookups += 1
        return self.orders.get(session_id)

def _watcher(store, hook_calls=None, **kwargs):
    def _hook(session_id, order):
        if hook_calls is not None:
            hook_calls.append(session_id)
    kwargs.setdefault("poll_interval", 0.01)
    kwargs.setdefault("timeout", 2)
    return SettlementWatcher(store.find, on_confirmed=_hook, **kwargs)

def test_check_without_order_is_awaiting():
    store = OrderStore()
    watcher = _watcher(store)
    watcher.begin("cs_1")
    assert watcher.check("cs_1").state is SettlementState.AWAITING_PAYMENT

def test_confirmation_hook_runs_once():
    store, calls = OrderStore(), []
    watcher = _watcher(store, calls)
    watcher.begin("cs_1")
    store.orders["cs_1"] = {"id": "o1", "buyer_id": "b1"}

    first = watcher.check("cs_1")
    second = watcher.check("cs_1")
    assert first.state is SettlementState.CONFIRMED
    assert first.order_id == "o1"
    assert second == first
    assert calls == ["cs_1"]
    assert watcher.completed_orders == 1
    # Déjà confirmé: plus d'interrogation du store
    assert store.lookups == 1

def test_concurrent_checks_confirm_once():
    store, calls = OrderStore(), []
    watcher = _watcher(store, calls)
    store.orders["cs_1"] = {"id": "o1"}
    threads = [threading.Thread(target=watcher.check, args=("cs_1",)) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert calls == ["cs_1"]
    assert watcher.completed_orders == 1

def test_await_confirmation_returns_when_order_appears():
    store, calls = OrderStore(), []
    watcher = _watcher(store, calls)

    async def scenario():
        task = asyncio.create_task(watcher.await_confirmation("cs_1"))
        await asyncio.sleep(0.05)
        store.orders["cs_1"] = {"id": "o42"}
        return await asyncio.wait_for(task, timeout=2)

    status = asyncio.run(scenario())
    assert status.state is SettlementState.CONFIRMED
    assert status.order_id == "o42"
    assert calls == ["cs_1"]

def test_await_confirmation_is_restart_safe():
    # Commande créée pendant que personne n'attendait: l'attente suivante confirme tout de suite
    store = OrderStore()
    store.orders["cs_1"] = {"id": "o1"}
    watcher = _watcher(store, poll_interval=60)
    status = asyncio.run(asyncio.wait_for(watcher.await_confirmation("cs_1"), timeout=2))
    assert status.state is SettlementState.CONFIRMED

def test_abandon_wakes_waiter():
    store = OrderStore()
    watcher = _watcher(store, poll_interval=60, timeout=0)
    watcher.begin("cs_1", buyer_id="b1")

    async def scenario():
        task = asyncio.create_task(watcher.await_confirmation("cs_1"))
        await asyncio.sleep(0.05)
        watcher.abandon("cs_1")
        return await asyncio.wait_for(task, timeout=2)

    assert asyncio.run(scenario()).state is SettlementState.ABANDONED
    assert watcher.waiter_count("cs_1") == 0

def test_late_confirmation_after_abandon_is_honored():
    store, calls = OrderStore(), []
    watcher = _watcher(store, calls)
    watcher.begin("cs_1")
    watcher.abandon("cs_1")
    assert watcher.check("cs_1").state is SettlementState.ABANDONED

    store.orders["cs_1"] = {"id": "o1"}
    assert watcher.check("cs_1").state is SettlementState.CONFIRMED
    assert calls == ["cs_1"]

def test_abandon_does_not_undo_confirmation():
    store = OrderStore()
    store.orders["cs_1"] = {"id": "o1"}
    watcher = _watcher(store)
    watcher.check("cs_1")
    assert watcher.abandon("cs_1").state is SettlementState.CONFIRMED
    assert watcher.begin("cs_1").state is SettlementState.CONFIRMED

def test_await_confirmation_times_out():
    watcher = _watcher(OrderStore())
    status = asyncio.run(watcher.await_confirmation("cs_1", timeout=0.05))
    assert status.state is SettlementState.TIMED_OUT
    assert watcher.waiter_count("cs_1") == 0
    # Session jamais ouverte: rien n'est mémorisé
    assert watcher.status("cs_1") is None

def test_cancelled_wait_leaves_no_waiter():
    watcher = _watcher(OrderStore(), poll_interval=60, timeout=0)
    watcher.begin("cs_1")

    async def scenario():
        task = asyncio.create_task(watcher.await_confirmation("cs_1"))
        await asyncio.sleep(0.05)
        assert watcher.waiter_count("cs_1") == 1
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert watcher.waiter_count("cs_1") == 0
    assert watcher.status("cs_1").state is SettlementState.AWAITING_PAYMENT

def test_failing_hook_keeps_confirmation():
    store = OrderStore()
    store.orders["cs_1"] = {"id": "o1"}

    def _boom(session_id, order):
        raise RuntimeError("cart store down")

    watcher = SettlementWatcher(store.find, on_confirmed=_boom, poll_interval=0.01)
    assert watcher.check("cs_1").state is SettlementState.CONFIRMED
    assert watcher.completed_orders == 1

def test_require_confirmed():
    store = OrderStore()
    watcher = _watcher(store)
    with pytest.raises(SettlementError) as exc:
        watcher.require_confirmed("cs_1")
    assert exc.value.code == "unconfirmed"
    store.orders["cs_1"] = {"id": "o7"}
    assert watcher.require_confirmed("cs_1") == "o7"

def test_application_hook_clears_buyer_cart(monkeypatch):
    cleared = []
    monkeypatch.setattr(settlement_service.carts_repository, "clear_cart", lambda buyer_id: cleared.append(buyer_id) or True)
    monkeypatch.setattr(
        settlement_service.orders_repository,
        "find_by_session_id",
        lambda sid: {"id": "o1", "buyer_id": "device-1"},
    )
    watcher = settlement_service.get_watcher()
    watcher.check("cs_1")
    watcher.check("cs_1")
    assert cleared == ["device-1"]
    assert settlement_service.get_watcher() is watcher

def test_unknown_sessions_are_not_tracked():
    watcher = _watcher(OrderStore())
    for i in range(5000):
        assert watcher.check(f"cs_bogus_{i}").state is SettlementState.AWAITING_PAYMENT
    assert watcher.tracked_count == 0

def test_abandon_unknown_session_is_rejected():
    watcher = _watcher(OrderStore())
    with pytest.raises(SettlementError) as exc:
        watcher.abandon("cs_bogus")
    assert exc.value.code == "unknown_session"
    assert exc.value.status_code == 404
    assert watcher.tracked_count == 0

def test_timed_out_wait_leaves_session_awaiting():
    store = OrderStore()
    watcher = _watcher(store)
    watcher.begin("cs_1")
    assert asyncio.run(watcher.await_confirmation("cs_1", timeout=0.05)).state is SettlementState.TIMED_OUT
    assert watcher.status("cs_1").state is SettlementState.AWAITING_PAYMENT
    assert watcher.check("cs_1").state is SettlementState.AWAITING_PAYMENT
    # Paiement arrivé après l'expiration de l'attente
    store.orders["cs_1"] = {"id": "o1"}
    assert watcher.check("cs_1").state is SettlementState.CONFIRMED

def test_owner_comes_from_begin_then_order():
    store = OrderStore()
    watcher = _watcher(store)
    watcher.begin("cs_1", buyer_id="b1")
    assert watcher.owner("cs_1") == "b1"
    assert watcher.owner("cs_2") is None

    # Session non suivie (redémarrage): le propriétaire vient de la commande
    store.orders["cs_2"] = {"id": "o2", "buyer_id": "b2"}
    watcher.check("cs_2")
    assert watcher.owner("cs_2") == "b2"

    # Commande sans buyer_id: on garde celui de begin()
    store.orders["cs_1"] = {"id": "o1"}
    watcher.check("cs_1")
    assert watcher.owner("cs_1") == "b1"

def test_sessions_expire_after_retention():
    now = [1000.0]
    watcher = _watcher(OrderStore(), retention=60, clock=lambda: now[0])
    watcher.begin("cs_old")
    now[0] += 61
    watcher.begin("cs_new")
    assert watcher.status("cs_old") is None
    assert watcher.status("cs_new").state is SettlementState.AWAITING_PAYMENT
    assert watcher.tracked_count == 1

def test_oldest_sessions_evicted_over_cap():
    watcher = _watcher(OrderStore(), max_tracked=2)
    for sid in ("cs_1", "cs_2", "cs_3"):
        watcher.begin(sid)
    assert watcher.tracked_count == 2
    assert watcher.status("cs_1") is None
    assert watcher.status("cs_3") is not None

def test_session_with_waiter_is_not_evicted():
    watcher = _watcher(OrderStore(), poll_interval=60, timeout=0, max_tracked=1)
    watcher.begin("cs_1")

    async def scenario():
        task = asyncio.create_task(watcher.await_confirmation("cs_1"))
        await asyncio.sleep(0.05)
        watcher.begin("cs_2")
        assert watcher.status("cs_1") is not None
        watcher.abandon("cs_1")
        return await asyncio.wait_for(task, timeout=2)

    assert asyncio.run(scenario()).state is SettlementState.ABANDONED

def test_hook_runs_without_lock_held():
    store = OrderStore()
    store.orders["cs_1"] = {"id": "o1"}
    seen = []
    watcher = None

    def _hook(session_id, order):
        # Un autre thread doit pouvoir lire l'état pendant le hook
        t = threading.Thread(target=lambda: seen.append(watcher.status(session_id)))
        t.start()
        t.join(timeout=1)

    watcher = SettlementWatcher(store.find, on_confirmed=_hook, poll_interval=0.01)
    watcher.check("cs_1")
    assert len(seen) == 1
    assert seen[0].state is SettlementState.CONFIRMED
