"""
Attente du règlement d'une session Stripe.

Le webhook crée la commande (buyer_orders) de manière asynchrone; le watcher observe
le store par session_id au lieu d'écouter un flux:
- begin(): la session devient suivie (AwaitingPayment) avec son acheteur.
- check(): observation ponctuelle, déclenchée par niveau (relancer = réobserver).
- await_confirmation(): vérifie tout de suite puis interroge toutes les poll_interval secondes
  jusqu'à Confirmed, Abandoned ou TimedOut. TimedOut est le résultat de l'attente seulement:
  la session reste AwaitingPayment.
- Le hook de confirmation (vider le panier...) s'exécute une seule fois par session_id,
  quel que soit le nombre d'observations ou d'attentes concurrentes.
- abandon() ne touche jamais Stripe; une confirmation tardive reste honorée.

Mémoire bornée:
- Une session jamais begin()-ée et sans commande n'est pas mémorisée (état transitoire).
- Les sessions suivies sont oubliées après `retention` secondes sans transition, et au-delà
  de `max_tracked` entrées les plus anciennes partent d'abord (sauf attente en cours).

La recherche de commande (client Supabase synchrone) tourne dans un thread
(asyncio.to_thread). Aucun verrou n'est tenu pendant cet appel ni pendant le hook.
"""
from typing import Any, Callable, Dict, Optional, Set, Tuple
import asyncio
import logging
import threading
import time

from flower_checkout.config import (
    SETTLEMENT_MAX_TRACKED,
    SETTLEMENT_POLL_INTERVAL,
    SETTLEMENT_RETENTION_SECONDS,
    SETTLEMENT_TIMEOUT_SECONDS,
)
from flower_checkout.errors import SettlementError
from .models import SettlementState, SettlementStatus

logger = logging.getLogger(__name__)

OrderLookup = Callable[[str], Optional[Dict[str, Any]]]
ConfirmHook = Callable[[str, Dict[str, Any]], None]


class _TrackedSession:
    __slots__ = ("status", "buyer_id", "touched")

    def __init__(self, status: SettlementStatus, buyer_id: Optional[str], touched: float):
        self.status = status
        self.buyer_id = buyer_id
        self.touched = touched


class SettlementWatcher:
    def __init__(
        self,
        find_order: OrderLookup,
        on_confirmed: Optional[ConfirmHook] = None,
        poll_interval: float = SETTLEMENT_POLL_INTERVAL,
        timeout: float = SETTLEMENT_TIMEOUT_SECONDS,
        retention: float = SETTLEMENT_RETENTION_SECONDS,
        max_tracked: int = SETTLEMENT_MAX_TRACKED,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._find_order = find_order
        self._on_confirmed = on_confirmed
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.retention = retention
        self.max_tracked = max_tracked
        self._clock = clock
        self.completed_orders = 0

        self._guard = threading.Lock()
        # Ordre d'insertion = ordre de dernière transition (plus ancienne en tête)
        self._sessions: Dict[str, _TrackedSession] = {}
        self._waiters: Dict[str, Set[Tuple[asyncio.AbstractEventLoop, asyncio.Event]]] = {}

    @property
    def tracked_count(self) -> int:
        with self._guard:
            return len(self._sessions)

    def status(self, session_id: str) -> Optional[SettlementStatus]:
        """Dernier état mémorisé (sans interroger le store), None si la session n'est pas suivie."""
        with self._guard:
            tracked = self._sessions.get(session_id)
            return tracked.status if tracked is not None else None

    def owner(self, session_id: str) -> Optional[str]:
        """buyer_id connu pour la session (begin() ou commande), sinon None."""
        with self._guard:
            tracked = self._sessions.get(session_id)
            return tracked.buyer_id if tracked is not None else None

    def waiter_count(self, session_id: str) -> int:
        with self._guard:
            return len(self._waiters.get(session_id, ()))

    def _store(self, session_id: str, status: SettlementStatus, buyer_id: Optional[str] = None) -> None:
        # Appelé sous self._guard
        previous = self._sessions.pop(session_id, None)
        if buyer_id is None and previous is not None:
            buyer_id = previous.buyer_id
        now = self._clock()
        self._sessions[session_id] = _TrackedSession(status, buyer_id, now)
        self._prune(now)

    def _prune(self, now: float) -> None:
        # Appelé sous self._guard
        horizon = now - self.retention if self.retention > 0 else None
        for session_id in list(self._sessions):
            tracked = self._sessions[session_id]
            expired = horizon is not None and tracked.touched < horizon
            over_cap = self.max_tracked > 0 and len(self._sessions) > self.max_tracked
            if not expired and not over_cap:
                break
            if session_id in self._waiters:
                continue
            del self._sessions[session_id]
            logger.debug("settlement.evict session_id=%s state=%s", session_id, tracked.status.state.value)

    def begin(self, session_id: str, buyer_id: Optional[str] = None) -> SettlementStatus:
        with self._guard:
            tracked = self._sessions.get(session_id)
            if tracked is not None and tracked.status.state is SettlementState.CONFIRMED:
                return tracked.status
            status = SettlementStatus(session_id=session_id, state=SettlementState.AWAITING_PAYMENT)
            self._store(session_id, status, buyer_id)
        logger.info("settlement.begin session_id=%s buyer_id=%s", session_id, buyer_id)
        return status

    def check(self, session_id: str) -> SettlementStatus:
        """
        Observation ponctuelle du store.
        - Déjà confirmé: état mémorisé, aucun effet de bord.
        - Commande trouvée: transition vers CONFIRMED (hook exécuté une fois).
        - Sinon: état mémorisé inchangé, ou AWAITING_PAYMENT transitoire pour une session non suivie.
        """
        current = self.status(session_id)
        if current is not None and current.state is SettlementState.CONFIRMED:
            return current

        order = self._find_order(session_id)
        if not order:
            return self.status(session_id) or SettlementStatus(
                session_id=session_id, state=SettlementState.AWAITING_PAYMENT
            )
        return self._confirm(session_id, order)

    def _confirm(self, session_id: str, order: Dict[str, Any]) -> SettlementStatus:
        buyer_id = order.get("buyer_id")
        order_id = order.get("id")
        with self._guard:
            tracked = self._sessions.get(session_id)
            if tracked is not None and tracked.status.state is SettlementState.CONFIRMED:
                return tracked.status
            previous = tracked.status.state if tracked is not None else None
            status = SettlementStatus(
                session_id=session_id,
                state=SettlementState.CONFIRMED,
                order_id=str(order_id) if order_id is not None else None,
            )
            self._store(session_id, status, str(buyer_id) if buyer_id else None)
            self.completed_orders += 1

        if previous is SettlementState.ABANDONED:
            logger.info("settlement.confirmed after abandon session_id=%s", session_id)
        logger.info("settlement.confirmed session_id=%s order_id=%s", session_id, status.order_id)
        # Un seul thread atteint ce point par session: la transition ci-dessus est atomique
        if self._on_confirmed is not None:
            try:
                self._on_confirmed(session_id, order)
            except Exception:
                logger.exception("settlement.on_confirmed failed session_id=%s", session_id)
        self._wake(session_id)
        return status

    def abandon(self, session_id: str) -> SettlementStatus:
        """L'acheteur a quitté la page de paiement. Sans effet sur une session déjà confirmée."""
        with self._guard:
            tracked = self._sessions.get(session_id)
            if tracked is None:
                raise SettlementError("Session de paiement inconnue", code="unknown_session")
            if tracked.status.state is SettlementState.CONFIRMED:
                return tracked.status
            status = SettlementStatus(session_id=session_id, state=SettlementState.ABANDONED)
            self._store(session_id, status)
        logger.info("settlement.abandon session_id=%s", session_id)
        self._wake(session_id)
        return status

    def require_confirmed(self, session_id: str) -> str:
        """order_id de la session, ou SettlementError(unconfirmed)."""
        status = self.check(session_id)
        if status.state is not SettlementState.CONFIRMED:
            raise SettlementError("Paiement non confirmé pour cette session", code="unconfirmed")
        return status.order_id

    def _wake(self, session_id: str) -> None:
        with self._guard:
            waiters = list(self._waiters.get(session_id, ()))
        for loop, event in waiters:
            loop.call_soon_threadsafe(event.set)

    async def await_confirmation(self, session_id: str, timeout: Optional[float] = None) -> SettlementStatus:
        """
        Attend l'issue de la session.
        - timeout None: valeur du watcher; 0 ou moins: pas de limite.
        - Expiration: TIMED_OUT est retourné, l'état mémorisé n'est pas modifié.
        - Annulation de la tâche: le waiter est retiré, l'état mémorisé reste intact.
        """
        limit = self.timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + limit if limit and limit > 0 else None
        waiter = (loop, asyncio.Event())

        with self._guard:
            self._waiters.setdefault(session_id, set()).add(waiter)

        try:
            while True:
                status = await asyncio.to_thread(self.check, session_id)
                if status.is_final:
                    return status
                if deadline is not None and loop.time() >= deadline:
                    logger.info("settlement.timeout session_id=%s", session_id)
                    return SettlementStatus(session_id=session_id, state=SettlementState.TIMED_OUT)

                delay = self.poll_interval
                if deadline is not None:
                    delay = min(delay, max(0.0, deadline - loop.time()))
                try:
                    await asyncio.wait_for(waiter[1].wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
                waiter[1].clear()
        finally:
            with self._guard:
                waiters = self._waiters.get(session_id)
                if waiters is not None:
                    waiters.discard(waiter)
                    if not waiters:
                        del self._waiters[session_id]
