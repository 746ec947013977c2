from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class SettlementState(str, Enum):
    AWAITING_PAYMENT = "awaiting_payment"
    CONFIRMED = "confirmed"
    ABANDONED = "abandoned"
    TIMED_OUT = "timed_out"


class SettlementStatus(BaseModel):
    """État observé d'une session de paiement; order_id n'est renseigné qu'à CONFIRMED."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    state: SettlementState
    order_id: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.state in (SettlementState.CONFIRMED, SettlementState.ABANDONED)
