from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, field_validator


def normalize_code(code: Optional[str]) -> str:
    """Codes stockés en majuscules: comparaison insensible à la casse et aux espaces."""
    return (code or "").strip().upper()


class PromoCode(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    kind: Literal["percent", "fixed"]
    # percent: 10 => 10 %
    value: Decimal
    min_order_amount: Optional[Decimal] = None
    expires_at: Optional[datetime] = None
    active: bool = True
    max_uses: Optional[int] = None
    current_uses: int = 0

    @field_validator("code")
    @classmethod
    def _upper(cls, v: str) -> str:
        return normalize_code(v)

    @field_validator("expires_at")
    @classmethod
    def _aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def from_row(cls, row: dict) -> "PromoCode":
        """Ligne Supabase 'promo_codes' -> PromoCode (colonnes discount_type/discount_value/is_active)."""
        return cls(
            code=row.get("code") or "",
            kind=row.get("discount_type") or "percent",
            value=Decimal(str(row.get("discount_value") or 0)),
            min_order_amount=(
                Decimal(str(row["min_order_amount"])) if row.get("min_order_amount") is not None else None
            ),
            expires_at=row.get("expires_at"),
            active=bool(row.get("is_active", True)),
            max_uses=row.get("max_uses"),
            current_uses=int(row.get("current_uses") or 0),
        )
