from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, Field

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# symbole monétaire en tête ("Rs. 200", "Rs.200", "LKR 200")
_CURRENCY_RE = re.compile(r"^\s*(?:rs\.?|lkr)\s*", re.IGNORECASE)


def gen_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_decimal(val: Any) -> Optional[Decimal]:
    """
    Conversion "souple" d'une saisie en Decimal.
    Accepte int/float/Decimal ou texte ("1,500.50", "Rs. 200", "1e3").
    Les virgules sont des séparateurs de milliers. Hors symbole monétaire en
    tête, le texte doit être un nombre complet : "12abc" donne None.
    Retourne None si la valeur n'est pas exploitable (vide, NaN, infini).
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, Decimal):
        d = val
    elif isinstance(val, (int, float)):
        try:
            d = Decimal(str(val))
        except InvalidOperation:
            return None
    else:
        s = _CURRENCY_RE.sub("", str(val).replace(",", "")).strip()
        if not s:
            return None
        try:
            d = Decimal(s)
        except InvalidOperation:
            return None
    if not d.is_finite():
        return None
    return d


class TimeStamped(BaseModel):
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
