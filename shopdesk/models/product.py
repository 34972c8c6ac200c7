from __future__ import annotations
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import gen_id


class Product(BaseModel):
    id: str = Field(default_factory=gen_id)
    ref: Optional[str] = None
    name: str
    price: Decimal = Field(default=Decimal("0"), ge=0)
    # information seulement : le devis ne bloque jamais sur le stock
    stock: int = 0
    active: bool = True

    model_config = ConfigDict(extra="ignore")
