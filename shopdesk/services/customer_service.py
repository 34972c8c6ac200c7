from __future__ import annotations
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from shopdesk.config import data_dir
from shopdesk.models.customer import Customer
from shopdesk.storage.json_repo import JsonRepository


class CustomerService:
    def __init__(self, path: Optional[str | Path] = None):
        self.repo = JsonRepository(path or data_dir() / "customers.json", entity_name="customer", key="id")

    def list_customers(self) -> List[Customer]:
        out: List[Customer] = []
        for d in self.repo.list_all():
            try:
                out.append(Customer(**d))
            except ValidationError:
                # entrée invalide : ignorée, ne doit pas bloquer la sélection
                continue
        return out

    def get_by_id(self, customer_id: str) -> Optional[Customer]:
        d = self.repo.get_by_id(customer_id)
        if d is None:
            return None
        try:
            return Customer(**d)
        except ValidationError:
            return None

    def search_customers(self, query: str = "") -> List[Customer]:
        q = (query or "").strip().casefold()
        customers = self.list_customers()
        if not q:
            return customers
        return [c for c in customers if q in c.name.casefold() or q in (c.email or "").casefold()]
