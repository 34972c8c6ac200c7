from __future__ import annotations

from pathlib import Path

import pytest

from shopdesk.config import EstimateSettings
from shopdesk.estimate.wizard import EstimateWizard
from shopdesk.services.catalog_service import CatalogService
from shopdesk.services.customer_service import CustomerService
from shopdesk.services.estimate_service import EstimateService
from shopdesk.storage.json_repo import JsonRepository

PRODUCTS = [
    {"id": "P1", "ref": "LAP-01", "name": "Laptop Stand", "price": "500", "stock": 3},
    {"id": "P2", "ref": "KB-02", "name": "Wireless Keyboard", "price": "1250.50", "stock": 0},
    {"id": "P3", "ref": "OLD-03", "name": "Old Mouse", "price": "100", "stock": 10, "active": False},
]

CUSTOMERS = [
    {
        "id": "C1",
        "name": "Tech Solutions Ltd",
        "email": "contact@techsolutions.lk",
        "phone": "077-1234567",
        "address": "No. 45, Galle Road, Colombo 03",
    },
    {"id": "C2", "name": "Ceylon Traders", "email": "sales@ceylontraders.lk", "phone": "077-4567890"},
]


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    products = JsonRepository(tmp_path / "products.json", entity_name="product", backup_enabled=False)
    for p in PRODUCTS:
        products.add(p)
    customers = JsonRepository(tmp_path / "customers.json", entity_name="customer", backup_enabled=False)
    for c in CUSTOMERS:
        customers.add(c)
    return tmp_path


@pytest.fixture
def catalog(data_dir: Path) -> CatalogService:
    return CatalogService(data_dir_path=data_dir)


@pytest.fixture
def customers(data_dir: Path) -> CustomerService:
    return CustomerService(data_dir / "customers.json")


@pytest.fixture
def estimates(data_dir: Path) -> EstimateService:
    return EstimateService(data_dir_path=data_dir)


@pytest.fixture
def wizard(catalog: CatalogService, customers: CustomerService) -> EstimateWizard:
    return EstimateWizard(catalog, customers, EstimateSettings())
