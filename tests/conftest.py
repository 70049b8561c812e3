"""
Test Suite Configuration
"""
from datetime import date
from typing import Callable, List

import pytest

from salesrecon.config import Settings
from salesrecon.domain.models import ChannelData, EngineConfig, PlatformRule, Product
from salesrecon.ingestion.rows import SalesRow
from salesrecon.service import ReconciliationService
from salesrecon.storage import MemoryStore


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def engine_config() -> EngineConfig:
    """Engine configuration with one excluded platform"""
    return EngineConfig(
        lookback_days=30,
        platform_rules={
            "Amazon": PlatformRule(manager="Alice"),
            "eBay": PlatformRule(manager="Bob"),
            "Wholesale": PlatformRule(is_excluded=True),
        },
    )


@pytest.fixture
def catalog() -> List[Product]:
    """Small catalog with overlapping SKU prefixes"""
    return [
        Product(sku="MASTER-UK", name="Master Lamp", stock_level=100, lead_time_days=30),
        Product(sku="BF10", name="Bird Feeder 10", stock_level=50, lead_time_days=20),
        Product(sku="BF100", name="Bird Feeder 100", stock_level=50, lead_time_days=20),
        Product(
            sku="GARDEN-HOSE",
            name="Garden Hose",
            stock_level=200,
            lead_time_days=45,
            channels=[ChannelData(platform="eBay", manager="Bob", alias_string="HOSE-EBAY, HOSE_2")],
        ),
    ]


@pytest.fixture
def make_row() -> Callable[..., SalesRow]:
    """Factory for sales rows with sensible defaults"""
    def _make(
        sku: str = "MASTER-UK",
        day: date = date(2025, 3, 14),
        quantity: float = 1,
        revenue: float = 10.0,
        platform: str = "Amazon",
        **kwargs,
    ) -> SalesRow:
        return SalesRow(
            sku=sku,
            order_date=day,
            quantity=quantity,
            revenue=revenue,
            platform=platform,
            **kwargs,
        )
    
    return _make


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def service(store, engine_config, catalog) -> ReconciliationService:
    """Service over an in-memory store seeded with the sample catalog"""
    svc = ReconciliationService(store, engine_config)
    svc.catalog = {p.sku: p for p in catalog}
    svc.save()
    return svc


@pytest.fixture
def sales_csv() -> str:
    """ERP-style sales export"""
    return (
        "SKU Code,SKU Quantity,Sales Amt.,Order Time,Platform Name Level1,Platform Name Level2,"
        "COGS,Selling Fee,Postage,Profit Excl RN,Profit Excl RN%,Outer Order ID\n"
        "MASTER-UK,2,\"£20.00\",2025-03-14 10:00:00,Amazon,FBA,4.00,3.00,2.50,8.00,40%,A-1\n"
        "MASTER-UK_1,1,11.00,2025-03-13 09:30:00,eBay,-,4.00,1.50,2.50,3.00,27.27%,E-7\n"
        ",1,5.00,2025-03-13 09:30:00,eBay,-,,,,,,\n"
        "BF10,1,0.00,2025-03-12 12:00:00,Amazon,,,,,,,\n"
        "BF10,3,30.00,not a date,Amazon,,,,,,,\n"
    )
