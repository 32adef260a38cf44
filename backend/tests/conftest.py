"""
Pytest fixtures and configuration for MunshiJi Advisor tests

This file provides shared fixtures that can be used across all test modules.

Sample shop at FROZEN_NOW (2025-12-02 12:00 UTC):
    products:  p1 out of stock, p2 low stock (5), p3 well stocked (80, no
               recent sales), p4 well stocked (30)
    orders:    o1 delivered 500 (2025-12-01), o2 pending 300 (2025-11-30),
               o3 delivered 1000 (2025-10-01, outside the 7-day window),
               o4 cancelled "200" with a malformed date
    customers: 2

Author: TM3
Date: 2025-12-02
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from app.services.business_context_service import aggregate_context

FROZEN_NOW = datetime(2025, 12, 2, 12, 0, 0, tzinfo=timezone.utc)

GOOD_RESPONSE = """**পরিস্থিতি বিশ্লেষণ:**
আপনার ৪টি পণ্য আছে এবং মোট বিক্রয় ৳2,000.00।

**মূল সমস্যা:**
"চাল" সম্পূর্ণ শেষ।

**সুপারিশ:**
অবিলম্বে চাল এর স্টক 20টি করুন। ফেসবুকে প্রচার শুরু করুন।

**কর্মপদক্ষেপ:**
১. আজই চাল এর স্টক পূরণ করুন
২. ফেসবুকে বিজ্ঞাপন দিন
৩. গ্রাহকদের অফার পাঠান"""


@pytest.fixture
def frozen_clock():
    """Clock that always returns FROZEN_NOW"""
    return lambda: FROZEN_NOW


@pytest.fixture
def sample_products():
    return [
        {"id": "p1", "name": "চাল", "price": 60, "stock": 0, "category": "খাদ্য"},
        {"id": "p2", "name": "ডাল", "price": 120, "stock": 5, "category": "খাদ্য"},
        {"id": "p3", "name": "তেল", "price": 180, "stock": 80, "category": "রান্না"},
        {"id": "p4", "name": "চিনি", "price": 100, "stock": 30, "category": "খাদ্য"},
    ]


@pytest.fixture
def sample_orders():
    return [
        {
            "id": "o1",
            "total_amount": 500,
            "status": "delivered",
            "created_at": "2025-12-01T10:00:00Z",
            "items": [
                {"productId": "p4", "quantity": 3},
                {"product_id": "p2", "quantity": 1},
            ],
        },
        {
            "id": "o2",
            "total_amount": 300,
            "status": "pending",
            "created_at": "2025-11-30T09:00:00Z",
            "items": [{"product": "p4", "quantity": 2}],
        },
        {
            "id": "o3",
            "total_amount": 1000,
            "status": "delivered",
            "created_at": "2025-10-01T00:00:00Z",
            "items": [{"product_id": "p3", "quantity": 5}],
        },
        {
            "id": "o4",
            "totalAmount": "200",
            "status": "cancelled",
            "created_at": "not-a-date",
            "items": [],
        },
    ]


@pytest.fixture
def sample_customers():
    return [
        {"id": "c1", "name": "রহিম"},
        {"id": "c2", "name": "করিম"},
    ]


@pytest.fixture
def sample_context(sample_products, sample_orders, sample_customers):
    """BusinessContext aggregated from the sample shop at FROZEN_NOW"""
    return aggregate_context(sample_products, sample_orders, sample_customers, now=FROZEN_NOW)


@pytest.fixture
def empty_context():
    return aggregate_context([], [], [], now=FROZEN_NOW)


@pytest.fixture
def fake_gateway():
    """
    LLM gateway double: complete() is an AsyncMock returning GOOD_RESPONSE
    """
    gateway = MagicMock()
    gateway.complete = AsyncMock(return_value=GOOD_RESPONSE)
    return gateway


@pytest.fixture
def mock_repository(sample_products, sample_orders, sample_customers):
    """Record repository double serving the sample shop"""
    records = {
        "products": sample_products,
        "orders": sample_orders,
        "customers": sample_customers,
    }
    repository = MagicMock()
    repository.find_by_shop.side_effect = lambda collection, shop_id: records[collection]
    return repository
