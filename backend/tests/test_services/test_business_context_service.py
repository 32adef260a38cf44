"""
Unit tests for the BusinessContext builder

Author: TM3
Date: 2025-12-02
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from app.domain.business_context import BusinessContext
from app.services.business_context_service import BusinessContextService, aggregate_context
from conftest import FROZEN_NOW


class TestAggregateContext:
    """Test the pure aggregation step"""

    def test_totals(self, sample_context):
        """Test collection sizes and revenue figures"""
        assert sample_context.total_products == 4
        assert sample_context.total_orders == 4
        assert sample_context.total_customers == 2
        assert sample_context.total_revenue == 2000
        assert sample_context.confirmed_revenue == 1500
        assert sample_context.weekly_revenue == 800
        assert sample_context.average_order_value == 500

    def test_inventory_partition_is_disjoint_and_complete(self, sample_context):
        """Every product lands in exactly one stock bucket"""
        low = [p["id"] for p in sample_context.low_stock_products]
        out = [p["id"] for p in sample_context.out_of_stock_products]
        well = [p["id"] for p in sample_context.well_stocked_products]

        assert out == ["p1"]
        assert low == ["p2"]
        assert well == ["p3", "p4"]
        assert len(low) + len(out) + len(well) == sample_context.total_products
        assert len(set(low + out + well)) == sample_context.total_products

    def test_recent_orders_use_seven_day_window(self, sample_context):
        """Old and undated orders are excluded from the recent window"""
        assert [o["id"] for o in sample_context.recent_orders] == ["o1", "o2"]

    def test_sales_data_sorted_by_day(self, sample_context):
        """One entry per day with recent orders, ascending"""
        days = [(d.date, d.amount, d.count) for d in sample_context.sales_data]
        assert days == [("2025-11-30", 300, 1), ("2025-12-01", 500, 1)]

    def test_orders_by_status_has_all_keys(self, sample_context):
        assert sample_context.orders_by_status == {
            "pending": 1,
            "processing": 0,
            "delivered": 2,
            "cancelled": 1,
        }

    def test_categories_are_unique_in_first_seen_order(self, sample_context):
        assert sample_context.categories == ["খাদ্য", "রান্না"]

    def test_flags_follow_collections(self, sample_context, empty_context):
        """has_* flags equal non-emptiness of the underlying collections"""
        assert sample_context.has_products is True
        assert sample_context.has_orders is True
        assert sample_context.has_customers is True
        assert sample_context.has_low_stock is True
        assert sample_context.has_out_of_stock is True
        assert sample_context.has_sales_data is True

        assert empty_context.has_products is False
        assert empty_context.has_orders is False
        assert empty_context.has_sales_data is False

    def test_empty_shop_is_all_zero(self, empty_context):
        """Test empty shop produces zeros and no division error"""
        assert empty_context.total_revenue == 0
        assert empty_context.average_order_value == 0
        assert empty_context.weekly_revenue == 0
        assert empty_context.sales_data == []
        assert empty_context == BusinessContext.empty()

    def test_malformed_numbers_are_coerced(self):
        """Test non-numeric stock/amount values never produce negatives or NaN"""
        # Arrange
        products = [
            {"id": "x1", "name": "A", "stock": "abc"},
            {"id": "x2", "name": "B", "stock": None},
            {"id": "x3", "name": "C", "stock": float("nan")},
            {"id": "x4", "name": "D", "stock": -7},
        ]
        orders = [
            {"id": "y1", "total_amount": "oops", "status": "pending", "created_at": "2025-12-01"},
            {"id": "y2", "total_amount": True, "status": "weird"},
        ]

        # Act
        context = aggregate_context(products, orders, [], now=FROZEN_NOW)

        # Assert: unparseable stock counts as 0 -> out of stock
        assert len(context.out_of_stock_products) == 4
        assert context.total_revenue == 0
        assert context.average_order_value == 0
        assert context.orders_by_status["pending"] == 1
        assert sum(context.orders_by_status.values()) == 1

    def test_non_list_inputs_treated_as_empty(self):
        context = aggregate_context(None, {"not": "a list"}, "nope", now=FROZEN_NOW)

        assert context.total_products == 0
        assert context.total_orders == 0
        assert context.total_customers == 0

    def test_non_dict_records_are_dropped(self):
        context = aggregate_context([{"id": "ok", "stock": 20}, "garbage", 42], [], [], now=FROZEN_NOW)

        assert context.total_products == 1

    def test_naive_datetime_treated_as_utc(self):
        orders = [{"id": "n1", "total_amount": 50, "created_at": datetime(2025, 12, 2, 8, 0)}]

        context = aggregate_context([], orders, [], now=FROZEN_NOW)

        assert context.weekly_revenue == 50
        assert context.sales_data[0].date == "2025-12-02"

    def test_aggregation_is_idempotent(self, sample_products, sample_orders, sample_customers):
        """Same inputs and clock produce equal contexts"""
        first = aggregate_context(sample_products, sample_orders, sample_customers, now=FROZEN_NOW)
        second = aggregate_context(sample_products, sample_orders, sample_customers, now=FROZEN_NOW)

        assert first == second

    def test_flags_cannot_be_set(self, sample_context):
        with pytest.raises(Exception):
            sample_context.has_products = False

    def test_summary_shape(self, sample_context):
        assert sample_context.summary() == {
            "totalProducts": 4,
            "totalOrders": 4,
            "totalRevenue": 2000,
            "lowStockCount": 1,
        }


class TestBusinessContextService:
    """Test the async builder over a repository"""

    async def test_build_reads_all_collections(self, mock_repository, frozen_clock):
        """Test build fetches products, orders and customers for the shop"""
        # Arrange
        service = BusinessContextService(repository=mock_repository, clock=frozen_clock)

        # Act
        context = await service.build("shop-1")

        # Assert
        assert context.total_products == 4
        assert context.weekly_revenue == 800
        called = sorted(call.args for call in mock_repository.find_by_shop.call_args_list)
        assert called == [("customers", "shop-1"), ("orders", "shop-1"), ("products", "shop-1")]

    async def test_build_returns_empty_context_on_repository_error(self, frozen_clock):
        """Test a failing read yields the fallback context instead of raising"""
        # Arrange
        repository = MagicMock()
        repository.find_by_shop.side_effect = RuntimeError("connection refused")
        service = BusinessContextService(repository=repository, clock=frozen_clock)

        # Act
        context = await service.build("shop-1")

        # Assert
        assert context == BusinessContext.empty()

    async def test_clock_controls_window(self, mock_repository):
        """Test moving the clock forward empties the recent window"""
        later = datetime(2026, 1, 15, tzinfo=timezone.utc)
        service = BusinessContextService(repository=mock_repository, clock=lambda: later)

        context = await service.build("shop-1")

        assert context.recent_orders == []
        assert context.has_sales_data is False
        assert context.weekly_revenue == 0
