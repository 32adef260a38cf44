"""
Business Context Domain Model

A normalized, request-scoped snapshot of a shop's business health, reduced
from its raw products, orders and customers.

Author: TM3
Date: 2025-12-02
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List

ORDER_STATUSES = ("pending", "processing", "delivered", "cancelled")


def _empty_status_counts() -> Dict[str, int]:
    return {status: 0 for status in ORDER_STATUSES}


class DailySales(BaseModel):
    """Sales for one calendar day (UTC) inside the trailing 7-day window"""
    date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    amount: float = Field(0.0, ge=0)
    count: int = Field(0, ge=0)


class BusinessContext(BaseModel):
    """
    BusinessContext domain model - rebuilt on every advisor request

    Fields:
        products, orders, customers: Raw records (validated dicts)
        recent_orders: Orders created within the last 7 days

        total_products, total_orders, total_customers: Collection sizes
        total_revenue: Sum of all order totals
        confirmed_revenue: Sum of delivered order totals
        weekly_revenue: Sum of recent order totals
        average_order_value: total_revenue / total_orders (0 without orders)

        low_stock_products: 0 < stock < 10
        out_of_stock_products: stock == 0
        well_stocked_products: stock >= 10

        sales_data: One DailySales entry per day with recent orders
        orders_by_status: Counts for pending/processing/delivered/cancelled
        categories: Unique non-empty product categories

    The has_* flags are derived properties and cannot be set.
    """

    # Raw data
    products: List[Dict[str, Any]] = Field(default_factory=list)
    orders: List[Dict[str, Any]] = Field(default_factory=list)
    customers: List[Dict[str, Any]] = Field(default_factory=list)
    recent_orders: List[Dict[str, Any]] = Field(default_factory=list)

    # Metrics (never negative)
    total_products: int = Field(0, ge=0)
    total_orders: int = Field(0, ge=0)
    total_customers: int = Field(0, ge=0)
    total_revenue: float = Field(0.0, ge=0)
    confirmed_revenue: float = Field(0.0, ge=0)
    weekly_revenue: float = Field(0.0, ge=0)
    average_order_value: float = Field(0.0, ge=0)

    # Inventory partitions
    low_stock_products: List[Dict[str, Any]] = Field(default_factory=list)
    out_of_stock_products: List[Dict[str, Any]] = Field(default_factory=list)
    well_stocked_products: List[Dict[str, Any]] = Field(default_factory=list)

    # Additional data
    sales_data: List[DailySales] = Field(default_factory=list)
    orders_by_status: Dict[str, int] = Field(default_factory=_empty_status_counts)
    categories: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    # Flags
    @property
    def has_products(self) -> bool:
        return len(self.products) > 0

    @property
    def has_orders(self) -> bool:
        return len(self.orders) > 0

    @property
    def has_customers(self) -> bool:
        return len(self.customers) > 0

    @property
    def has_low_stock(self) -> bool:
        return len(self.low_stock_products) > 0

    @property
    def has_out_of_stock(self) -> bool:
        return len(self.out_of_stock_products) > 0

    @property
    def has_sales_data(self) -> bool:
        return len(self.sales_data) > 0

    @property
    def delivery_rate(self) -> float:
        """Delivered orders as a percentage of all orders (0 without orders)"""
        if self.total_orders <= 0:
            return 0.0
        return self.orders_by_status.get("delivered", 0) / self.total_orders * 100

    @classmethod
    def empty(cls) -> "BusinessContext":
        """All-zero fallback context used when records cannot be read"""
        return cls()

    def summary(self) -> Dict[str, Any]:
        """Compact context summary returned to the presentation layer"""
        return {
            "totalProducts": self.total_products,
            "totalOrders": self.total_orders,
            "totalRevenue": self.total_revenue,
            "lowStockCount": len(self.low_stock_products),
        }

    def to_dict(self) -> dict:
        """
        Convert to dictionary with computed flags

        Returns dict with all fields plus the has_* properties
        """
        data = self.model_dump()

        data['has_products'] = self.has_products
        data['has_orders'] = self.has_orders
        data['has_customers'] = self.has_customers
        data['has_low_stock'] = self.has_low_stock
        data['has_out_of_stock'] = self.has_out_of_stock
        data['has_sales_data'] = self.has_sales_data

        return data
