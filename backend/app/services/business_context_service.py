"""
Business Context Service

Builds the BusinessContext snapshot the advisor reasons over. The three
record reads run concurrently; aggregation is a single pass per collection.

The builder never raises: if a read or the aggregation fails, the all-zero
fallback context is returned so downstream code never null-checks.

Author: TM3
Date: 2025-12-02
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from app.domain.business_context import BusinessContext, DailySales, ORDER_STATUSES
from app.domain.records import (
    get_field,
    order_amount,
    order_status,
    parse_timestamp,
    product_stock,
)
from app.repositories.shop_record_repository import ShopRecordRepository

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 7
LOW_STOCK_THRESHOLD = 10


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_records(value: Any) -> List[Dict[str, Any]]:
    """Non-list results become empty; non-dict entries are dropped"""
    if not isinstance(value, list):
        return []
    return [record for record in value if isinstance(record, dict)]


def aggregate_context(
    products: Any,
    orders: Any,
    customers: Any,
    now: Optional[datetime] = None
) -> BusinessContext:
    """
    Reduce raw records into a BusinessContext.

    Args:
        products, orders, customers: Raw record lists (anything else is treated as empty)
        now: Reference time for the 7-day window (aware or naive UTC)

    Returns:
        BusinessContext
    """
    now = now or _utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    window_start = now - timedelta(days=RECENT_WINDOW_DAYS)

    valid_products = _as_records(products)
    valid_orders = _as_records(orders)
    valid_customers = _as_records(customers)

    # Inventory partitions + categories
    low_stock, out_of_stock, well_stocked = [], [], []
    categories: List[str] = []
    for product in valid_products:
        stock = product_stock(product)
        if stock == 0:
            out_of_stock.append(product)
        elif stock < LOW_STOCK_THRESHOLD:
            low_stock.append(product)
        else:
            well_stocked.append(product)

        category = get_field(product, "category")
        if isinstance(category, str) and category.strip() and category not in categories:
            categories.append(category)

    # Revenue, status breakdown and the 7-day window
    total_revenue = 0.0
    confirmed_revenue = 0.0
    weekly_revenue = 0.0
    orders_by_status = {status: 0 for status in ORDER_STATUSES}
    recent_orders = []
    sales_by_day: Dict[str, Dict[str, float]] = {}

    for order in valid_orders:
        amount = order_amount(order)
        total_revenue += amount

        status = order_status(order)
        if status in orders_by_status:
            orders_by_status[status] += 1
        if status == "delivered":
            confirmed_revenue += amount

        created_at = parse_timestamp(get_field(order, "created_at", "createdAt"))
        if created_at is None or created_at < window_start:
            continue

        recent_orders.append(order)
        weekly_revenue += amount
        day = created_at.date().isoformat()
        bucket = sales_by_day.setdefault(day, {"amount": 0.0, "count": 0})
        bucket["amount"] += amount
        bucket["count"] += 1

    sales_data = [
        DailySales(date=day, amount=max(0.0, bucket["amount"]), count=int(bucket["count"]))
        for day, bucket in sorted(sales_by_day.items())
    ]

    total_orders = len(valid_orders)
    average_order_value = total_revenue / total_orders if total_orders > 0 else 0.0

    return BusinessContext(
        products=valid_products,
        orders=valid_orders,
        customers=valid_customers,
        recent_orders=recent_orders,
        total_products=len(valid_products),
        total_orders=total_orders,
        total_customers=len(valid_customers),
        total_revenue=max(0.0, total_revenue),
        confirmed_revenue=max(0.0, confirmed_revenue),
        weekly_revenue=max(0.0, weekly_revenue),
        average_order_value=max(0.0, average_order_value),
        low_stock_products=low_stock,
        out_of_stock_products=out_of_stock,
        well_stocked_products=well_stocked,
        sales_data=sales_data,
        orders_by_status=orders_by_status,
        categories=categories,
    )


class BusinessContextService:
    """
    Builds a BusinessContext for a shop from the record store.
    """

    def __init__(
        self,
        repository: Optional[ShopRecordRepository] = None,
        clock: Callable[[], datetime] = _utc_now
    ):
        self.repository = repository or ShopRecordRepository()
        self.clock = clock

    async def _fetch(self, collection: str, shop_id: str) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.repository.find_by_shop, collection, shop_id)

    async def build(self, shop_id: str) -> BusinessContext:
        """
        Fetch products, orders and customers concurrently and aggregate them.

        Args:
            shop_id: Opaque shop identifier

        Returns:
            BusinessContext (the empty fallback if anything fails)
        """
        try:
            products, orders, customers = await asyncio.gather(
                self._fetch("products", shop_id),
                self._fetch("orders", shop_id),
                self._fetch("customers", shop_id),
            )
            context = aggregate_context(products, orders, customers, now=self.clock())

        except Exception as e:
            logger.error(f"Error building business context for shop {shop_id}: {e}", exc_info=True)
            return BusinessContext.empty()

        logger.info(
            f"Context for shop {shop_id}: {context.total_products} products, "
            f"{context.total_orders} orders, {context.total_customers} customers"
        )
        return context
