"""
Raw Record Helpers

Shop records come from the record store as loosely-shaped dicts. These helpers
read fields defensively so aggregation never fails on a malformed row.

Field names accepted:
    product: id | _id, name, price, stock, category
    order:   id | _id, total_amount | totalAmount, status,
             created_at | createdAt, items[]
    item:    product_id | productId | product, quantity

Author: TM3
Date: 2025-12-02
"""
import math
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce a stored value to float; missing, non-numeric or non-finite -> default"""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def get_field(record: Any, *names: str, default: Any = None) -> Any:
    """First present, non-None field among names (dict records only)"""
    if not isinstance(record, dict):
        return default
    for name in names:
        value = record.get(name)
        if value is not None:
            return value
    return default


def record_id(record: Any) -> Optional[str]:
    """String form of a record id, or None"""
    value = get_field(record, "id", "_id")
    return str(value) if value is not None else None


def product_stock(product: Any) -> float:
    return max(0.0, to_number(get_field(product, "stock")))


def product_price(product: Any) -> float:
    return max(0.0, to_number(get_field(product, "price")))


def order_amount(order: Any) -> float:
    return to_number(get_field(order, "total_amount", "totalAmount"))


def order_status(order: Any) -> Optional[str]:
    status = get_field(order, "status")
    return status if isinstance(status, str) else None


def order_items(order: Any) -> list:
    items = get_field(order, "items", default=[])
    return items if isinstance(items, list) else []


def item_product_id(item: Any) -> Optional[str]:
    value = get_field(item, "product_id", "productId", "product")
    return str(value) if value is not None else None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored creation timestamp into an aware UTC datetime.

    Accepts datetime, date and ISO-8601 strings (a trailing 'Z' is allowed).
    Naive values are treated as UTC. Returns None for anything unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
