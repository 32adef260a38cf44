"""
Shop Record Repository - Read-only access to a shop's business records

The advisor consumes three collections per shop (products, orders, customers)
as plain dictionaries. Records are returned raw: numeric coercion and
validation happen in the BusinessContext builder, which must tolerate
malformed rows.

Author: TM3
Date: 2025-12-02
"""
import json
import logging
from typing import Any, Dict, List

from app.core.database import get_db_connection_dict_with_retry

logger = logging.getLogger(__name__)


# Column lists per collection. Order line items live in a JSON column.
_COLLECTION_QUERIES = {
    "products": """
        SELECT id, name, price, stock, category, description, status, created_at
        FROM products
        WHERE shop_id = %s
        ORDER BY created_at
    """,
    "orders": """
        SELECT id, order_number, customer_id, customer_name, items,
               total_amount, status, payment_status, created_at
        FROM orders
        WHERE shop_id = %s
        ORDER BY created_at
    """,
    "customers": """
        SELECT id, name, phone, email, address, created_at
        FROM customers
        WHERE shop_id = %s
        ORDER BY created_at
    """,
}

COLLECTIONS = tuple(_COLLECTION_QUERIES.keys())


class ShopRecordRepository:
    """
    Repository for shop-scoped record reads

    All SQL for the advisor's data needs is centralized here.
    """

    @staticmethod
    def _normalize_row(collection: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Convert a DB row into a plain record dict (decode JSON line items)."""
        record = dict(row)
        if collection == "orders":
            items = record.get("items")
            if isinstance(items, str):
                try:
                    record["items"] = json.loads(items)
                except (json.JSONDecodeError, ValueError):
                    logger.warning(f"Order {record.get('id')} has undecodable items, ignoring them")
                    record["items"] = []
        return record

    def find_by_shop(self, collection: str, shop_id: str) -> List[Dict[str, Any]]:
        """
        Fetch every record of a collection that belongs to a shop

        Args:
            collection: One of 'products', 'orders', 'customers'
            shop_id: Opaque shop identifier

        Returns:
            List of record dicts

        Raises:
            ValueError: If the collection is unknown
        """
        query = _COLLECTION_QUERIES.get(collection)
        if query is None:
            raise ValueError(f"Unknown collection: {collection}")

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(query, (shop_id,))
            rows = cursor.fetchall()
            return [self._normalize_row(collection, row) for row in rows]

        finally:
            cursor.close()
            conn.close()
