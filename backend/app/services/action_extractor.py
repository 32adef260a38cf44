"""
Action Extractor

Derives structured, UI-renderable actions from business state. The primary
path is deterministic and ignores the model's free text: eight independent
rule blocks inspect the context, each contributing zero or more actions.

The context is read defensively (attribute or mapping access, every field
optional), so a partial or mistyped context only drops the affected rule.

extract_text_actions() is the older best-effort miner that pulls numbered
steps out of the model's Bangla answer. It feeds the supplementary
`suggestedActions` display field only and is never merged into the
structured action list.

Author: TM3
Date: 2025-12-02
"""
import logging
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from app.domain.action import PRIORITY_ORDER, URGENCY_ORDER, Action, TextAction
from app.domain.records import (
    get_field,
    item_product_id,
    order_items,
    product_price,
    product_stock,
    record_id,
    to_number,
)

logger = logging.getLogger(__name__)

OUT_OF_STOCK_RESTOCK = 20
LOW_STOCK_LIMIT = 5
SLOW_MOVER_STOCK = 50
SLOW_MOVER_LIMIT = 3
SLOW_MOVER_DISCOUNT = 10  # percent
TOP_SELLER_LIMIT = 3
WEEKLY_REVENUE_FLOOR = 5000
MARKETING_CHANNELS = ["facebook", "instagram", "whatsapp"]
MARKETING_BUDGET = 1000
ENGAGEMENT_MIN_CUSTOMERS = 10
DELIVERY_MIN_ORDERS = 10
DELIVERY_RATE_FLOOR = 70
DELIVERY_TARGET_RATE = 90
EXPANSION_REVENUE = 50000
EXPANSION_MAX_PRODUCTS = 30
EXPANSION_TARGET_PRODUCTS = 50


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _read(context: Any, name: str, default: Any = None) -> Any:
    """Read a context field from an object or a mapping"""
    if isinstance(context, dict):
        value = context.get(name, default)
    else:
        value = getattr(context, name, default)
    return default if value is None else value


def _read_list(context: Any, name: str) -> List[Any]:
    value = _read(context, name, [])
    return value if isinstance(value, list) else []


def _read_number(context: Any, name: str) -> float:
    return to_number(_read(context, name, 0))


def _read_count(context: Any, name: str) -> Optional[float]:
    """Numeric field, or None when missing or not a number"""
    value = _read(context, name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return to_number(value)


def _product_name(product: Any) -> str:
    return str(get_field(product, "name", default=""))


def _as_count(value: float) -> Any:
    return int(value) if float(value).is_integer() else value


class ActionExtractor:
    """
    Rule-based action derivation from a BusinessContext.
    """

    def __init__(self, clock: Callable[[], datetime] = _utc_now):
        self.clock = clock
        self._rules = [
            self._out_of_stock_actions,
            self._low_stock_actions,
            self._slow_mover_actions,
            self._top_seller_actions,
            self._marketing_actions,
            self._engagement_actions,
            self._delivery_actions,
            self._expansion_actions,
        ]

    def extract(
        self,
        response: Optional[str],
        context: Any,
        insights: Optional[Dict[str, Any]] = None
    ) -> List[Action]:
        """
        Build the sorted action list for a context.

        Args:
            response: The model's answer (not used by the rules)
            context: BusinessContext, or any object/mapping with the same fields
            insights: Tool outputs (not used by the rules)

        Returns:
            Actions sorted by priority then urgency; empty list in the worst case
        """
        if context is None or isinstance(context, (str, bytes, int, float, list, tuple)):
            return []

        drafts: List[Dict[str, Any]] = []
        for rule in self._rules:
            try:
                drafts.extend(rule(context))
            except Exception as e:
                logger.warning(f"Skipping action rule {rule.__name__}: {e}")

        # sorted() is stable: equal keys keep rule order
        drafts = sorted(
            drafts,
            key=lambda draft: (PRIORITY_ORDER[draft["priority"]], URGENCY_ORDER[draft["urgency"]])
        )

        now = self.clock()
        stamp = int(now.timestamp() * 1000)
        return [
            Action(id=f"action_{stamp}_{index}", created_at=now, completed=False, **draft)
            for index, draft in enumerate(drafts)
        ]

    # ------------------------------------------------------------------
    # Rule 1: out-of-stock products
    # ------------------------------------------------------------------

    def _out_of_stock_actions(self, context: Any) -> List[Dict[str, Any]]:
        actions = []
        for product in _read_list(context, "out_of_stock_products"):
            name = _product_name(product)
            actions.append({
                "type": "increase_stock",
                "target": {
                    "entity": "product",
                    "productId": record_id(product),
                    "productName": name,
                    "currentStock": _as_count(product_stock(product)),
                    "suggestedStock": OUT_OF_STOCK_RESTOCK,
                },
                "reason": f'"{name}" সম্পূর্ণ শেষ। গ্রাহকরা অর্ডার করতে পারছেন না।',
                "priority": "high",
                "urgency": "urgent",
            })
        return actions

    # ------------------------------------------------------------------
    # Rule 2: low-stock products (first 5)
    # ------------------------------------------------------------------

    def _low_stock_actions(self, context: Any) -> List[Dict[str, Any]]:
        actions = []
        for product in _read_list(context, "low_stock_products")[:LOW_STOCK_LIMIT]:
            name = _product_name(product)
            stock = _as_count(product_stock(product))
            actions.append({
                "type": "increase_stock",
                "target": {
                    "entity": "product",
                    "productId": record_id(product),
                    "productName": name,
                    "currentStock": stock,
                    "suggestedStock": _as_count(max(OUT_OF_STOCK_RESTOCK, stock * 3)),
                },
                "reason": f'"{name}" এর স্টক কম ({stock}টি)। শীঘ্রই শেষ হয়ে যাবে।',
                "priority": "medium",
                "urgency": "soon",
            })
        return actions

    # ------------------------------------------------------------------
    # Rule 3: high stock with no recent sales (first 3) -> discount
    # ------------------------------------------------------------------

    def _slow_mover_actions(self, context: Any) -> List[Dict[str, Any]]:
        products = _read_list(context, "products")
        if not products:
            return []

        sold_ids = {
            item_product_id(item)
            for order in _read_list(context, "recent_orders")
            for item in order_items(order)
        }
        sold_ids.discard(None)

        slow_movers = [
            product for product in products
            if product_stock(product) > SLOW_MOVER_STOCK
            and record_id(product) is not None
            and record_id(product) not in sold_ids
        ]

        actions = []
        for product in slow_movers[:SLOW_MOVER_LIMIT]:
            name = _product_name(product)
            price = product_price(product)
            stock = _as_count(product_stock(product))
            actions.append({
                "type": "adjust_price",
                "target": {
                    "entity": "product",
                    "productId": record_id(product),
                    "productName": name,
                    "currentPrice": price,
                    "suggestedPrice": round(price * (1 - SLOW_MOVER_DISCOUNT / 100), 2),
                    "discount": SLOW_MOVER_DISCOUNT,
                },
                "reason": (
                    f'"{name}" এর অনেক স্টক আছে ({stock}টি) কিন্তু বিক্রয় হচ্ছে না। '
                    f"{SLOW_MOVER_DISCOUNT}% ছাড় দিলে বিক্রয় বাড়বে।"
                ),
                "priority": "medium",
                "urgency": "normal",
            })
        return actions

    # ------------------------------------------------------------------
    # Rule 4: top 3 sellers over the last 7 days -> promote
    # ------------------------------------------------------------------

    def _top_seller_actions(self, context: Any) -> List[Dict[str, Any]]:
        if not _read_list(context, "sales_data"):
            return []

        sales: Counter = Counter()
        for order in _read_list(context, "recent_orders"):
            for item in order_items(order):
                product_id = item_product_id(item)
                quantity = to_number(get_field(item, "quantity"))
                if product_id is not None and quantity > 0:
                    sales[product_id] += quantity

        if not sales:
            return []

        products_by_id = {}
        for product in _read_list(context, "products"):
            product_id = record_id(product)
            if product_id is not None:
                products_by_id.setdefault(product_id, product)

        actions = []
        for product_id, quantity in sales.most_common(TOP_SELLER_LIMIT):
            product = products_by_id.get(product_id)
            if product is None:
                continue
            name = _product_name(product)
            sold = _as_count(quantity)
            actions.append({
                "type": "promote_product",
                "target": {
                    "entity": "product",
                    "productId": product_id,
                    "productName": name,
                    "salesCount": sold,
                },
                "reason": f'"{name}" সবচেয়ে বেশি বিক্রি হয়েছে ({sold} বার)। আরো প্রচার করলে বিক্রয় আরো বাড়বে।',
                "priority": "high",
                "urgency": "normal",
            })
        return actions

    # ------------------------------------------------------------------
    # Rule 5: weak weekly sales -> marketing campaign
    # ------------------------------------------------------------------

    def _marketing_actions(self, context: Any) -> List[Dict[str, Any]]:
        has_sales_data = bool(_read_list(context, "sales_data"))
        weekly_revenue = _read_number(context, "weekly_revenue")

        if has_sales_data and weekly_revenue >= WEEKLY_REVENUE_FLOOR:
            return []

        if has_sales_data:
            reason = f"গত সপ্তাহে মাত্র ৳{weekly_revenue:.0f} বিক্রয় হয়েছে। মার্কেটিং বাড়ালে বিক্রয় বাড়বে।"
        else:
            reason = "গত ৭ দিনে কোনো বিক্রয় নেই। সোশ্যাল মিডিয়ায় প্রচার শুরু করুন।"

        return [{
            "type": "start_marketing",
            "target": {
                "entity": "shop",
                "channels": list(MARKETING_CHANNELS),
                "budget": MARKETING_BUDGET,
            },
            "reason": reason,
            "priority": "high",
            "urgency": "urgent",
        }]

    # ------------------------------------------------------------------
    # Rule 6: many customers, few repeat orders -> loyalty offer
    # ------------------------------------------------------------------

    def _engagement_actions(self, context: Any) -> List[Dict[str, Any]]:
        total_customers = _read_count(context, "total_customers")
        total_orders = _read_count(context, "total_orders")
        if total_customers is None or total_orders is None:
            return []

        if not (total_customers > ENGAGEMENT_MIN_CUSTOMERS and total_orders < total_customers * 2):
            return []

        count = _as_count(total_customers)
        return [{
            "type": "engage_customers",
            "target": {
                "entity": "customers",
                "count": count,
                "offerType": "loyalty_discount",
            },
            "reason": f"{count} জন গ্রাহক আছেন কিন্তু রিপিট অর্ডার কম। লয়ালটি অফার দিলে তারা আবার কিনবেন।",
            "priority": "medium",
            "urgency": "normal",
        }]

    # ------------------------------------------------------------------
    # Rule 7: low delivery rate -> speed up fulfilment
    # ------------------------------------------------------------------

    def _delivery_actions(self, context: Any) -> List[Dict[str, Any]]:
        total_orders = _read_count(context, "total_orders")
        if total_orders is None or total_orders <= DELIVERY_MIN_ORDERS:
            return []

        status_counts = _read(context, "orders_by_status")
        if not isinstance(status_counts, dict) or "delivered" not in status_counts:
            return []
        delivered = to_number(status_counts.get("delivered"))
        pending = _as_count(to_number(status_counts.get("pending")))

        delivery_rate = delivered / total_orders * 100
        if delivery_rate >= DELIVERY_RATE_FLOOR:
            return []

        return [{
            "type": "improve_delivery",
            "target": {
                "entity": "operations",
                "pendingOrders": pending,
                "currentRate": round(delivery_rate, 2),
                "targetRate": DELIVERY_TARGET_RATE,
            },
            "reason": f"ডেলিভারি হার মাত্র {delivery_rate:.0f}%। {pending}টি অর্ডার অপেক্ষমাণ। দ্রুত ডেলিভার করুন।",
            "priority": "high",
            "urgency": "urgent",
        }]

    # ------------------------------------------------------------------
    # Rule 8: strong revenue, small catalog -> add products
    # ------------------------------------------------------------------

    def _expansion_actions(self, context: Any) -> List[Dict[str, Any]]:
        total_revenue = _read_number(context, "total_revenue")
        total_products = _read_number(context, "total_products")

        if not (total_revenue > EXPANSION_REVENUE and total_products < EXPANSION_MAX_PRODUCTS):
            return []

        categories = [c for c in _read_list(context, "categories") if isinstance(c, str)]
        return [{
            "type": "expand_inventory",
            "target": {
                "entity": "shop",
                "currentProducts": _as_count(total_products),
                "suggestedProducts": EXPANSION_TARGET_PRODUCTS,
                "categories": categories,
            },
            "reason": f"আপনার ব্যবসা ভালো চলছে (৳{total_revenue:.0f} বিক্রয়)। নতুন পণ্য যোগ করলে আরো বেশি বিক্রয় হবে।",
            "priority": "low",
            "urgency": "normal",
        }]


# ============================================================================
# Text-mined action steps (display only)
# ============================================================================

ACTION_SECTION = re.compile(r"\*\*কর্মপদক্ষেপ[:\s]*\*\*[\s\S]*$")
NUMBERED_STEP = re.compile(r"[১২৩৪৫৬৭৮৯০1-9]\.\s*([^\n]+)")
RECOMMENDATION_SECTION = re.compile(r"\*\*সুপারিশ[:\s]*\*\*([\s\S]*?)(?=\*\*|$)")
SENTENCE_SPLIT = re.compile(r"[।\n]")

# Checked in order; first match wins
CATEGORY_KEYWORDS = [
    ("inventory", ("স্টক", "পণ্য", "সরবরাহ")),
    ("marketing", ("মার্কেটিং", "প্রচার", "বিজ্ঞাপন", "সোশ্যাল")),
    ("customer", ("গ্রাহক", "সেবা", "যোগাযোগ")),
    ("sales", ("বিক্রয়", "অফার", "ছাড়")),
    ("operations", ("ডেলিভারি", "অর্ডার", "প্রসেস")),
    ("financial", ("টাকা", "আয়", "খরচ", "লাভ")),
]


def categorize_action(action_text: str) -> str:
    text = action_text.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return "general"


def extract_text_actions(response: Optional[str]) -> List[TextAction]:
    """
    Mine numbered action steps from the model's answer.

    Reads the "কর্মপদক্ষেপ" section first; without one, takes up to three
    sentences from the "সুপারিশ" section.
    """
    if not response:
        return []

    actions: List[TextAction] = []

    section = ACTION_SECTION.search(response)
    if section:
        for match in NUMBERED_STEP.finditer(section.group(0)):
            text = match.group(1).strip()
            if text:
                actions.append(TextAction(
                    priority=len(actions) + 1,
                    action=text,
                    category=categorize_action(text),
                ))

    if actions:
        return actions

    recommendation = RECOMMENDATION_SECTION.search(response)
    if recommendation:
        sentences = [s for s in SENTENCE_SPLIT.split(recommendation.group(1)) if len(s.strip()) > 10]
        for sentence in sentences[:3]:
            text = sentence.replace("**", "").strip()
            if text and "সুপারিশ" not in text:
                actions.append(TextAction(
                    priority=len(actions) + 1,
                    action=text,
                    category=categorize_action(text),
                ))

    return actions
