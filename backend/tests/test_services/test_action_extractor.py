"""
Unit tests for ActionExtractor and the text-mined action steps

Author: TM3
Date: 2025-12-02
"""
import pytest

from app.domain.action import PRIORITY_ORDER, URGENCY_ORDER
from app.services.action_extractor import ActionExtractor, categorize_action, extract_text_actions
from app.services.business_context_service import aggregate_context
from conftest import FROZEN_NOW, GOOD_RESPONSE


@pytest.fixture
def extractor(frozen_clock):
    return ActionExtractor(clock=frozen_clock)


class TestActionExtractor:
    """Test deterministic action rules"""

    def test_sample_shop_actions_in_sorted_order(self, extractor, sample_context):
        """Test rule output for the sample shop, sorted by priority then urgency"""
        # Act
        actions = extractor.extract("", sample_context, {})

        # Assert
        assert [(a.type, a.target.get("productId")) for a in actions] == [
            ("increase_stock", "p1"),
            ("start_marketing", None),
            ("promote_product", "p4"),
            ("promote_product", "p2"),
            ("increase_stock", "p2"),
            ("adjust_price", "p3"),
        ]

    def test_ids_and_defaults(self, extractor, sample_context):
        actions = extractor.extract("", sample_context, {})
        stamp = int(FROZEN_NOW.timestamp() * 1000)

        assert [a.id for a in actions] == [f"action_{stamp}_{i}" for i in range(len(actions))]
        assert all(a.completed is False for a in actions)
        assert all(a.created_at == FROZEN_NOW for a in actions)

    def test_actions_are_sorted(self, extractor, sample_context):
        """No adjacent pair is out of (priority, urgency) order"""
        actions = extractor.extract("", sample_context, {})
        keys = [(PRIORITY_ORDER[a.priority], URGENCY_ORDER[a.urgency]) for a in actions]

        assert keys == sorted(keys)

    def test_out_of_stock_target(self, extractor, sample_context):
        action = extractor.extract("", sample_context, {})[0]

        assert action.priority == "high"
        assert action.urgency == "urgent"
        assert action.target == {
            "entity": "product",
            "productId": "p1",
            "productName": "চাল",
            "currentStock": 0,
            "suggestedStock": 20,
        }

    def test_low_stock_suggested_quantity(self, extractor):
        products = [
            {"id": "a", "name": "A", "stock": 3},
            {"id": "b", "name": "B", "stock": 9},
        ]
        context = aggregate_context(products, [], [], now=FROZEN_NOW)

        restocks = [a for a in extractor.extract("", context, {}) if a.type == "increase_stock"]

        assert [a.target["suggestedStock"] for a in restocks] == [20, 27]
        assert all(a.urgency == "soon" for a in restocks)

    def test_low_stock_limited_to_five(self, extractor):
        products = [{"id": f"p{i}", "name": f"P{i}", "stock": 2} for i in range(8)]
        context = aggregate_context(products, [], [], now=FROZEN_NOW)

        restocks = [a for a in extractor.extract("", context, {}) if a.type == "increase_stock"]

        assert len(restocks) == 5

    def test_slow_mover_discount(self, extractor, sample_context):
        action = [a for a in extractor.extract("", sample_context, {}) if a.type == "adjust_price"][0]

        assert action.target["currentPrice"] == 180
        assert action.target["suggestedPrice"] == 162.0
        assert action.target["discount"] == 10

    def test_empty_shop_only_marketing(self, extractor, empty_context):
        """Test an empty shop gets no stock, promotion or delivery actions"""
        actions = extractor.extract("", empty_context, {})

        assert [a.type for a in actions] == ["start_marketing"]
        assert actions[0].target == {
            "entity": "shop",
            "channels": ["facebook", "instagram", "whatsapp"],
            "budget": 1000,
        }
        assert actions[0].reason == "গত ৭ দিনে কোনো বিক্রয় নেই। সোশ্যাল মিডিয়ায় প্রচার শুরু করুন।"

    def test_weak_week_marketing_reason(self, extractor):
        orders = [{"id": "o", "total_amount": 3000, "status": "delivered", "created_at": "2025-12-01T00:00:00Z"}]
        context = aggregate_context([], orders, [], now=FROZEN_NOW)

        marketing = [a for a in extractor.extract("", context, {}) if a.type == "start_marketing"]

        assert len(marketing) == 1
        assert "৳3000" in marketing[0].reason

    def test_strong_week_no_marketing(self, extractor):
        orders = [{"id": "o", "total_amount": 6000, "created_at": "2025-12-01T00:00:00Z"}]
        context = aggregate_context([], orders, [], now=FROZEN_NOW)

        assert "start_marketing" not in [a.type for a in extractor.extract("", context, {})]

    def test_engagement_delivery_and_expansion(self, extractor):
        """Test the shop-level rules for a busy shop with a small catalog"""
        # Arrange: 12 customers, 20 orders (10 delivered, 6 pending), revenue 60000
        customers = [{"id": f"c{i}"} for i in range(12)]
        orders = (
            [{"id": f"d{i}", "total_amount": 3000, "status": "delivered"} for i in range(10)]
            + [{"id": f"q{i}", "total_amount": 3000, "status": "pending"} for i in range(6)]
            + [{"id": f"r{i}", "total_amount": 3000, "status": "processing"} for i in range(4)]
        )
        products = [{"id": "p", "name": "P", "stock": 30, "category": "খাদ্য"}]
        context = aggregate_context(products, orders, customers, now=FROZEN_NOW)

        # Act
        by_type = {a.type: a for a in extractor.extract("", context, {})}

        # Assert
        assert by_type["engage_customers"].target == {
            "entity": "customers",
            "count": 12,
            "offerType": "loyalty_discount",
        }
        assert by_type["improve_delivery"].target == {
            "entity": "operations",
            "pendingOrders": 6,
            "currentRate": 50.0,
            "targetRate": 90,
        }
        assert by_type["expand_inventory"].target == {
            "entity": "shop",
            "currentProducts": 1,
            "suggestedProducts": 50,
            "categories": ["খাদ্য"],
        }
        assert by_type["expand_inventory"].priority == "low"

    def test_mapping_context_with_missing_fields(self, extractor):
        """Test a partial dict context degrades instead of raising"""
        context = {
            "out_of_stock_products": [{"_id": "x", "name": "X"}],
            "total_customers": "many",
            "orders_by_status": "broken",
            "total_orders": 20,
        }

        actions = extractor.extract("", context, {})

        types = [a.type for a in actions]
        assert types.count("increase_stock") == 1
        assert actions[0].target["productId"] == "x"
        assert "start_marketing" in types
        assert "improve_delivery" not in types
        assert "engage_customers" not in types

    @pytest.mark.parametrize("context", [
        {"total_orders": 15, "weekly_revenue": 9000, "sales_data": [{"date": "2025-12-01"}]},
        {"total_orders": 15, "orders_by_status": {"pending": 3}},
        {"total_orders": "15", "orders_by_status": {"delivered": 1, "pending": 3}},
    ])
    def test_delivery_rule_skipped_without_delivery_counts(self, extractor, context):
        """Test a missing or mistyped field drops the delivery action instead of assuming zero"""
        types = [a.type for a in extractor.extract("", context, {})]

        assert "improve_delivery" not in types

    @pytest.mark.parametrize("context", [
        {"total_customers": 12},
        {"total_customers": 12, "total_orders": None},
        {"total_customers": 12, "total_orders": True},
    ])
    def test_engagement_rule_skipped_without_order_count(self, extractor, context):
        types = [a.type for a in extractor.extract("", context, {})]

        assert "engage_customers" not in types

    def test_mapping_context_with_complete_shop_fields(self, extractor):
        """Test the shop-level rules still fire from a plain dict with all fields"""
        context = {
            "total_customers": 12,
            "total_orders": 15,
            "orders_by_status": {"delivered": 3, "pending": 9},
            "weekly_revenue": 9000,
            "sales_data": [{"date": "2025-12-01"}],
        }

        by_type = {a.type: a for a in extractor.extract("", context, {})}

        assert by_type["engage_customers"].target["count"] == 12
        assert by_type["improve_delivery"].target == {
            "entity": "operations",
            "pendingOrders": 9,
            "currentRate": 20.0,
            "targetRate": 90,
        }

    @pytest.mark.parametrize("bad_context", [None, "text", 42, []])
    def test_unusable_context_returns_empty(self, extractor, bad_context):
        assert extractor.extract("", bad_context, {}) == []

    def test_deterministic_for_same_clock(self, extractor, sample_context):
        first = [a.to_dict() for a in extractor.extract("", sample_context, {})]
        second = [a.to_dict() for a in extractor.extract("", sample_context, {})]

        assert first == second


class TestTextActions:
    """Test the legacy text miner"""

    def test_numbered_steps_from_action_section(self):
        steps = extract_text_actions(GOOD_RESPONSE)

        assert [(s.priority, s.action, s.category) for s in steps] == [
            (1, "আজই চাল এর স্টক পূরণ করুন", "inventory"),
            (2, "ফেসবুকে বিজ্ঞাপন দিন", "marketing"),
            (3, "গ্রাহকদের অফার পাঠান", "customer"),
        ]
        assert all(s.completed is False for s in steps)

    def test_recommendation_fallback(self):
        response = (
            "**সুপারিশ:**\n"
            "ডেলিভারি দ্রুত করার জন্য নতুন কুরিয়ার নিন। খরচ কমাতে পাইকারি কিনুন।\n"
            "**শেষ কথা**"
        )

        steps = extract_text_actions(response)

        assert [s.action for s in steps] == [
            "ডেলিভারি দ্রুত করার জন্য নতুন কুরিয়ার নিন",
            "খরচ কমাতে পাইকারি কিনুন",
        ]
        assert [s.category for s in steps] == ["operations", "financial"]

    def test_no_sections(self):
        assert extract_text_actions("ধন্যবাদ") == []
        assert extract_text_actions("") == []
        assert extract_text_actions(None) == []

    @pytest.mark.parametrize("text,category", [
        ("স্টক বাড়ান", "inventory"),
        ("প্রচার চালান", "marketing"),
        ("অফার দিন", "sales"),
        ("লাভ হিসাব করুন", "financial"),
        ("দোকান পরিষ্কার রাখুন", "general"),
    ])
    def test_categorize_action(self, text, category):
        assert categorize_action(text) == category
