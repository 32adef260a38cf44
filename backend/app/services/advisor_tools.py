"""
Advisor Tools - Default catalog for the MunshiJi advisor

This module defines the 7 tools registered at startup:
1. business_insights - Advice from headline stats
2. sales_trend - 7-day trend and forecast
3. inventory_advice - Stock health (high priority when stock problems exist)
4. order_report - Order performance report
5. product_description - Product copy (needs params)
6. customer_message - Customer SMS (needs params)
7. chat_assistant - General conversation (fallback)

Author: TM3
Date: 2025-12-02
"""
from typing import Any, Dict, Optional

from app.domain.business_context import BusinessContext
from app.domain.tool import make_tool
from app.services.ai_service import AIService
from app.services.tool_registry import ToolRegistry

DESCRIPTION_KEYWORDS = ("বর্ণনা", "description", "লিখ", "write")
MESSAGE_KEYWORDS = ("বার্তা", "message", "sms", "পাঠা", "send")


def _query_mentions(query: str, keywords) -> bool:
    query_lower = (query or "").lower()
    return any(keyword.lower() in query_lower for keyword in keywords)


def _has_stock_problem(context: BusinessContext) -> bool:
    return context.has_low_stock or context.has_out_of_stock


def build_default_registry(ai_service: AIService, tool_timeout: Optional[float] = None) -> ToolRegistry:
    """
    Build and freeze the registry with the default tool catalog.

    Args:
        ai_service: Advisory generators the tools delegate to
        tool_timeout: Per-tool execution timeout in seconds (None = no limit)

    Returns:
        Frozen ToolRegistry
    """
    registry = ToolRegistry(tool_timeout=tool_timeout)

    # ========================================================================
    # TOOL 1: business_insights
    # ========================================================================

    async def business_insights(context: BusinessContext, params: Dict[str, Any]) -> str:
        stats = {
            "totalSales": context.total_revenue,
            "totalOrders": context.total_orders,
            "totalProducts": context.total_products,
            "totalCustomers": context.total_customers,
            "averageOrderValue": f"{context.average_order_value:.2f}",
        }
        return await ai_service.generate_business_insights(stats)

    registry.register(make_tool(
        id="business_insights",
        display_name="ব্যবসা বিশ্লেষণ",
        icon="📊",
        description="ব্যবসায়িক তথ্যের উপর ভিত্তি করে পরামর্শ এবং অন্তর্দৃষ্টি প্রদান করে",
        keywords=["বিক্রয়", "sales", "ব্যবসা", "business", "বিশ্লেষণ", "analysis", "অবস্থা", "status", "কেমন", "how"],
        should_execute=lambda context, query: context.has_orders or context.has_products,
        execute=business_insights,
        priority="medium",
        reason="ব্যবসায়িক বিশ্লেষণ প্রয়োজন",
    ))

    # ========================================================================
    # TOOL 2: sales_trend
    # ========================================================================

    async def sales_trend(context: BusinessContext, params: Dict[str, Any]) -> str:
        if not context.sales_data:
            return "গত ৭ দিনে পর্যাপ্ত বিক্রয় তথ্য নেই।"
        return await ai_service.analyze_sales_trend(context.sales_data)

    registry.register(make_tool(
        id="sales_trend",
        display_name="বিক্রয় ট্রেন্ড",
        icon="📈",
        description="বিক্রয় প্রবণতা বিশ্লেষণ করে এবং পূর্বাভাস প্রদান করে",
        keywords=["ট্রেন্ড", "trend", "প্রবণতা", "পূর্বাভাস", "forecast", "ভবিষ্যত", "future", "গত", "last", "সপ্তাহ", "week", "দিন", "day"],
        should_execute=lambda context, query: context.has_sales_data,
        execute=sales_trend,
        priority="medium",
        reason="বিক্রয় প্রবণতা বিশ্লেষণ প্রয়োজন",
    ))

    # ========================================================================
    # TOOL 3: inventory_advice
    # ========================================================================

    async def inventory_advice(context: BusinessContext, params: Dict[str, Any]) -> str:
        if not context.products:
            return "এখনও কোনো পণ্য যোগ করা হয়নি।"
        return await ai_service.generate_inventory_advice(context.products)

    registry.register(make_tool(
        id="inventory_advice",
        display_name="ইনভেন্টরি পরামর্শ",
        icon="📦",
        description="ইনভেন্টরি ব্যবস্থাপনার জন্য স্মার্ট পরামর্শ প্রদান করে",
        keywords=["স্টক", "stock", "ইনভেন্টরি", "inventory", "কম", "low", "শেষ", "finish", "পণ্য", "product"],
        should_execute=lambda context, query: context.has_products,
        execute=inventory_advice,
        priority=lambda context: "high" if _has_stock_problem(context) else "medium",
        reason=lambda context: (
            "জরুরি: স্টক সমস্যা সনাক্ত" if _has_stock_problem(context) else "ইনভেন্টরি পরামর্শ প্রয়োজন"
        ),
    ))

    # ========================================================================
    # TOOL 4: order_report
    # ========================================================================

    async def order_report(context: BusinessContext, params: Dict[str, Any]) -> str:
        if not context.orders:
            return "এখনও কোনো অর্ডার নেই।"
        return await ai_service.generate_order_report(context.orders, params.get("period_label") or "সব সময়")

    registry.register(make_tool(
        id="order_report",
        display_name="অর্ডার রিপোর্ট",
        icon="📋",
        description="অর্ডারের বিস্তারিত রিপোর্ট তৈরি করে",
        keywords=["রিপোর্ট", "report", "প্রতিবেদন", "অর্ডার", "order", "মাস", "month", "সপ্তাহ", "week"],
        should_execute=lambda context, query: context.has_orders,
        execute=order_report,
        priority="low",
        reason="অর্ডার রিপোর্ট তৈরির অনুরোধ",
    ))

    # ========================================================================
    # TOOL 5: product_description
    # ========================================================================

    async def product_description(context: BusinessContext, params: Dict[str, Any]) -> str:
        if params.get("product_name") and params.get("category"):
            return await ai_service.generate_product_description(
                params["product_name"],
                params["category"],
                params.get("price") or 0,
                params.get("features") or [],
            )
        return "পণ্যের বর্ণনা তৈরি করতে, অনুগ্রহ করে পণ্যের নাম, ক্যাটাগরি এবং মূল্য উল্লেখ করুন।"

    registry.register(make_tool(
        id="product_description",
        display_name="পণ্য বর্ণনা",
        icon="📝",
        description="পণ্যের জন্য আকর্ষণীয় বাংলা বর্ণনা তৈরি করে",
        keywords=["পণ্য", "product", "বর্ণনা", "description", "লিখ", "write", "তৈরি", "create"],
        should_execute=lambda context, query: _query_mentions(query, DESCRIPTION_KEYWORDS),
        execute=product_description,
        priority="medium",
        reason="পণ্যের বর্ণনা তৈরির অনুরোধ",
        requires_params=True,
    ))

    # ========================================================================
    # TOOL 6: customer_message
    # ========================================================================

    async def customer_message(context: BusinessContext, params: Dict[str, Any]) -> str:
        if params.get("customer_name") and params.get("message_type"):
            return await ai_service.generate_customer_message(
                params["customer_name"],
                params["message_type"],
                params.get("message_context") or {},
            )
        return "গ্রাহক বার্তা তৈরি করতে, গ্রাহকের নাম এবং বার্তার ধরন (payment reminder, promotional ইত্যাদি) উল্লেখ করুন।"

    registry.register(make_tool(
        id="customer_message",
        display_name="গ্রাহক বার্তা",
        icon="💬",
        description="গ্রাহকদের জন্য পেশাদার SMS/বার্তা তৈরি করে",
        keywords=["গ্রাহক", "customer", "বার্তা", "message", "SMS", "sms", "পাঠা", "send", "reminder", "রিমাইন্ডার"],
        should_execute=lambda context, query: _query_mentions(query, MESSAGE_KEYWORDS),
        execute=customer_message,
        priority="low",
        reason="গ্রাহক বার্তা তৈরির অনুরোধ",
        requires_params=True,
    ))

    # ========================================================================
    # TOOL 7: chat_assistant (fallback)
    # ========================================================================

    async def chat_assistant(context: BusinessContext, params: Dict[str, Any]) -> Optional[str]:
        user_message = params.get("user_message")
        if not user_message:
            return None
        return await ai_service.chat_with_ai(user_message, params.get("conversation_history") or [])

    registry.register(make_tool(
        id="chat_assistant",
        display_name="AI চ্যাট",
        icon="💭",
        description="সাধারণ ব্যবসায়িক প্রশ্নের উত্তর দেয়",
        execute=chat_assistant,
        priority="low",
        reason="সাধারণ ব্যবসায়িক পরামর্শ",
        is_fallback=True,
    ))

    return registry.freeze()
