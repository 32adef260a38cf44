"""
AI Service - Advisory generators for Bangladeshi SME shops

Each method builds one focused prompt and sends it through the LLM gateway:
1. generate_product_description - Persuasive Bangla product copy
2. generate_business_insights - Advice from headline stats
3. generate_customer_message - SMS templates (confirmation, reminder, promo)
4. analyze_sales_trend - 7-day trend + next-week forecast
5. generate_inventory_advice - Restock and stock-health advice
6. chat_with_ai - General business conversation
7. generate_order_report - Order performance report

Author: TM3
Date: 2025-12-02
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from app.domain.business_context import DailySales
from app.domain.records import get_field, order_amount, order_status, product_stock
from app.services.llm_gateway import LLMGateway

logger = logging.getLogger(__name__)

CHAT_SYSTEM_PROMPT = """You are "AI মুন্সিজি - আপনার ব্যবসার সহযোগী" (AI Munsiji - Your Business Partner), an AI helper for Bangladeshi SME business owners. You help with:
- ব্যবসায়িক পরামর্শ (Business advice)
- পণ্য ব্যবস্থাপনা (Product management)
- গ্রাহক সেবা (Customer service)
- বিক্রয় কৌশল (Sales strategies)
- আর্থিক পরিকল্পনা (Financial planning)

Always respond in Bangla, be helpful, professional, and provide actionable advice for small business owners in Bangladesh."""

# Customer SMS prompt per message type; {name} and context keys are filled in
CUSTOMER_MESSAGE_PROMPTS = {
    "order_confirmation": "{name} নামের গ্রাহকের জন্য অর্ডার নিশ্চিতকরণ SMS তৈরি করুন। অর্ডার নম্বর: {orderNumber}, মোট: ৳{total}। বার্তাটি সংক্ষিপ্ত (১৬০ অক্ষরের মধ্যে) এবং বন্ধুত্বপূর্ণ হতে হবে।",
    "payment_reminder": "{name} নামের গ্রাহকের জন্য পেমেন্ট রিমাইন্ডার SMS তৈরি করুন। বকেয়া: ৳{amount}। বার্তাটি ভদ্র এবং পেশাদার হতে হবে (১৬০ অক্ষরের মধ্যে)।",
    "promotional": "{name} নামের গ্রাহকের জন্য প্রচারমূলক SMS তৈরি করুন। অফার: {offer}। বার্তাটি আকর্ষণীয় এবং সংক্ষিপ্ত হতে হবে (১৬০ অক্ষরের মধ্যে)।",
}


class _DefaultDict(dict):
    def __missing__(self, key):
        return ""


def _format_amount(value: float) -> str:
    return f"{value:.0f}" if float(value).is_integer() else f"{value:.2f}"


class AIService:
    """
    Advisory generators used by the tool catalog.
    """

    def __init__(self, gateway: LLMGateway):
        self.gateway = gateway

    async def generate_product_description(
        self,
        product_name: str,
        category: str,
        price: float = 0,
        features: Optional[Sequence[str]] = None
    ) -> str:
        """Generate a 3-5 line persuasive Bangla product description."""
        features_line = f"\nবৈশিষ্ট্য: {', '.join(features)}" if features else ""
        messages = [
            {
                "role": "system",
                "content": "You are a helpful assistant for Bangladeshi SME businesses. Generate product descriptions in Bangla language that are persuasive and SEO-friendly."
            },
            {
                "role": "user",
                "content": f"""পণ্যের নাম: {product_name}
ক্যাটাগরি: {category}
মূল্য: ৳{price}{features_line}

এই পণ্যের জন্য একটি আকর্ষণীয় এবং বিক্রয়োপযোগী বাংলা বর্ণনা তৈরি করুন (৩-৫ লাইন)।"""
            }
        ]
        return await self.gateway.complete(messages)

    async def generate_business_insights(self, stats: Dict[str, Any]) -> str:
        """
        Generate 3-5 insights from headline business stats.

        Args:
            stats: totalSales, totalOrders, totalProducts, totalCustomers, averageOrderValue
        """
        messages = [
            {
                "role": "system",
                "content": "You are a business analyst for Bangladeshi SMEs. Provide actionable insights in Bangla based on business data."
            },
            {
                "role": "user",
                "content": f"""ব্যবসায়িক তথ্য:
- মোট বিক্রয়: ৳{stats.get('totalSales') or 0}
- মোট অর্ডার: {stats.get('totalOrders') or 0}
- মোট পণ্য: {stats.get('totalProducts') or 0}
- মোট গ্রাহক: {stats.get('totalCustomers') or 0}
- গড় অর্ডার মূল্য: ৳{stats.get('averageOrderValue') or 0}

এই তথ্যের উপর ভিত্তি করে ৩-৫টি ব্যবসায়িক পরামর্শ এবং অন্তর্দৃষ্টি প্রদান করুন (বাংলায়)।"""
            }
        ]
        return await self.gateway.complete(messages)

    async def generate_customer_message(
        self,
        customer_name: str,
        message_type: str,
        context: Optional[Dict[str, Any]] = None
    ) -> str:
        """Generate a short customer SMS for the given message type."""
        template = CUSTOMER_MESSAGE_PROMPTS.get(message_type)
        if template:
            prompt = template.format_map(_DefaultDict(context or {}, name=customer_name))
        else:
            prompt = f"{customer_name} নামের গ্রাহকের জন্য একটি সাধারণ বার্তা তৈরি করুন।"

        messages = [
            {
                "role": "system",
                "content": "You are a marketing expert for Bangladeshi businesses. Generate customer messages in Bangla that are professional, friendly, and effective."
            },
            {"role": "user", "content": prompt}
        ]
        return await self.gateway.complete(messages, temperature=0.8)

    async def analyze_sales_trend(self, sales_data: List[DailySales]) -> str:
        """Analyze the last 7 days of sales and forecast the next week."""
        lines = "\n".join(
            f"দিন {i + 1} ({day.date}): ৳{_format_amount(day.amount)}, অর্ডার: {day.count}"
            for i, day in enumerate(sales_data)
        )
        messages = [
            {
                "role": "system",
                "content": "You are a data analyst specializing in Bangladeshi SME sales patterns. Analyze trends and provide predictions in Bangla."
            },
            {
                "role": "user",
                "content": f"""বিক্রয় তথ্য (গত ৭ দিন):
{lines}

এই তথ্যের উপর ভিত্তি করে:
1. বিক্রয় প্রবণতা বিশ্লেষণ করুন
2. পরবর্তী সপ্তাহের পূর্বাভাস দিন
3. উন্নতির জন্য পরামর্শ দিন

উত্তর বাংলায় প্রদান করুন।"""
            }
        ]
        return await self.gateway.complete(messages)

    async def generate_inventory_advice(self, products: List[Dict[str, Any]]) -> str:
        """Generate restock advice from the product list."""
        low_stock = [p for p in products if product_stock(p) < 10]
        out_of_stock = [p for p in products if product_stock(p) == 0]

        low_names = ", ".join(str(get_field(p, "name", default="")) for p in low_stock)
        out_names = ", ".join(str(get_field(p, "name", default="")) for p in out_of_stock)

        content = f"""ইনভেন্টরি পরিস্থিতি:
- মোট পণ্য: {len(products)}
- কম স্টক (১০-এর নিচে): {len(low_stock)}টি
- স্টক শেষ: {len(out_of_stock)}টি"""
        if low_stock:
            content += f"\n\nকম স্টক পণ্য: {low_names}"
        if out_of_stock:
            content += f"\n\nস্টক শেষ পণ্য: {out_names}"
        content += "\n\nইনভেন্টরি ব্যবস্থাপনার জন্য পরামর্শ এবং সতর্কতা প্রদান করুন (বাংলায়)।"

        messages = [
            {
                "role": "system",
                "content": "You are an inventory management expert for Bangladeshi SMEs. Provide practical advice in Bangla."
            },
            {"role": "user", "content": content}
        ]
        return await self.gateway.complete(messages)

    async def chat_with_ai(
        self,
        user_message: str,
        conversation_history: Optional[List[Dict[str, str]]] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        """
        General business chat.

        Args:
            user_message: Latest user message
            conversation_history: Previous {"role", "content"} turns, forwarded as-is
            system_prompt: Overrides the default assistant persona
        """
        messages = [{"role": "system", "content": system_prompt or CHAT_SYSTEM_PROMPT}]
        messages.extend(conversation_history or [])
        messages.append({"role": "user", "content": user_message})
        return await self.gateway.complete(messages, temperature=0.7)

    async def generate_order_report(self, orders: List[Dict[str, Any]], period: str) -> str:
        """Generate an order performance report for a period label."""
        total_revenue = sum(max(0.0, order_amount(o)) for o in orders)
        avg_order_value = total_revenue / len(orders) if orders else 0.0
        statuses = [order_status(o) for o in orders]

        messages = [
            {
                "role": "system",
                "content": "You are a business report writer for Bangladeshi SMEs. Generate comprehensive reports in Bangla."
            },
            {
                "role": "user",
                "content": f"""অর্ডার রিপোর্ট ({period}):
- মোট অর্ডার: {len(orders)}টি
- মোট আয়: ৳{_format_amount(total_revenue)}
- গড় অর্ডার মূল্য: ৳{avg_order_value:.2f}
- সফল অর্ডার: {statuses.count('delivered')}টি
- বাতিল অর্ডার: {statuses.count('cancelled')}টি
- পেন্ডিং অর্ডার: {statuses.count('pending')}টি

এই তথ্যের উপর ভিত্তি করে একটি বিস্তারিত রিপোর্ট তৈরি করুন যাতে থাকবে:
1. পারফরম্যান্স সারাংশ
2. মূল অন্তর্দৃষ্টি
3. উন্নতির সুযোগ
4. পরবর্তী পদক্ষেপের পরামর্শ

বাংলায় প্রদান করুন।"""
            }
        ]
        return await self.gateway.complete(messages)
