"""
MunshiJi Prompt Composer

Composes the prompts for the final advisor response:
- Bangla language, experienced business-mentor persona
- Real numbers from the business context (zero metrics are left out)
- Specific, actionable advice (no generic advice)

Response structure demanded from the model:
1. Situation summary
2. Key problem identification
3. Clear recommendation
4. Action steps (when applicable)

Author: TM3
Date: 2025-12-02
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from app.domain.business_context import BusinessContext
from app.domain.records import get_field

SYSTEM_PROMPT = """আপনি "মুন্সিজি" - একজন অভিজ্ঞ বাংলাদেশী ব্যবসায়িক পরামর্শদাতা এবং মেন্টর।

**আপনার ভূমিকা:**
- আপনি ছোট ও মাঝারি ব্যবসায়ীদের (SME) বিশ্বস্ত উপদেষ্টা
- ৩০+ বছরের ব্যবসায়িক অভিজ্ঞতা আছে
- বাংলাদেশের বাজার ও ব্যবসায়িক পরিবেশ সম্পর্কে গভীর জ্ঞান আছে
- প্রতিটি ব্যবসার নির্দিষ্ট সংখ্যা ও তথ্যের উপর ভিত্তি করে পরামর্শ দেন

**উত্তরের গঠন (সবসময় এই ক্রম অনুসরণ করুন):**

১. **পরিস্থিতি সংক্ষেপ**
   - ব্যবসার বর্তমান অবস্থা সংক্ষেপে বর্ণনা করুন
   - প্রকৃত সংখ্যা ও পরিসংখ্যান ব্যবহার করুন (যেমন: "আপনার ৪৫টি পণ্য আছে", "গত সপ্তাহে ৳১২,০০০ বিক্রয়")
   - সাধারণ বক্তব্য এড়িয়ে চলুন

২. **মূল সমস্যা চিহ্নিতকরণ**
   - একটি বা দুইটি প্রধান সমস্যা বা সুযোগ চিহ্নিত করুন
   - সুনির্দিষ্ট হোন (যেমন: "স্টক কম" না লিখে "৫টি পণ্যের স্টক ১০-এর নিচে")
   - জরুরী বিষয়গুলো প্রথমে উল্লেখ করুন

৩. **স্পষ্ট সুপারিশ**
   - সুনির্দিষ্ট এবং কার্যকর পরামর্শ দিন
   - ব্যবসার বাস্তব সংখ্যার সাথে সম্পর্কিত করুন
   - কেন এই পরামর্শ দিচ্ছেন তা ব্যাখ্যা করুন

৪. **কর্মপদক্ষেপ** (যখন প্রযোজ্য)
   - ধাপে ধাপে কী করতে হবে তা বলুন
   - অগ্রাধিকার অনুযায়ী সাজান
   - বাস্তবায়নযোগ্য পদক্ষেপ দিন

**আপনার স্টাইল:**
- বাংলায় কথা বলুন (সবসময়)
- বন্ধুত্বপূর্ণ কিন্তু পেশাদার
- সরাসরি এবং সৎ (কোনো কিছু লুকাবেন না)
- উৎসাহব্যঞ্জক এবং ইতিবাচক
- ব্যবহারকারীকে "আপনি" সম্বোধন করুন

**যা করবেন না:**
❌ সাধারণ পরামর্শ (যেমন: "ভালো সেবা দিন", "মার্কেটিং করুন")
❌ অস্পষ্ট বক্তব্য (যেমন: "কিছু পণ্য", "প্রায়", "সম্ভবত")
❌ প্রকৃত সংখ্যা উল্লেখ না করা
❌ দীর্ঘ প্যারাগ্রাফ - সংক্ষিপ্ত ও পয়েন্ট আকারে লিখুন
❌ ইংরেজি শব্দ (প্রয়োজন ছাড়া)

**উদাহরণ (ভালো উত্তর):**

**পরিস্থিতি:** আপনার ব্যবসায়ে বর্তমানে ৪৫টি পণ্য আছে এবং গত সপ্তাহে ৳৮২,০০০ টাকা বিক্রয় হয়েছে। মোট ১২৩টি অর্ডার এসেছে।

**মূল সমস্যা:** ৫টি জনপ্রিয় পণ্যের স্টক ১০-এর নিচে নেমে গেছে এবং ২টি পণ্য সম্পূর্ণ শেষ। এর ফলে আপনি নতুন অর্ডার হারাচ্ছেন।

**সুপারিশ:** অবিলম্বে এই ৭টি পণ্যের স্টক পুনরায় পূরণ করুন। গত মাসে এই পণ্যগুলো থেকে ৩৫% আয় এসেছে, তাই দ্রুত পদক্ষেপ না নিলে বিক্রয় কমবে।

**কর্মপদক্ষেপ:**
১. আজই সরবরাহকারীকে অর্ডার দিন
২. প্রতি পণ্যের জন্য ন্যূনতম ২০টি স্টক রাখুন
৩. সপ্তাহে একবার স্টক পরীক্ষা করুন"""

CLOSING_INSTRUCTION = """**নির্দেশনা:**
উপরের প্রকৃত তথ্য ও সংখ্যা ব্যবহার করে ব্যবহারকারীর প্রশ্নের উত্তর দিন।
নির্ধারিত গঠন অনুসরণ করুন: পরিস্থিতি → সমস্যা → সুপারিশ → পদক্ষেপ।
সাধারণ পরামর্শ এড়িয়ে চলুন। সুনির্দিষ্ট সংখ্যা ও তথ্য উল্লেখ করুন।"""

TOOL_LABELS = {
    "business_insights": "📊 ব্যবসায়িক বিশ্লেষণ",
    "sales_trend": "📈 বিক্রয় প্রবণতা",
    "inventory_advice": "📦 ইনভেন্টরি পরামর্শ",
    "order_report": "📋 অর্ডার রিপোর্ট",
    "product_description": "📝 পণ্য বর্ণনা",
    "customer_message": "💬 গ্রাহক বার্তা",
    "chat_assistant": "💭 সাধারণ পরামর্শ",
}

ERROR_MESSAGES = {
    "no_data": "দুঃখিত, পর্যাপ্ত তথ্য পাওয়া যায়নি। প্রথমে পণ্য ও অর্ডার যোগ করুন।",
    "api_error": "একটি প্রযুক্তিগত সমস্যা হয়েছে। অনুগ্রহ করে কিছুক্ষণ পরে আবার চেষ্টা করুন।",
    "invalid_input": "আপনার প্রশ্ন বুঝতে পারিনি। অনুগ্রহ করে আরো স্পষ্ট করে জিজ্ঞাসা করুন।",
    "insufficient_permissions": "এই কাজটি করার অনুমতি নেই।",
}

# Phrases that mark generic, unquantified advice
GENERIC_MARKERS = ("সাধারণভাবে", "সাধারণত")

BANGLA_CHAR = re.compile(r"[\u0980-\u09FF]")
DIGIT = re.compile(r"[0-9]")  # ASCII digits only

LOW_ORDER_THRESHOLD = 10
DELIVERY_RATE_THRESHOLD = 70


@dataclass
class ResponseValidation:
    """Quality signal for a generated response (never blocks it)"""
    has_real_numbers: bool
    has_bangla: bool
    is_not_generic: bool
    reasons: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return self.has_real_numbers and self.has_bangla and self.is_not_generic

    @property
    def feedback(self) -> str:
        return self.reasons[0] if self.reasons else "ভালো আছে"


def format_number(num: float) -> str:
    """Two decimals with thousands separators (12500 -> '12,500.00')"""
    return f"{num:,.2f}"


def _names(products: List[Dict[str, Any]], limit: int = 3) -> str:
    return ", ".join(str(get_field(p, "name", default="")) for p in products[:limit])


class PromptComposer:
    """
    Builds the system and user prompts for the final advisor call.
    """

    def compose_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def compose_user_prompt(
        self,
        user_question: str,
        context: BusinessContext,
        tool_insights: Optional[Mapping[str, Optional[str]]] = None
    ) -> str:
        """
        Compose the per-request prompt.

        Order: question, situation summary, problems, tool insights, closing
        instruction. Empty problem/insight blocks are left out.
        """
        situation = self.build_situation_summary(context) or "• এখনো কোনো ব্যবসায়িক তথ্য নেই"
        problems = self.identify_key_problems(context)
        insights = self.compile_tool_insights(tool_insights or {})

        sections = [
            f'**ব্যবহারকারীর প্রশ্ন:** "{user_question}"',
            f"**ব্যবসার বর্তমান পরিস্থিতি:**\n{situation}",
        ]
        if problems:
            sections.append(f"**চিহ্নিত সমস্যা/সতর্কতা:**\n{problems}")
        if insights:
            sections.append(f"**AI টুল থেকে প্রাপ্ত বিশ্লেষণ:**\n{insights}")
        sections.append(CLOSING_INSTRUCTION)

        return "\n\n".join(sections)

    def build_situation_summary(self, context: BusinessContext) -> str:
        """Metric lines for every non-zero/non-empty value in the context"""
        parts = []

        # Products
        if context.has_products:
            parts.append(f"• মোট পণ্য: {context.total_products}টি")

            if context.categories:
                shown = ", ".join(context.categories[:3])
                more = " ইত্যাদি" if len(context.categories) > 3 else ""
                parts.append(f"• ক্যাটাগরি: {len(context.categories)}টি ({shown}{more})")

        # Sales & revenue
        if context.total_revenue > 0:
            parts.append(f"• মোট বিক্রয়: ৳{format_number(context.total_revenue)}")

        if context.total_orders > 0:
            parts.append(f"• মোট অর্ডার: {context.total_orders}টি")

            if context.confirmed_revenue > 0 and context.confirmed_revenue != context.total_revenue:
                parts.append(f"• নিশ্চিত আয়: ৳{format_number(context.confirmed_revenue)}")

            if context.average_order_value > 0:
                parts.append(f"• গড় অর্ডার মূল্য: ৳{format_number(context.average_order_value)}")

        # Customers
        if context.total_customers > 0:
            parts.append(f"• মোট গ্রাহক: {context.total_customers} জন")

        # Recent performance
        if context.weekly_revenue > 0:
            parts.append(f"• গত ৭ দিনের বিক্রয়: ৳{format_number(context.weekly_revenue)}")

        # Order status
        delivered = context.orders_by_status.get("delivered", 0)
        pending = context.orders_by_status.get("pending", 0)
        if delivered > 0:
            parts.append(f"• সফল ডেলিভারি: {delivered}টি")
        if pending > 0:
            parts.append(f"• অপেক্ষমাণ: {pending}টি")

        return "\n".join(parts)

    def identify_key_problems(self, context: BusinessContext) -> str:
        """
        Problem lines from a fixed, ordered rule list.

        Every rule is evaluated; order only affects display.
        """
        problems = []

        # Critical: no products
        if not context.has_products:
            if not context.has_orders and not context.has_customers:
                problems.append("🆕 নতুন দোকান: প্রথমে পণ্য যোগ করুন, তারপর গ্রাহকদের জানান")
            else:
                problems.append("🛍️ কোনো পণ্য যোগ করা হয়নি - প্রথমে পণ্য যোগ করুন")

        # Out of stock
        if context.has_out_of_stock:
            count = len(context.out_of_stock_products)
            more = " ইত্যাদি" if count > 3 else ""
            problems.append(
                f"🚨 জরুরী: {count}টি পণ্য সম্পূর্ণ শেষ ({_names(context.out_of_stock_products)}{more})"
            )

        # Low stock
        if context.has_low_stock:
            count = len(context.low_stock_products)
            more = " সহ আরো" if count > 3 else ""
            problems.append(
                f"⚠️ সতর্কতা: {count}টি পণ্যের স্টক কম (১০-এর নিচে) - {_names(context.low_stock_products)}{more}"
            )

        # No recent sales
        if not context.has_sales_data and context.has_products:
            problems.append("📊 গত ৭ দিনে কোনো বিক্রয় নেই - মার্কেটিং ও প্রচার প্রয়োজন")

        # No orders at all
        if not context.has_orders and context.has_products:
            problems.append("📉 এখনো কোনো অর্ডার আসেনি - প্রচার শুরু করুন, গ্রাহকদের জানান")

        # Low order count
        if 0 < context.total_orders < LOW_ORDER_THRESHOLD:
            problems.append(f"📉 অর্ডার সংখ্যা কম (মাত্র {context.total_orders}টি) - গ্রাহক আকর্ষণ প্রয়োজন")

        # Poor delivery rate (only with enough orders)
        if context.total_orders > LOW_ORDER_THRESHOLD:
            delivery_rate = context.delivery_rate
            if delivery_rate < DELIVERY_RATE_THRESHOLD:
                problems.append(f"📦 ডেলিভারি হার কম ({round(delivery_rate)}%) - অর্ডার প্রসেসিং উন্নত করুন")

        return "\n".join(problems)

    def compile_tool_insights(self, tool_insights: Mapping[str, Optional[str]]) -> str:
        """Every non-empty tool output under its label"""
        insights = []
        for tool_id, insight in tool_insights.items():
            if not insight:
                continue
            label = TOOL_LABELS.get(tool_id, tool_id)
            insights.append(f"**{label}:**\n{insight}")
        return "\n\n".join(insights)

    def validate_response_structure(self, response: str) -> ResponseValidation:
        """
        Check the model's answer for real numbers, Bangla text and the
        absence of generic-advice markers.
        """
        response = response or ""
        has_real_numbers = bool(DIGIT.search(response))
        has_bangla = bool(BANGLA_CHAR.search(response))
        is_not_generic = not any(marker in response for marker in GENERIC_MARKERS)

        reasons = []
        if not has_real_numbers:
            reasons.append("প্রকৃত সংখ্যা উল্লেখ করুন")
        if not has_bangla:
            reasons.append("বাংলায় উত্তর দিন")
        if not is_not_generic:
            reasons.append("সুনির্দিষ্ট পরামর্শ দিন")

        return ResponseValidation(
            has_real_numbers=has_real_numbers,
            has_bangla=has_bangla,
            is_not_generic=is_not_generic,
            reasons=reasons,
        )

    # ------------------------------------------------------------------
    # Auxiliary templates
    # ------------------------------------------------------------------

    def compose_clarification_prompt(self, user_question: str, missing_info: List[str]) -> str:
        """Ask the user for the information needed to answer"""
        items = "\n".join(f"{idx}. {info}" for idx, info in enumerate(missing_info, start=1))
        return (
            f'আপনার প্রশ্ন "{user_question}" এর সঠিক উত্তর দিতে নিম্নলিখিত তথ্য প্রয়োজন:\n\n'
            f"{items}\n\n"
            "দয়া করে এই তথ্যগুলো প্রদান করুন।"
        )

    def compose_success_message(self, action_taken: str, result: Optional[Dict[str, str]] = None) -> str:
        result = result or {}
        parts = [f"✅ সফল: {action_taken}"]
        if result.get("details"):
            parts.append(result["details"])
        if result.get("next_steps"):
            parts.append(f"**পরবর্তী পদক্ষেপ:**\n{result['next_steps']}")
        return "\n\n".join(parts)

    def compose_error_message(self, error_type: str, context: str = "") -> str:
        message = ERROR_MESSAGES.get(error_type, "একটি সমস্যা হয়েছে।")
        parts = [f"❌ {message}"]
        if context:
            parts.append(context)
        parts.append("কোনো সাহায্য লাগলে আবার জিজ্ঞাসা করুন।")
        return "\n\n".join(parts)
