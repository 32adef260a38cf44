"""
MunshiJi Service - Business advisor orchestrator

Request pipeline:
    BuildContext -> Plan -> ExecuteTools (parallel) -> ComposePrompt
    -> CallModel -> ValidateStructure -> ExtractActions -> Assemble

No state is retained between requests. The only shared object is the frozen
tool registry.

Author: TM3
Date: 2025-12-02
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from app.core.config import Settings, settings as default_settings
from app.domain.action import Action
from app.domain.business_context import BusinessContext
from app.domain.tool import PriorityLabel
from app.services.action_extractor import ActionExtractor
from app.services.business_context_service import BusinessContextService
from app.services.llm_gateway import LLMGateway
from app.services.prompt_composer import PromptComposer
from app.services.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

ADVISOR_UNAVAILABLE_MESSAGE = "মুন্সিজি সেবা বর্তমানে অনুপলব্ধ। পরে আবার চেষ্টা করুন।"
FALLBACK_REASON = "সাধারণ ব্যবসায়িক পরামর্শ প্রদান"
HISTORY_ROLES = ("user", "assistant")


class AdvisorUnavailableError(Exception):
    """Raised when a request fails after the context was built"""

    def __init__(self, message: str = ADVISOR_UNAVAILABLE_MESSAGE):
        self.message = message
        super().__init__(message)


# ============================================================================
# Result types
# ============================================================================

@dataclass(frozen=True)
class ToolPlan:
    """Ordered tool selection for one request"""
    tool_ids: List[str]
    reasons: List[str]
    priority: PriorityLabel


@dataclass
class AdvisorResult:
    """Everything the presentation layer needs for one answer"""
    response: str
    actions: List[Action]
    insights: Dict[str, Optional[str]]
    tools_used: List[str]
    reasoning: List[str]
    context: Dict[str, Any]

    def to_dict(self) -> dict:
        return {
            "response": self.response,
            "actions": [action.to_dict() for action in self.actions],
            "toolsUsed": self.tools_used,
            "reasoning": self.reasoning,
            "context": self.context,
        }


@dataclass
class BusinessHealth:
    score: int
    grade: str
    issues: List[str] = field(default_factory=list)
    strengths: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "grade": self.grade,
            "issues": self.issues,
            "strengths": self.strengths,
        }


def health_grade(score: int) -> str:
    if score >= 80:
        return "চমৎকার"
    if score >= 60:
        return "ভালো"
    if score >= 40:
        return "মাঝারি"
    return "উন্নতি প্রয়োজন"


def recent_history(history: Optional[Sequence[Any]], window: int) -> List[Dict[str, str]]:
    """
    Last `window` well-formed turns of a conversation.

    Entries that are not {"role": "user"|"assistant", "content": str} are dropped.
    """
    turns = []
    for turn in history or []:
        if not isinstance(turn, dict):
            continue
        role = turn.get("role")
        content = turn.get("content")
        if role in HISTORY_ROLES and isinstance(content, str) and content:
            turns.append({"role": role, "content": content})

    if window <= 0:
        return []
    return turns[-window:]


class MunshiJiService:
    """
    Orchestrates context building, tool execution and the final advisor call.
    """

    def __init__(
        self,
        context_service: BusinessContextService,
        registry: ToolRegistry,
        gateway: LLMGateway,
        composer: Optional[PromptComposer] = None,
        extractor: Optional[ActionExtractor] = None,
        settings: Optional[Settings] = None,
    ):
        self.context_service = context_service
        self.registry = registry
        self.gateway = gateway
        self.composer = composer or PromptComposer()
        self.extractor = extractor or ActionExtractor()
        self.settings = settings or default_settings

    # ========================================================================
    # Planning
    # ========================================================================

    def analyze_intent_and_plan(
        self,
        query: str,
        history: Optional[Sequence[Any]],
        context: BusinessContext
    ) -> ToolPlan:
        """
        Decide which tools to run for a query.

        Never returns an empty plan: without a match the fallback tool is used.
        """
        matches = self.registry.find_relevant_tools(query, context)

        if not matches:
            fallback = self.registry.fallback_tool()
            if fallback is None:
                raise RuntimeError("No fallback tool registered")
            return ToolPlan(tool_ids=[fallback.id], reasons=[FALLBACK_REASON], priority="low")

        return ToolPlan(
            tool_ids=[match.tool_id for match in matches],
            reasons=[match.reason for match in matches],
            priority=matches[0].priority,
        )

    # ========================================================================
    # Execution
    # ========================================================================

    async def execute_ai_modules(
        self,
        tool_ids: Sequence[str],
        context: BusinessContext,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Optional[str]]:
        return await self.registry.execute_tools(tool_ids, context, params or {})

    async def generate_unified_response(
        self,
        query: str,
        history: Optional[Sequence[Any]],
        context: BusinessContext,
        insights: Dict[str, Optional[str]]
    ) -> str:
        """
        Final advisor call: system prompt, recent history, composed user prompt.

        A response that fails the structure check is logged and still returned.
        """
        messages = [{"role": "system", "content": self.composer.compose_system_prompt()}]
        messages.extend(recent_history(history, self.settings.HISTORY_WINDOW))
        messages.append({
            "role": "user",
            "content": self.composer.compose_user_prompt(query, context, insights),
        })

        response = await asyncio.wait_for(
            self.gateway.complete(messages, temperature=self.settings.LLM_TEMPERATURE),
            timeout=self.settings.SYNTHESIS_TIMEOUT_SECONDS
        )

        validation = self.composer.validate_response_structure(response)
        if not validation.valid:
            logger.warning(f"Advisor response failed quality checks: {validation.feedback}")

        return response

    # ========================================================================
    # Entry point
    # ========================================================================

    async def process_request(
        self,
        message: str,
        history: Optional[Sequence[Any]],
        shop_id: str
    ) -> AdvisorResult:
        """
        Answer one advisor request.

        Args:
            message: User's question
            history: Previous {"role", "content"} turns
            shop_id: Shop identifier

        Returns:
            AdvisorResult

        Raises:
            AdvisorUnavailableError: If any stage after context building fails
        """
        context = await self.context_service.build(shop_id)

        try:
            plan = self.analyze_intent_and_plan(message, history, context)
            logger.info(f"Shop {shop_id}: running tools {plan.tool_ids} (priority {plan.priority})")

            insights = await self.execute_ai_modules(
                plan.tool_ids,
                context,
                {"user_message": message, "conversation_history": recent_history(history, self.settings.HISTORY_WINDOW)},
            )

            response = await self.generate_unified_response(message, history, context, insights)
            actions = self.extractor.extract(response, context, insights)

        except Exception as e:
            logger.error(f"MunshiJi request failed for shop {shop_id}: {e}", exc_info=True)
            raise AdvisorUnavailableError() from e

        logger.info(f"Shop {shop_id}: answered with {len(actions)} actions")
        return AdvisorResult(
            response=response,
            actions=actions,
            insights=insights,
            tools_used=plan.tool_ids,
            reasoning=plan.reasons,
            context=context.summary(),
        )

    async def advise(self, message: str, history: Optional[Sequence[Any]], shop_id: str) -> dict:
        """process_request() flattened for the presentation layer"""
        result = await self.process_request(message, history, shop_id)
        return result.to_dict()

    # ========================================================================
    # Business health
    # ========================================================================

    def get_business_health(self, context: BusinessContext) -> BusinessHealth:
        """
        Score the shop 0-100 from inventory, sales, fulfilment and customers.
        """
        score = 50
        issues: List[str] = []
        strengths: List[str] = []

        # Inventory
        if context.has_out_of_stock:
            score -= 15
            issues.append(f"{len(context.out_of_stock_products)}টি পণ্য স্টক শেষ")
        if context.has_low_stock:
            score -= 10
            issues.append(f"{len(context.low_stock_products)}টি পণ্যের স্টক কম")
        if len(context.well_stocked_products) > context.total_products * 0.7:
            score += 10
            strengths.append("বেশিরভাগ পণ্যের স্টক ভালো আছে")

        # Sales
        if context.weekly_revenue > 10000:
            score += 15
            strengths.append("সাপ্তাহিক বিক্রয় ভালো")
        if context.total_orders > 50:
            score += 10
            strengths.append("ভালো অর্ডার সংখ্যা")

        # Fulfilment
        delivery_rate = context.delivery_rate
        if delivery_rate > 80:
            score += 15
            strengths.append("উচ্চ ডেলিভারি হার")
        elif delivery_rate < 50:
            score -= 10
            issues.append("ডেলিভারি হার কম")

        # Customers
        if context.total_customers > 20:
            score += 10
            strengths.append("ভালো গ্রাহক সংখ্যা")

        score = min(max(score, 0), 100)
        return BusinessHealth(score=score, grade=health_grade(score), issues=issues, strengths=strengths)

    async def get_shop_health(self, shop_id: str) -> BusinessHealth:
        context = await self.context_service.build(shop_id)
        return self.get_business_health(context)
