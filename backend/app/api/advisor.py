"""
API endpoints for the MunshiJi business advisor

Endpoints:
- POST /api/v1/ai/munshiji          - Advice with actions and context summary
- POST /api/v1/ai/v1/munshiji       - Structured advice (actions + suggested steps)
- GET  /api/v1/ai/tools             - Registered tool metadata
- GET  /api/v1/ai/munshiji/health   - Business health score for the shop

The shop is identified by the X-Shop-Id header.

Author: TM3
Date: 2025-12-02
"""
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal
from datetime import datetime, timezone
import logging

from app.services.action_extractor import extract_text_actions
from app.services.munshiji_service import AdvisorUnavailableError, MunshiJiService

logger = logging.getLogger(__name__)

# ============================================================================
# ROUTER
# ============================================================================

router = APIRouter(prefix="/api/v1/ai", tags=["munshiji"])


def get_munshiji_service(request: Request) -> MunshiJiService:
    """Service built at startup (see app.main lifespan)"""
    service = getattr(request.app.state, "munshiji_service", None)
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="MunshiJi service not configured. Please contact administrator."
        )
    return service


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class ChatMessage(BaseModel):
    """A single message in the conversation history"""
    role: Literal["user", "assistant"]
    content: str


class AdvisorRequest(BaseModel):
    """Request body for the advisor endpoints"""
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1, max_length=1000, description="User's question")
    conversation_history: List[ChatMessage] = Field(
        default=[],
        alias="conversationHistory",
        description="Conversation history"
    )

    def history(self) -> List[Dict[str, str]]:
        return [{"role": msg.role, "content": msg.content} for msg in self.conversation_history]


class AdvisorResponse(BaseModel):
    """Response from POST /munshiji"""
    success: bool
    response: str
    actions: List[Dict[str, Any]]
    toolsUsed: List[str]
    reasoning: List[str]
    context: Dict[str, Any]


class AdvisorMetadata(BaseModel):
    toolsUsed: List[str]
    reasoning: List[str]
    timestamp: str


class StructuredAdvisorResponse(BaseModel):
    """Response from POST /v1/munshiji"""
    success: bool
    advice: str
    actions: List[Dict[str, Any]]
    suggestedActions: List[Dict[str, Any]]
    metadata: AdvisorMetadata


# ============================================================================
# ENDPOINT: POST /api/v1/ai/munshiji
# ============================================================================

@router.post("/munshiji", response_model=AdvisorResponse)
async def munshiji(
    request: AdvisorRequest,
    shop_id: str = Header(..., alias="X-Shop-Id", min_length=1),
    service: MunshiJiService = Depends(get_munshiji_service),
):
    """
    Ask the advisor a business question.

    Examples:
    - "আমার ব্যবসা কেমন চলছে?"
    - "কোন পণ্যের স্টক কম?"
    """
    logger.info(f"MunshiJi request for shop {shop_id}: {request.message[:50]}...")

    try:
        result = await service.advise(request.message, request.history(), shop_id)
    except AdvisorUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message)

    return AdvisorResponse(success=True, **result)


# ============================================================================
# ENDPOINT: POST /api/v1/ai/v1/munshiji
# ============================================================================

@router.post("/v1/munshiji", response_model=StructuredAdvisorResponse)
async def munshiji_v1(
    request: AdvisorRequest,
    shop_id: str = Header(..., alias="X-Shop-Id", min_length=1),
    service: MunshiJiService = Depends(get_munshiji_service),
):
    """
    Structured advice for UI rendering.

    `actions` come from the business data; `suggestedActions` are the numbered
    steps found in the advice text and are for display only.
    """
    logger.info(f"MunshiJi v1 request for shop {shop_id}: {request.message[:50]}...")

    try:
        result = await service.process_request(request.message, request.history(), shop_id)
    except AdvisorUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message)

    return StructuredAdvisorResponse(
        success=True,
        advice=result.response,
        actions=[action.to_dict() for action in result.actions],
        suggestedActions=[step.model_dump() for step in extract_text_actions(result.response)],
        metadata=AdvisorMetadata(
            toolsUsed=result.tools_used,
            reasoning=result.reasoning,
            timestamp=_timestamp(),
        ),
    )


# ============================================================================
# ENDPOINT: GET /api/v1/ai/tools
# ============================================================================

@router.get("/tools")
async def list_tools(service: MunshiJiService = Depends(get_munshiji_service)):
    """Metadata of every registered tool"""
    return {
        "success": True,
        "tools": service.registry.get_metadata(),
    }


# ============================================================================
# ENDPOINT: GET /api/v1/ai/munshiji/health
# ============================================================================

@router.get("/munshiji/health")
async def business_health(
    shop_id: str = Header(..., alias="X-Shop-Id", min_length=1),
    service: MunshiJiService = Depends(get_munshiji_service),
):
    """
    Business health score (0-100) with grade, issues and strengths.
    """
    health = await service.get_shop_health(shop_id)
    return {
        "success": True,
        **health.to_dict(),
        "timestamp": _timestamp(),
    }
