"""
Action Domain Models

Structured, UI-renderable recommendations derived from business state.
Actions are recomputed on every request and never stored here.

Author: TM3
Date: 2025-12-02
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, Literal
from datetime import datetime

ActionType = Literal[
    "increase_stock",
    "adjust_price",
    "promote_product",
    "start_marketing",
    "engage_customers",
    "improve_delivery",
    "expand_inventory",
]
ActionPriority = Literal["high", "medium", "low"]
ActionUrgency = Literal["urgent", "soon", "normal"]

# Ascending rank = higher precedence
PRIORITY_ORDER = {"high": 1, "medium": 2, "low": 3}
URGENCY_ORDER = {"urgent": 1, "soon": 2, "normal": 3}

TextActionCategory = Literal[
    "inventory", "marketing", "customer", "sales", "operations", "financial", "general"
]


class Action(BaseModel):
    """
    Action domain model - one suggested step for the shop owner

    Fields:
        id: Synthetic id (action_<epoch ms>_<index>)
        type: What kind of action (increase_stock, adjust_price, ...)
        target: Type-specific payload (product ids, suggested values, ...)
        reason: Human-readable explanation in Bangla
        priority: high | medium | low
        urgency: urgent | soon | normal
        completed: Always False when generated
        created_at: Generation timestamp
    """

    id: str = Field(..., description="Synthetic action id")
    type: ActionType
    target: Dict[str, Any] = Field(default_factory=dict)
    reason: str
    priority: ActionPriority
    urgency: ActionUrgency
    completed: bool = False
    created_at: datetime

    model_config = ConfigDict(
        json_encoders={
            datetime: lambda v: v.isoformat()
        }
    )

    def to_dict(self) -> dict:
        """Convert to the camelCase shape consumed by the dashboard"""
        return {
            "id": self.id,
            "type": self.type,
            "target": self.target,
            "reason": self.reason,
            "priority": self.priority,
            "urgency": self.urgency,
            "completed": self.completed,
            "createdAt": self.created_at.isoformat(),
        }


class TextAction(BaseModel):
    """Action step mined from the model's free text (display only)"""
    priority: int = Field(..., ge=1)
    action: str
    category: TextActionCategory = "general"
    completed: bool = False
