"""
Tool Domain Model

An advisory capability the MunshiJi advisor can run for a request. Tools are
immutable catalog entries built through make_tool(), which validates the
required fields and applies defaults for the optional ones.

Author: TM3
Date: 2025-12-02
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Literal, Optional, Tuple, Union

PriorityLabel = Literal["high", "medium", "low"]

PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}

# (context, params) -> text. May return None when there is nothing to say.
ToolExecutor = Callable[[Any, Dict[str, Any]], Awaitable[Optional[str]]]
ToolPredicate = Callable[[Any, str], bool]


class InvalidToolDefinition(ValueError):
    """Raised when a tool is registered without its required fields"""


@dataclass(frozen=True)
class StaticPriority:
    label: PriorityLabel

    def resolve(self, context: Any) -> PriorityLabel:
        return self.label


@dataclass(frozen=True)
class DynamicPriority:
    """Priority computed from the business context at ranking time"""
    fn: Callable[[Any], PriorityLabel]

    def resolve(self, context: Any) -> PriorityLabel:
        label = self.fn(context)
        if label not in PRIORITY_RANK:
            raise InvalidToolDefinition(f"Priority function returned unknown label: {label!r}")
        return label


Priority = Union[StaticPriority, DynamicPriority]


def _always(context: Any, query: str) -> bool:
    return True


@dataclass(frozen=True)
class Tool:
    """
    Tool catalog entry

    Fields:
        id: Stable identifier (e.g. 'inventory_advice')
        display_name: Bangla name shown in the UI
        icon: Emoji icon shown in the UI
        description: What the tool does
        execute: Async executor (context, params) -> text
        keywords: Lexical triggers matched against the user query
        should_execute: Context gate (context, query) -> bool
        priority: StaticPriority or DynamicPriority
        reason: Why the tool was selected (text or fn(context) -> text)
        requires_params: Tool needs caller-supplied params to be useful
        is_fallback: Used only when nothing else matches
    """
    id: str
    display_name: str
    icon: str
    description: str
    execute: ToolExecutor
    keywords: Tuple[str, ...] = ()
    should_execute: ToolPredicate = _always
    priority: Priority = field(default_factory=lambda: StaticPriority("medium"))
    reason: Union[str, Callable[[Any], str], None] = None
    requires_params: bool = False
    is_fallback: bool = False

    def resolve_priority(self, context: Any) -> PriorityLabel:
        return self.priority.resolve(context)

    def resolve_reason(self, context: Any) -> str:
        if callable(self.reason):
            return self.reason(context)
        if self.reason:
            return self.reason
        return f"{self.display_name} প্রয়োজন"

    def matches_query(self, query: str) -> bool:
        """Empty keyword list matches everything; otherwise any substring hit"""
        if not self.keywords:
            return True
        query_lower = query.lower()
        return any(keyword.lower() in query_lower for keyword in self.keywords)

    def metadata(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "name": self.display_name,
            "icon": self.icon,
            "description": self.description,
        }


def make_tool(
    id: Optional[str] = None,
    display_name: Optional[str] = None,
    description: Optional[str] = None,
    execute: Optional[ToolExecutor] = None,
    *,
    icon: Optional[str] = None,
    keywords=None,
    should_execute: Optional[ToolPredicate] = None,
    priority: Union[PriorityLabel, Callable[[Any], PriorityLabel], Priority, None] = None,
    reason: Union[str, Callable[[Any], str], None] = None,
    requires_params: bool = False,
    is_fallback: bool = False,
) -> Tool:
    """
    Build a Tool, validating required fields and applying defaults

    priority accepts a label, a callable of the context, or an explicit
    StaticPriority/DynamicPriority.

    Raises:
        InvalidToolDefinition: If id, display_name, description or execute is missing
    """
    required = {
        "id": id,
        "display_name": display_name,
        "description": description,
        "execute": execute,
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise InvalidToolDefinition(
            f"Tool registration failed. Missing fields: {', '.join(missing)}"
        )
    if not callable(execute):
        raise InvalidToolDefinition(f"Tool {id}: execute must be callable")

    if priority is None:
        resolved_priority: Priority = StaticPriority("medium")
    elif isinstance(priority, (StaticPriority, DynamicPriority)):
        resolved_priority = priority
    elif callable(priority):
        resolved_priority = DynamicPriority(priority)
    elif priority in PRIORITY_RANK:
        resolved_priority = StaticPriority(priority)
    else:
        raise InvalidToolDefinition(f"Tool {id}: unknown priority {priority!r}")

    return Tool(
        id=id,
        display_name=display_name,
        icon=icon or "🔧",
        description=description,
        execute=execute,
        keywords=tuple(keywords or ()),
        should_execute=should_execute or _always,
        priority=resolved_priority,
        reason=reason,
        requires_params=bool(requires_params),
        is_fallback=bool(is_fallback),
    )
