"""
AI Tool Registry

Catalog of the advisory tools available to MunshiJi and the relevance
ranking that decides which of them run for a request.

Selection is two-stage: a tool's context gate (should_execute) decides whether
it can produce a meaningful answer for this shop, then its keywords decide
whether the user plausibly asked for it. Adding a capability is a pure
registration.

The registry is populated once at startup and frozen; after that it is only
read, so concurrent requests can share it.

Author: TM3
Date: 2025-12-02
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from app.domain.tool import PRIORITY_RANK, InvalidToolDefinition, PriorityLabel, Tool

logger = logging.getLogger(__name__)


class ToolNotFoundError(KeyError):
    """Raised when executing an unknown tool id"""


class RegistryFrozenError(RuntimeError):
    """Raised when registering into a registry after startup"""


@dataclass(frozen=True)
class ToolMatch:
    """A tool selected for a request, with its resolved priority and reason"""
    tool_id: str
    priority: PriorityLabel
    reason: str


def tool_failure_message(tool_id: str) -> str:
    return f"{tool_id} এ সমস্যা হয়েছে।"


class ToolRegistry:
    """
    Registry of advisory tools keyed by id (registration order preserved).
    """

    def __init__(self, tool_timeout: Optional[float] = None):
        self._tools: Dict[str, Tool] = {}
        self._frozen = False
        self.tool_timeout = tool_timeout

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, tool: Tool) -> None:
        """
        Register a tool.

        Raises:
            InvalidToolDefinition: If the tool is malformed or its id is taken
            RegistryFrozenError: If the registry has been frozen
        """
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register {getattr(tool, 'id', tool)!r}: registry is frozen")
        if not isinstance(tool, Tool):
            raise InvalidToolDefinition("Only Tool instances can be registered (use make_tool)")
        if tool.id in self._tools:
            raise InvalidToolDefinition(f"Tool already registered: {tool.id}")

        self._tools[tool.id] = tool
        logger.debug(f"Registered tool: {tool.id}")

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_tool(self, tool_id: str) -> Optional[Tool]:
        return self._tools.get(tool_id)

    def get_all(self) -> List[Tool]:
        return list(self._tools.values())

    def get_metadata(self) -> List[Dict[str, str]]:
        """Tool metadata for frontend display"""
        return [tool.metadata() for tool in self._tools.values()]

    def tool_requires_params(self, tool_id: str) -> bool:
        tool = self.get_tool(tool_id)
        return tool.requires_params if tool else False

    def fallback_tool(self) -> Optional[Tool]:
        """First registered fallback tool, if any"""
        return next((tool for tool in self._tools.values() if tool.is_fallback), None)

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def find_relevant_tools(self, query: str, context: Any) -> List[ToolMatch]:
        """
        Find the tools relevant to a query, ordered by priority.

        Args:
            query: User message
            context: BusinessContext

        Returns:
            List of ToolMatch, high > medium > low, ties in registration order.
            Empty when nothing matches; the caller falls back.
        """
        query = query or ""
        matches = []

        for tool in self._tools.values():
            # Fallback tools are never part of the initial match
            if tool.is_fallback:
                continue

            if not tool.should_execute(context, query):
                continue

            if not tool.matches_query(query):
                continue

            matches.append(ToolMatch(
                tool_id=tool.id,
                priority=tool.resolve_priority(context),
                reason=tool.resolve_reason(context),
            ))

        # list.sort is stable, so equal priorities keep registration order
        matches.sort(key=lambda match: PRIORITY_RANK[match.priority], reverse=True)
        return matches

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_tool(self, tool_id: str, context: Any, params: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """
        Execute one tool.

        Raises:
            ToolNotFoundError: If tool_id is not registered
            Exception: Whatever the tool raised (after logging)
        """
        tool = self.get_tool(tool_id)
        if tool is None:
            raise ToolNotFoundError(f"Tool not found: {tool_id}")

        try:
            return await tool.execute(context, params or {})
        except Exception as e:
            logger.error(f"Error executing tool {tool_id}: {e}")
            raise

    async def _execute_isolated(self, tool_id: str, context: Any, params: Dict[str, Any]) -> Optional[str]:
        try:
            if self.tool_timeout:
                return await asyncio.wait_for(
                    self.execute_tool(tool_id, context, params),
                    timeout=self.tool_timeout
                )
            return await self.execute_tool(tool_id, context, params)

        except asyncio.TimeoutError:
            logger.warning(f"Tool {tool_id} timed out after {self.tool_timeout}s")
            return tool_failure_message(tool_id)

        except Exception as e:
            logger.warning(f"Failed to execute {tool_id}: {e}")
            return tool_failure_message(tool_id)

    async def execute_tools(
        self,
        tool_ids: Sequence[str],
        context: Any,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Optional[str]]:
        """
        Execute several tools concurrently.

        A failing or timed-out tool is replaced by a short apology string and
        never aborts its siblings.

        Returns:
            Dict of tool_id -> output, in the order of tool_ids
        """
        params = params or {}
        results = await asyncio.gather(
            *(self._execute_isolated(tool_id, context, params) for tool_id in tool_ids)
        )
        return dict(zip(tool_ids, results))
