"""
Language Model Gateway for the MunshiJi advisor

Thin async wrapper around the Anthropic Messages API exposing a single
operation: complete(messages) -> text. Every advisory tool and the final
synthesis call go through here.

Features:
- OpenAI-style message lists ({"role", "content"}) with system messages folded
  into the Anthropic `system` parameter
- Bounded number of in-flight calls (backpressure for tool fan-out)
- SDK failures translated into one user-facing LLMUnavailableError

Author: TM3
Date: 2025-12-02
"""
import asyncio
import logging
from typing import Dict, List, Optional, Tuple

import anthropic

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

LLM_UNAVAILABLE_MESSAGE = "AI সেবা বর্তমানে অনুপলব্ধ। পরে আবার চেষ্টা করুন।"


class LLMUnavailableError(Exception):
    """The completion endpoint failed; message is safe to show to users"""

    def __init__(self, message: str = LLM_UNAVAILABLE_MESSAGE):
        super().__init__(message)


def split_messages(messages: List[Dict[str, str]]) -> Tuple[str, List[Dict[str, str]]]:
    """
    Separate system messages from the conversation.

    Returns:
        Tuple of (system_prompt, conversation) where conversation starts with a
        user turn and only contains user/assistant roles.
    """
    system_parts = []
    conversation = []

    for msg in messages:
        role = msg.get("role")
        content = msg.get("content") or ""
        if role == "system":
            if content:
                system_parts.append(content)
        elif role in ("user", "assistant") and content:
            conversation.append({"role": role, "content": content})

    # The Messages API expects the first turn to come from the user
    while conversation and conversation[0]["role"] != "user":
        conversation.pop(0)

    return "\n\n".join(system_parts), conversation


class LLMGateway:
    """
    Async completion gateway backed by Claude.
    """

    def __init__(self, client: Optional[anthropic.AsyncAnthropic] = None, settings: Optional[Settings] = None):
        """Initialize the Claude client"""
        self.settings = settings or get_settings()

        if client is None:
            api_key = self.settings.ANTHROPIC_API_KEY
            if not api_key:
                raise ValueError("ANTHROPIC_API_KEY environment variable not set")
            client = anthropic.AsyncAnthropic(api_key=api_key)

        self.client = client
        self.model = self.settings.LLM_MODEL
        self._semaphore = asyncio.Semaphore(max(1, self.settings.LLM_MAX_CONCURRENCY))
        logger.info(f"LLMGateway initialized with model: {self.model}")

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Run one completion.

        Args:
            messages: List of {"role": "system"|"user"|"assistant", "content": "..."}
            temperature: Sampling temperature (default from settings)
            max_tokens: Output token cap (default from settings)

        Returns:
            The model's text response

        Raises:
            LLMUnavailableError: If the API call fails or returns no text
        """
        system, conversation = split_messages(messages)
        if not conversation:
            raise ValueError("At least one user message is required")

        request = {
            "model": self.model,
            "max_tokens": max_tokens or self.settings.LLM_MAX_TOKENS,
            "temperature": self.settings.LLM_TEMPERATURE if temperature is None else temperature,
            "messages": conversation,
        }
        if system:
            request["system"] = system

        try:
            async with self._semaphore:
                response = await self.client.messages.create(**request)
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise LLMUnavailableError() from e

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        ).strip()

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.info(f"Completion done. Tokens: {usage.input_tokens}/{usage.output_tokens}")

        if not text:
            logger.warning("Completion returned no text content")
            raise LLMUnavailableError()

        return text

