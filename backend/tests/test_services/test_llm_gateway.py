"""
Unit tests for LLMGateway and AIService prompt building

These tests mock the Anthropic client; no API key or network is needed.

Author: TM3
Date: 2025-12-02
"""
import anthropic
import httpx
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from app.core.config import Settings
from app.domain.business_context import DailySales
from app.services.ai_service import AIService
from app.services.llm_gateway import (
    LLM_UNAVAILABLE_MESSAGE,
    LLMGateway,
    LLMUnavailableError,
    split_messages,
)


def _response(*texts, input_tokens=10, output_tokens=20):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text) for text in texts],
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


@pytest.fixture
def settings():
    return Settings(ANTHROPIC_API_KEY=None, LLM_MODEL="test-model", LLM_MAX_TOKENS=512, LLM_TEMPERATURE=0.3)


@pytest.fixture
def client():
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=_response("উত্তর"))
    return client


@pytest.fixture
def gateway(client, settings):
    return LLMGateway(client=client, settings=settings)


class TestSplitMessages:

    def test_system_messages_folded(self):
        system, conversation = split_messages([
            {"role": "system", "content": "A"},
            {"role": "user", "content": "প্রশ্ন"},
            {"role": "system", "content": "B"},
        ])

        assert system == "A\n\nB"
        assert conversation == [{"role": "user", "content": "প্রশ্ন"}]

    def test_leading_assistant_turns_dropped(self):
        _, conversation = split_messages([
            {"role": "assistant", "content": "hi"},
            {"role": "user", "content": "q"},
            {"role": "assistant", "content": "a"},
        ])

        assert [m["role"] for m in conversation] == ["user", "assistant"]


class TestLLMGateway:
    """Test completion requests and error translation"""

    def test_missing_api_key_raises(self, settings):
        with pytest.raises(ValueError):
            LLMGateway(settings=settings)

    async def test_complete_builds_request(self, gateway, client):
        """Test model, limits and system prompt are sent"""
        # Act
        text = await gateway.complete([
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "q"},
        ])

        # Assert
        assert text == "উত্তর"
        client.messages.create.assert_awaited_once_with(
            model="test-model",
            max_tokens=512,
            temperature=0.3,
            messages=[{"role": "user", "content": "q"}],
            system="sys",
        )

    async def test_explicit_temperature_overrides_default(self, gateway, client):
        await gateway.complete([{"role": "user", "content": "q"}], temperature=0.0, max_tokens=64)

        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == 64
        assert "system" not in kwargs

    async def test_joins_text_blocks(self, gateway, client):
        client.messages.create.return_value = _response("এক ", "দুই")

        assert await gateway.complete([{"role": "user", "content": "q"}]) == "এক দুই"

    async def test_api_error_translated(self, gateway, client):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client.messages.create.side_effect = anthropic.APIConnectionError(request=request)

        with pytest.raises(LLMUnavailableError) as exc_info:
            await gateway.complete([{"role": "user", "content": "q"}])

        assert str(exc_info.value) == LLM_UNAVAILABLE_MESSAGE

    async def test_empty_text_is_unavailable(self, gateway, client):
        client.messages.create.return_value = _response("  ")

        with pytest.raises(LLMUnavailableError):
            await gateway.complete([{"role": "user", "content": "q"}])

    async def test_no_user_turn_rejected(self, gateway):
        with pytest.raises(ValueError):
            await gateway.complete([{"role": "system", "content": "only system"}])


class TestAIService:
    """Test prompts built by the advisory generators"""

    @pytest.fixture
    def fake_gateway(self):
        gateway = MagicMock()
        gateway.complete = AsyncMock(return_value="পরামর্শ")
        return gateway

    async def test_customer_message_fills_template(self, fake_gateway):
        service = AIService(fake_gateway)

        result = await service.generate_customer_message("রহিম", "payment_reminder", {"amount": 500})

        assert result == "পরামর্শ"
        messages = fake_gateway.complete.await_args.args[0]
        assert "রহিম" in messages[1]["content"]
        assert "৳500" in messages[1]["content"]
        assert fake_gateway.complete.await_args.kwargs["temperature"] == 0.8

    async def test_customer_message_missing_context_key(self, fake_gateway):
        service = AIService(fake_gateway)

        await service.generate_customer_message("রহিম", "promotional")

        prompt = fake_gateway.complete.await_args.args[0][1]["content"]
        assert "অফার: ।" in prompt

    async def test_sales_trend_lists_days(self, fake_gateway):
        service = AIService(fake_gateway)
        sales = [DailySales(date="2025-12-01", amount=500, count=2)]

        await service.analyze_sales_trend(sales)

        prompt = fake_gateway.complete.await_args.args[0][-1]["content"]
        assert "দিন 1 (2025-12-01): ৳500, অর্ডার: 2" in prompt

    async def test_chat_forwards_history(self, fake_gateway):
        service = AIService(fake_gateway)
        history = [{"role": "user", "content": "আগে"}, {"role": "assistant", "content": "উত্তর"}]

        await service.chat_with_ai("এখন", history)

        messages = fake_gateway.complete.await_args.args[0]
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[-1]["content"] == "এখন"
