import asyncio
from unittest.mock import patch

import pytest
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from agents.backend import OpenRouterBackend
from budget import BudgetLedger
from errors import BackendError, BackendUnavailable

MODEL = "anthropic/claude-3.5-sonnet"


def _echo(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
    return ModelResponse(parts=[TextPart("  ID-1: a short gloss  ")])


def _broken(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
    raise RuntimeError("upstream 502")


async def _slow(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
    await asyncio.sleep(1)
    return ModelResponse(parts=[TextPart("late")])


@pytest.fixture
def keyed_config(config):
    config.openrouter_api_key = "sk-or-test"
    return config


def test_backend_without_key_is_unavailable(config):
    backend = OpenRouterBackend(config, BudgetLedger())

    assert not backend.available


@pytest.mark.asyncio
async def test_generate_without_key_raises(config):
    backend = OpenRouterBackend(config, BudgetLedger())

    with pytest.raises(BackendUnavailable):
        await backend.generate(MODEL, "prompt")


@pytest.mark.asyncio
async def test_generate_returns_text_and_records_usage(keyed_config):
    ledger = BudgetLedger()
    with patch("agents.backend._create_model", return_value=FunctionModel(_echo)):
        backend = OpenRouterBackend(keyed_config, ledger)
        text = await backend.generate(MODEL, "x" * 400)

    assert text == "ID-1: a short gloss"
    assert len(ledger.entries) == 1
    entry = ledger.entries[0]
    assert entry.model == MODEL
    assert entry.input_units == 100
    assert entry.output_units == 5
    assert entry.cost > 0


@pytest.mark.asyncio
async def test_agents_are_cached_per_model(keyed_config):
    with patch("agents.backend._create_model", return_value=FunctionModel(_echo)) as create:
        backend = OpenRouterBackend(keyed_config, BudgetLedger())
        await backend.generate(MODEL, "one")
        await backend.generate(MODEL, "two")
        await backend.generate("openai/gpt-4o-mini", "three")

    assert create.call_count == 2


@pytest.mark.asyncio
async def test_provider_error_becomes_backend_error(keyed_config):
    ledger = BudgetLedger()
    with patch("agents.backend._create_model", return_value=FunctionModel(_broken)):
        backend = OpenRouterBackend(keyed_config, ledger)
        with pytest.raises(BackendError, match="upstream 502"):
            await backend.generate(MODEL, "prompt")

    assert ledger.entries == []


@pytest.mark.asyncio
async def test_timeout_becomes_backend_error(keyed_config):
    keyed_config.backend_timeout_seconds = 0.05
    with patch("agents.backend._create_model", return_value=FunctionModel(_slow)):
        backend = OpenRouterBackend(keyed_config, BudgetLedger())
        with pytest.raises(BackendError, match="timed out"):
            await backend.generate(MODEL, "prompt")
