"""Text-generation backend over OpenRouter's OpenAI-compatible API.

This module wraps PydanticAI agents so the summarization and
contradiction stages only see a small interface:

    backend.available            -> bool
    await backend.generate(model, prompt) -> str

Design:
    - One plain-text PydanticAI agent per model id, created lazily
    - Every call runs under a hard deadline (asyncio.wait_for)
    - Every successful call is recorded in the budget ledger using the
      ceil(len / 4) token estimate for prompt and completion
    - Every failure is raised as BackendError; callers decide how to
      fall back
"""

import asyncio
import logging
from typing import Protocol

from openai import AsyncOpenAI
from pydantic_ai import Agent, UsageLimits
from pydantic_ai.models.openai import OpenAIModel
from pydantic_ai.providers.openai import OpenAIProvider

from budget import BudgetLedger, estimate_tokens
from config import Config
from errors import BackendError, BackendUnavailable

logger = logging.getLogger(__name__)

# Identifies the app on OpenRouter's dashboards
APP_HEADERS = {
    "HTTP-Referer": "https://github.com/stancecheck/stancecheck",
    "X-Title": "Stancecheck",
}

SYSTEM_PROMPT = (
    "You are a careful analyst of public statements. Follow the requested "
    "output format exactly and do not add commentary outside it."
)


class TextBackend(Protocol):
    """Interface used by the pipeline stages."""

    @property
    def available(self) -> bool: ...

    async def generate(self, model: str, prompt: str) -> str: ...


def _create_client(config: Config) -> AsyncOpenAI:
    return AsyncOpenAI(
        base_url=config.openrouter_base_url,
        api_key=config.openrouter_api_key,
        timeout=config.backend_timeout_seconds,
        max_retries=0,
        default_headers=APP_HEADERS,
    )


def _create_model(model_id: str, client: AsyncOpenAI):
    """Create a PydanticAI model bound to the shared OpenRouter client."""
    return OpenAIModel(
        model_name=model_id,
        provider=OpenAIProvider(openai_client=client),
    )


def _create_agent(model_id: str, client: AsyncOpenAI) -> Agent[None, str]:
    """Create a plain-text agent for one model id.

    Retries are left to the stages: a failed call falls back to the
    deterministic path instead of being retried against a metered API.
    """
    return Agent(
        _create_model(model_id, client),
        output_type=str,
        system_prompt=SYSTEM_PROMPT,
        retries=0,
    )


class OpenRouterBackend:
    """Metered text generation through OpenRouter.

    Example:
        >>> backend = OpenRouterBackend(config, ledger)
        >>> if backend.available:
        ...     text = await backend.generate("openai/gpt-4o-mini", prompt)
    """

    def __init__(self, config: Config, ledger: BudgetLedger):
        """Initialize the backend.

        Args:
            config: Application configuration with API key and limits
            ledger: Budget ledger that records every successful call
        """
        self.config = config
        self.ledger = ledger
        self.timeout = config.backend_timeout_seconds
        self._client = _create_client(config) if config.backend_configured else None
        self._agents: dict[str, Agent[None, str]] = {}

    @property
    def available(self) -> bool:
        return self._client is not None

    def _agent(self, model: str) -> Agent[None, str]:
        agent = self._agents.get(model)
        if agent is None:
            agent = _create_agent(model, self._client)
            self._agents[model] = agent
        return agent

    async def generate(self, model: str, prompt: str) -> str:
        """Run one completion and record its usage.

        Args:
            model: OpenRouter model id
            prompt: Full user prompt

        Returns:
            Completion text (stripped)

        Raises:
            BackendUnavailable: No API key configured
            BackendError: Timeout, HTTP or provider failure
        """
        if not self.available:
            raise BackendUnavailable("No OPENROUTER_API_KEY configured")

        try:
            result = await asyncio.wait_for(
                self._agent(model).run(
                    prompt,
                    model_settings={
                        "temperature": 0.1,
                        "max_tokens": self.config.max_output_tokens,
                        "top_p": 0.9,
                    },
                    usage_limits=UsageLimits(request_limit=1),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning("Backend call timed out | model=%s timeout=%.0fs", model, self.timeout)
            raise BackendError(f"Request to {model} timed out after {self.timeout:.0f}s") from e
        except Exception as e:
            logger.warning("Backend call failed | model=%s error=%s type=%s", model, e, type(e).__name__)
            raise BackendError(f"Request to {model} failed: {e}") from e

        text = (result.output or "").strip()
        self.ledger.record_usage(model, estimate_tokens(prompt), estimate_tokens(text))
        logger.debug("Backend call complete | model=%s prompt_chars=%d output_chars=%d", model, len(prompt), len(text))
        return text
