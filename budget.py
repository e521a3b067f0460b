"""Budget ledger for metered text-generation calls.

Every successful backend call is recorded as a LedgerEntry with its
estimated input/output tokens and dollar cost. Stages consult the ledger
before each call (can_afford) and pick cheaper model tiers as the
remaining budget shrinks.

Ledger Semantics:
    - Append-only: entries are never edited
    - Spend never decreases during a session; only reset() clears it
    - Once spend reaches the cap, ``exceeded`` stays set until reset()
    - On load, entries older than the rolling window are discarded

Persistence:
    JSON file ``{"entries": [LedgerEntry, ...]}``. A missing or unreadable
    file starts an empty ledger.
"""

import json
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from models.budget import BudgetStatus, LedgerEntry

logger = logging.getLogger(__name__)

DEFAULT_CAP = 5.0
DEFAULT_WARNING_PERCENT = 80.0
DEFAULT_WINDOW_HOURS = 24
DEFAULT_OUTPUT_ESTIMATE = 500


@dataclass(frozen=True)
class ModelPrice:
    """Dollars per one million input/output tokens."""

    input: float
    output: float


FREE = ModelPrice(0.0, 0.0)

DEFAULT_PRICING: dict[str, ModelPrice] = {
    # Free tier
    "mistralai/mistral-7b-instruct:free": FREE,
    "mistralai/mistral-small-3.2-24b-instruct:free": FREE,
    "google/gemma-7b-it:free": FREE,
    "deepseek/deepseek-llm-7b-chat:free": FREE,
    "openchat/openchat-3.5:free": FREE,
    # Paid
    "openai/gpt-4o": ModelPrice(2.50, 10.00),
    "openai/gpt-4o-mini": ModelPrice(0.15, 0.60),
    "anthropic/claude-3.5-sonnet": ModelPrice(3.00, 15.00),
    "google/gemini-pro-1.5": ModelPrice(1.25, 5.00),
    "mistralai/mixtral-8x7b-instruct": ModelPrice(0.24, 0.24),
}


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters."""
    return math.ceil(len(text) / 4)


class BudgetLedger:
    """Tracks spend against a per-session dollar cap.

    Example:
        >>> ledger = BudgetLedger(cap=5.0)
        >>> ledger.can_afford("anthropic/claude-3.5-sonnet", 2000)
        True
        >>> entry = ledger.record_usage("anthropic/claude-3.5-sonnet", 2000, 500)
        >>> round(entry.cost, 4)
        0.0135
    """

    def __init__(
        self,
        cap: float = DEFAULT_CAP,
        warning_percent: float = DEFAULT_WARNING_PERCENT,
        pricing: dict[str, ModelPrice] | None = None,
        path: Path | str | None = None,
        window_hours: int = DEFAULT_WINDOW_HOURS,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the ledger, loading persisted entries if a path is given.

        Args:
            cap: Maximum spend in dollars
            warning_percent: Spend percentage that raises the warning flag
            pricing: Model price table (defaults to DEFAULT_PRICING)
            path: Optional JSON file for persistence
            window_hours: Entries older than this are dropped on load
            clock: Time source (epoch seconds)
        """
        self.cap = cap
        self.warning_percent = warning_percent
        self.pricing = pricing if pricing is not None else DEFAULT_PRICING
        self.path = Path(path) if path else None
        self.window_hours = window_hours
        self._clock = clock
        self._entries: list[LedgerEntry] = []
        self._warned_models: set[str] = set()
        self._exceeded_latched = False

        if self.path:
            self.load()

    # === Pricing ===

    def price(self, model: str) -> ModelPrice:
        price = self.pricing.get(model)
        if price is None:
            if model not in self._warned_models:
                logger.warning("Unknown model pricing; treating as free | model=%s", model)
                self._warned_models.add(model)
            return FREE
        return price

    def calculate_cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        """Dollar cost of a call with the given token counts."""
        price = self.price(model)
        return (input_tokens / 1_000_000) * price.input + (output_tokens / 1_000_000) * price.output

    def is_free(self, model: str) -> bool:
        price = self.price(model)
        return price.input == 0 and price.output == 0

    # === Spend tracking ===

    @property
    def entries(self) -> list[LedgerEntry]:
        return list(self._entries)

    @property
    def spent(self) -> float:
        return sum(entry.cost for entry in self._entries)

    @property
    def remaining(self) -> float:
        return max(self.cap - self.spent, 0.0)

    @property
    def is_exceeded(self) -> bool:
        return self._exceeded_latched or self.spent >= self.cap

    def can_afford(
        self,
        model: str,
        estimated_input: int,
        estimated_output: int = DEFAULT_OUTPUT_ESTIMATE,
    ) -> bool:
        """Whether a call of this size fits in the remaining budget."""
        if self.is_exceeded:
            return False
        cost = self.calculate_cost(model, estimated_input, estimated_output)
        return self.remaining >= cost

    def record_usage(self, model: str, input_tokens: int, output_tokens: int) -> LedgerEntry:
        """Append a ledger entry for a completed call.

        Args:
            model: Model id the call was made against
            input_tokens: Input token count (estimated or reported)
            output_tokens: Output token count (estimated or reported)

        Returns:
            The appended entry
        """
        entry = LedgerEntry(
            model=model,
            input_units=input_tokens,
            output_units=output_tokens,
            cost=self.calculate_cost(model, input_tokens, output_tokens),
            timestamp=self._clock(),
        )
        self._entries.append(entry)

        status = self.status()
        if status.exceeded:
            self._exceeded_latched = True
            logger.warning("Budget exceeded | spent=%.4f cap=%.2f", status.spent, self.cap)
        elif status.warning:
            logger.warning("Budget warning | spent=%.4f cap=%.2f percentage=%.1f", status.spent, self.cap, status.percentage)
        logger.debug(
            "Usage recorded | model=%s input=%d output=%d cost=%.6f",
            model, input_tokens, output_tokens, entry.cost,
        )
        return entry

    def status(self) -> BudgetStatus:
        spent = self.spent
        percentage = (spent / self.cap * 100) if self.cap > 0 else 100.0
        return BudgetStatus(
            spent=spent,
            remaining=self.remaining,
            percentage=percentage,
            cap=self.cap,
            warning=percentage >= self.warning_percent,
            exceeded=self._exceeded_latched or spent >= self.cap,
        )

    def usage_stats(self) -> dict[str, Any]:
        """Totals and a per-model breakdown of recorded usage."""
        by_model: dict[str, dict[str, Any]] = {}
        for entry in self._entries:
            stats = by_model.setdefault(entry.model, {
                "calls": 0,
                "cost": 0.0,
                "input_tokens": 0,
                "output_tokens": 0,
                "free": self.is_free(entry.model),
            })
            stats["calls"] += 1
            stats["cost"] += entry.cost
            stats["input_tokens"] += entry.input_units
            stats["output_tokens"] += entry.output_units
        return {
            "total_calls": len(self._entries),
            "total_cost": self.spent,
            "by_model": by_model,
        }

    def reset(self) -> None:
        """Clear all entries and the exceeded latch."""
        self._entries.clear()
        self._exceeded_latched = False
        logger.info("Budget ledger reset")

    def set_cap(self, cap: float) -> None:
        """Change the spend cap. Does not clear an exceeded latch."""
        if cap < 0:
            raise ValueError("Budget cap must be non-negative")
        self.cap = cap
        logger.info("Budget cap updated | cap=%.2f", cap)

    # === Persistence ===

    def load(self) -> None:
        """Load entries from disk, keeping only those inside the window."""
        if not self.path or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            entries = [LedgerEntry.model_validate(e) for e in data.get("entries", [])]
        except (OSError, ValueError, ValidationError, AttributeError) as e:
            logger.warning("Budget ledger unreadable; starting empty | path=%s error=%s", self.path, e)
            return

        cutoff = self._clock() - self.window_hours * 3600
        self._entries = [e for e in entries if e.timestamp >= cutoff]
        logger.debug(
            "Budget ledger loaded | entries=%d expired=%d spent=%.4f",
            len(self._entries), len(entries) - len(self._entries), self.spent,
        )

    def save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"entries": [e.model_dump(mode="json") for e in self._entries]}
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
