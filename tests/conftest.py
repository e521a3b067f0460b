"""Shared fixtures: configs with temp paths, fake backends, item factories."""

import pytest

from budget import BudgetLedger
from cache import ResultCache
from config import Config
from models.statement import SourceContent, SourceItem, Statement

DAY = 86400
BASE_TS = 1_600_000_000


class FakeBackend:
    """In-memory TextBackend.

    ``responses`` is either a callable ``(model, prompt) -> str`` or a list
    of strings returned in order (empty string once exhausted).
    """

    def __init__(self, responses=None, available=True, error=None, ledger=None):
        self._responses = responses if callable(responses) else list(responses or [])
        self._available = available
        self.error = error
        self.ledger = ledger
        self.calls: list[tuple[str, str]] = []

    @property
    def available(self) -> bool:
        return self._available

    async def generate(self, model: str, prompt: str) -> str:
        self.calls.append((model, prompt))
        if self.error is not None:
            raise self.error
        if callable(self._responses):
            text = self._responses(model, prompt)
        else:
            text = self._responses.pop(0) if self._responses else ""
        if self.ledger is not None:
            self.ledger.record_usage(model, 1000, 200)
        return text


@pytest.fixture
def config(tmp_path):
    return Config(
        openrouter_api_key="",
        ledger_path=tmp_path / "budget.json",
        cache_path=tmp_path / "cache.json",
        log_dir=tmp_path / "log",
        batch_delay_seconds=0.0,
    )


@pytest.fixture
def ledger():
    return BudgetLedger(cap=5.0)


@pytest.fixture
def cache():
    return ResultCache()


@pytest.fixture
def make_item():
    def _make(text, days=0, venue="pizza", weight=1, title=None, permalink=""):
        return SourceItem(
            text=text,
            timestamp=BASE_TS + int(days * DAY),
            venue=venue,
            weight=weight,
            title=title,
            permalink=permalink,
        )
    return _make


@pytest.fixture
def make_statement():
    def _make(sid, text, days=0.0, venue="pizza", weight=1):
        return Statement(
            id=sid,
            text=text,
            timestamp=BASE_TS + int(days * DAY),
            venue=venue,
            weight=weight,
        )
    return _make


@pytest.fixture
def pizza_content(make_item):
    """Two opposing comments about pineapple pizza, 400 days apart."""
    return SourceContent(
        subject="pizza_fan",
        comments=[
            make_item("I love pineapple pizza", days=0),
            make_item("I hate pineapple pizza", days=400),
        ],
    )
