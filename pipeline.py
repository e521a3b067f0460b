"""Main pipeline orchestration for contradiction analysis.

This module coordinates the entire analysis workflow for one subject:

Pipeline Flow:
    1. FETCH: Get the subject's raw comments and posts from the source
    2. CACHE: Return the cached report if the content fingerprint matches
    3. NORMALIZE: Filter, deduplicate and number statements
    4. SELECT: Keep the most relevant statements, pick candidate pairs
    5. SUMMARIZE: Batched glosses (backend or local fallback)
    6. DETECT: Contradictions over all glosses (backend or lexical fallback)
    7. ASSEMBLE: Narrative, timeline and stats
    8. STORE: Cache the report, persist cache and budget ledger

Failure Model:
    Analyze always returns a Report. Source failures and unexpected
    errors become failure reports; backend failures are absorbed by the
    stages; an exhausted budget routes both stages to their fallbacks.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, asdict
from typing import Any

from agents.backend import OpenRouterBackend, TextBackend
from agents.detector import ContradictionDetector
from agents.summarizer import Summarizer
from budget import BudgetLedger
from cache import ResultCache
from config import Config
from errors import SourceUnavailable
from models.finding import DetectionMethod
from models.report import AnalysisMethod, Report
from normalizer import normalize
from observability.logging import set_run_context, clear_context
from observability.tracing import setup_tracing, trace_operation
from relevance import find_candidate_pairs, select_relevant
from reporting import assemble_report, empty_report, failure_report
from source import RedditSource, StatementSource

logger = logging.getLogger(__name__)

_SUBJECT_PREFIXES = ("/u/", "u/", "@")


@dataclass
class PipelineStats:
    """Statistics from a single analysis run.

    Attributes:
        fetched: Raw comments and posts returned by the source
        statements: Statements left after normalization
        relevant: Statements kept by the relevance filter
        candidate_pairs: Pairs chosen for heuristic detection
        ai_batches: Summary batches answered by the backend
        fallback_batches: Summary batches summarized locally
        fallback_summaries: Statements glossed locally
        findings: Findings in the final report
        cache_hit: Report served from cache
        budget_exceeded: Both stages were routed to fallback
        spent: Ledger spend after the run (dollars)
        duration: Total run time in seconds
    """

    fetched: int = 0
    statements: int = 0
    relevant: int = 0
    candidate_pairs: int = 0
    ai_batches: int = 0
    fallback_batches: int = 0
    fallback_summaries: int = 0
    findings: int = 0
    cache_hit: bool = False
    budget_exceeded: bool = False
    spent: float = 0.0
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        d["spent"] = round(d["spent"], 6)
        return d


def normalize_subject(subject: str) -> str:
    """Strip whitespace and a leading ``u/`` style prefix from a username."""
    name = subject.strip()
    for prefix in _SUBJECT_PREFIXES:
        if name.lower().startswith(prefix):
            name = name[len(prefix):]
            break
    return name.strip()


class Analyzer:
    """Contradiction analysis pipeline for a single subject at a time.

    Collaborators are injected so tests and callers can swap the source,
    backend, ledger and cache; any that are omitted are built from config.

    Components:
        - StatementSource: raw comments/posts (Reddit by default)
        - BudgetLedger: spend tracking, persisted to LEDGER_PATH
        - ResultCache: fingerprinted report cache, persisted to CACHE_PATH
        - TextBackend: OpenRouter via PydanticAI
        - Summarizer / ContradictionDetector: the two generation stages

    Example:
        >>> analyzer = Analyzer(config, source=StaticSource.from_file("user.json"))
        >>> report = await analyzer.analyze("u/some_user")
        >>> print(report.narrative)
    """

    def __init__(
        self,
        config: Config,
        source: StatementSource,
        backend: TextBackend | None = None,
        ledger: BudgetLedger | None = None,
        cache: ResultCache | None = None,
    ):
        """Initialize pipeline with all components.

        Args:
            config: Application configuration
            source: Where raw content comes from
            backend: Text-generation backend (default: OpenRouterBackend)
            ledger: Budget ledger (default: loaded from config.ledger_path)
            cache: Result cache (default: loaded from config.cache_path)
        """
        self.config = config
        self.source = source
        self.ledger = ledger if ledger is not None else BudgetLedger(
            cap=config.budget_max_dollars,
            warning_percent=config.budget_warning_percent,
            path=config.ledger_path,
            window_hours=config.ledger_window_hours,
        )
        self.cache = cache if cache is not None else ResultCache(
            path=config.cache_path,
            ttl_seconds=config.cache_ttl_hours * 3600,
            max_entries=config.cache_max_entries,
        )
        self.backend = backend if backend is not None else OpenRouterBackend(config, self.ledger)
        self.summarizer = Summarizer(config, self.backend, self.ledger)
        self.detector = ContradictionDetector(config, self.backend, self.ledger)
        self.last_stats: PipelineStats | None = None

        # Optional: Distributed tracing
        if config.enable_logfire:
            setup_tracing(enabled=True, service_name="stancecheck", token=config.logfire_token)

    async def analyze(self, subject: str, refresh: bool = False) -> Report:
        """Analyze one subject and return its report.

        Args:
            subject: Username, with or without a ``u/`` prefix
            refresh: Ignore a cached report and recompute

        Returns:
            Report (never raises for source or backend failures)
        """
        name = normalize_subject(subject)
        run_id = uuid.uuid4().hex[:8]
        set_run_context(run_id, name or "-")
        start = time.time()
        stats = PipelineStats()

        logger.info("Analysis started | subject=%s refresh=%s backend=%s", name, refresh, self.backend.available)

        try:
            if not name:
                return failure_report(subject, "empty username")
            with trace_operation("analyze", {"subject": name}) as attrs:
                report = await self._analyze(name, refresh, stats)
                attrs.update(stats.to_dict())
            return report
        except SourceUnavailable as e:
            logger.warning("Source unavailable | subject=%s error=%s", name, e)
            return failure_report(name, str(e))
        except asyncio.CancelledError:
            logger.info("Analysis cancelled | subject=%s", name)
            raise
        except Exception as e:
            logger.error("Analysis error | subject=%s type=%s error=%s", name, type(e).__name__, e, exc_info=True)
            return failure_report(name, f"{type(e).__name__}: {e}")
        finally:
            stats.spent = self.ledger.spent
            stats.duration = time.time() - start
            self.last_stats = stats
            self.persist()
            logger.info("Analysis finished | %s", " ".join(f"{k}={v}" for k, v in stats.to_dict().items()))
            clear_context()

    async def _analyze(self, name: str, refresh: bool, stats: PipelineStats) -> Report:
        with trace_operation("fetch"):
            content = await self.source.fetch(name)
        stats.fetched = content.item_count
        fingerprint = content.fingerprint

        if not refresh:
            cached = self.cache.get(name, fingerprint)
            if cached is not None:
                stats.cache_hit = True
                stats.findings = len(cached.findings)
                return cached

        statements = normalize(content)
        stats.statements = len(statements)
        if not statements:
            logger.info("No usable content | subject=%s raw=%d", name, content.item_count)
            return empty_report(name)

        relevant = select_relevant(statements, self.config.max_relevant_statements)
        pairs = find_candidate_pairs(
            relevant,
            max_pairs=self.config.max_candidate_pairs,
            min_gap_seconds=self.config.min_pair_gap_seconds,
        )
        stats.relevant = len(relevant)
        stats.candidate_pairs = len(pairs)

        if self.ledger.is_exceeded:
            stats.budget_exceeded = True
            logger.info("Budget exceeded; routing to fallback | spent=%.4f cap=%.2f", self.ledger.spent, self.ledger.cap)

        with trace_operation("summarize", {"statements": len(relevant)}):
            summarization = await self.summarizer.summarize(relevant, force_fallback=stats.budget_exceeded)
        stats.ai_batches = summarization.ai_batches
        stats.fallback_batches = summarization.fallback_batches
        stats.fallback_summaries = summarization.fallback_count

        with trace_operation("detect", {"summaries": len(summarization.summaries)}):
            detection = await self.detector.detect(
                summarization.summaries,
                relevant,
                pairs,
                force_fallback=stats.budget_exceeded,
            )

        method = AnalysisMethod.AI if detection.method == DetectionMethod.AI else AnalysisMethod.FALLBACK
        report = assemble_report(
            name,
            statements,
            summarization.summaries,
            detection.findings,
            method,
            fallback_summaries=summarization.fallback_count,
        )
        stats.findings = len(report.findings)
        self.cache.set(name, fingerprint, report)
        return report

    def persist(self) -> None:
        """Write cache and ledger to disk; failures are logged, not raised."""
        try:
            self.cache.save()
            self.ledger.save()
        except OSError as e:
            logger.error("Failed to persist state | error=%s", e, exc_info=True)


async def analyze(
    config: Config,
    subject: str,
    source: StatementSource | None = None,
    refresh: bool = False,
) -> tuple[Report, dict[str, Any]]:
    """Run one analysis and return the report with its stats dict.

    Args:
        config: Application configuration
        subject: Username to analyze
        source: Content source (default: RedditSource)
        refresh: Ignore cached reports
    """
    if source is not None:
        analyzer = Analyzer(config, source)
        report = await analyzer.analyze(subject, refresh=refresh)
        return report, analyzer.last_stats.to_dict()

    async with RedditSource(config) as reddit:
        analyzer = Analyzer(config, reddit)
        report = await analyzer.analyze(subject, refresh=refresh)
        return report, analyzer.last_stats.to_dict()
