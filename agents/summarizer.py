"""Summarization stage: one stance-preserving gloss per statement.

Statements are packed into batches under a token budget and each batch
is sent to the backend as a single prompt. The response is parsed line
by line (``ID-n: gloss``); any statement the model skipped, and every
statement of a batch that could not be sent, gets a deterministic local
gloss instead. The stage therefore always returns exactly one Summary
per input statement, in input order.

Model Selection:
    The premium summarizer is used while the ledger has more than
    PREMIUM_SUMMARY_THRESHOLD dollars left, the free-tier model otherwise.

Pacing:
    Batches run through a semaphore-bounded worker pool (size
    MAX_CONCURRENT_BATCHES, default 1) with BATCH_DELAY_SECONDS between
    backend calls.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field

import lexicon
from agents.backend import TextBackend
from batching import partition
from budget import BudgetLedger, estimate_tokens
from config import Config
from models.statement import Statement, Summary

logger = logging.getLogger(__name__)

PREMIUM_SUMMARY_THRESHOLD = 1.0
PROMPT_TEXT_CHARS = 500
FALLBACK_EXCERPT_CHARS = 200

_SUMMARY_LINE_RE = re.compile(r"^(?:\d+[.)]\s*)?(ID-\d+)\s*:\s*(.+)$", re.IGNORECASE)

SUMMARY_PROMPT = """Summarize each of the following Reddit statements in one sentence.

For every statement preserve:
- the stance taken (what the author is for or against)
- the sentiment polarity (positive, negative, neutral)
- the emotional intensity (calm, heated, emphatic)

Write exactly one line per statement using this format and nothing else:
ID-X: <one-sentence summary>

Statements:
{statements}"""


@dataclass
class SummarizationResult:
    """Output of the summarization stage.

    Attributes:
        summaries: One Summary per input statement, input order
        ai_batches: Batches answered by the backend
        fallback_batches: Batches summarized entirely locally
        model: Model id selected for this run (empty if none was used)
    """

    summaries: list[Summary] = field(default_factory=list)
    ai_batches: int = 0
    fallback_batches: int = 0
    model: str = ""

    @property
    def fallback_count(self) -> int:
        return sum(1 for s in self.summaries if s.fallback)


def fallback_summary(statement: Statement) -> Summary:
    """Deterministic gloss: excerpt annotated with lexical labels."""
    text = statement.text
    excerpt = text[:FALLBACK_EXCERPT_CHARS] + "..." if len(text) > FALLBACK_EXCERPT_CHARS else text
    gloss = (
        f"{excerpt} ({lexicon.sentiment_label(text)} sentiment, "
        f"{lexicon.stance_label(text)} stance, "
        f"{lexicon.intensity_label(text)} intensity)"
    )
    return Summary(statement_id=statement.id, gloss=gloss, fallback=True)


def build_summary_prompt(batch: list[Statement]) -> str:
    lines = []
    for statement in batch:
        text = statement.text[:PROMPT_TEXT_CHARS].replace("\n", " ")
        date = statement.date.strftime("%Y-%m-%d")
        lines.append(f'{statement.id} (r/{statement.venue}, {date}): "{text}"')
    return SUMMARY_PROMPT.format(statements="\n".join(lines))


def parse_summaries(text: str, expected_ids: set[str]) -> dict[str, str]:
    """Extract ``ID-n: gloss`` lines from a model response.

    Leading bullets and markdown bold are tolerated. Ids outside
    ``expected_ids`` and repeated ids are ignored (first line wins).
    """
    parsed: dict[str, str] = {}
    malformed = 0
    for raw_line in text.splitlines():
        line = raw_line.strip().lstrip("-*•> ").replace("**", "").strip()
        if not line:
            continue
        match = _SUMMARY_LINE_RE.match(line)
        if not match:
            malformed += 1
            continue
        statement_id = match.group(1).upper()
        gloss = match.group(2).strip()
        if statement_id in expected_ids and statement_id not in parsed and gloss:
            parsed[statement_id] = gloss
    if malformed:
        logger.debug("Summary response lines ignored | count=%d", malformed)
    return parsed


class Summarizer:
    """Produces one gloss per statement, using the backend when it can.

    Example:
        >>> summarizer = Summarizer(config, backend, ledger)
        >>> result = await summarizer.summarize(statements)
        >>> len(result.summaries) == len(statements)
        True
    """

    def __init__(self, config: Config, backend: TextBackend, ledger: BudgetLedger):
        """Initialize the summarization stage.

        Args:
            config: Batch size, pacing and model settings
            backend: Text-generation backend
            ledger: Budget ledger consulted before every batch
        """
        self.config = config
        self.backend = backend
        self.ledger = ledger

    def select_model(self) -> str:
        if self.ledger.remaining > PREMIUM_SUMMARY_THRESHOLD:
            return self.config.summarizer_model_premium
        return self.config.summarizer_model

    async def _summarize_batch(self, batch: list[Statement], model: str) -> tuple[list[Summary], bool]:
        """Summarize one batch; returns (summaries, answered_by_backend)."""
        prompt = build_summary_prompt(batch)
        if not self.ledger.can_afford(model, estimate_tokens(prompt)):
            logger.info("Budget denies summary batch; using fallback | model=%s statements=%d", model, len(batch))
            return [fallback_summary(s) for s in batch], False

        try:
            response = await self.backend.generate(model, prompt)
        except Exception as e:
            logger.warning("Summary batch failed; using fallback | statements=%d error=%s", len(batch), e)
            return [fallback_summary(s) for s in batch], False

        parsed = parse_summaries(response, {s.id for s in batch})
        summaries = [
            Summary(statement_id=s.id, gloss=parsed[s.id]) if s.id in parsed else fallback_summary(s)
            for s in batch
        ]
        missing = len(batch) - len(parsed)
        if missing:
            logger.info("Summary response incomplete; filled locally | missing=%d of=%d", missing, len(batch))
        return summaries, True

    async def summarize(
        self,
        statements: list[Statement],
        force_fallback: bool = False,
    ) -> SummarizationResult:
        """Summarize all statements.

        Args:
            statements: Statements to summarize
            force_fallback: Skip the backend entirely (e.g. budget exceeded)

        Returns:
            SummarizationResult with exactly one summary per statement
        """
        if not statements:
            return SummarizationResult()

        batches = partition(statements, self.config.batch_token_limit)
        use_backend = self.backend.available and not force_fallback and not self.ledger.is_exceeded

        if not use_backend:
            logger.info("Summarization using fallback | statements=%d batches=%d", len(statements), len(batches))
            return SummarizationResult(
                summaries=[fallback_summary(s) for s in statements],
                fallback_batches=len(batches),
            )

        model = self.select_model()
        total = len(batches)
        completed = 0
        semaphore = asyncio.Semaphore(self.config.max_concurrent_batches)

        logger.info(
            "Summarization started | statements=%d batches=%d model=%s max_concurrent=%d",
            len(statements), total, model, self.config.max_concurrent_batches,
        )

        async def summarize_one(index: int, batch: list[Statement]) -> tuple[list[Summary], bool]:
            nonlocal completed
            async with semaphore:
                summaries, used_backend = await self._summarize_batch(batch, model)
                completed += 1
                logger.debug("Summarization progress: %d/%d", completed, total)
                if used_backend and index < total - 1 and self.config.batch_delay_seconds > 0:
                    await asyncio.sleep(self.config.batch_delay_seconds)
                return summaries, used_backend

        tasks = [summarize_one(i, b) for i, b in enumerate(batches)]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        output = SummarizationResult(model=model)
        for batch, result in zip(batches, results):
            if isinstance(result, Exception):
                logger.error("Summary batch error | statements=%d error=%s", len(batch), result, exc_info=result)
                output.summaries.extend(fallback_summary(s) for s in batch)
                output.fallback_batches += 1
                continue
            summaries, used_backend = result
            output.summaries.extend(summaries)
            if used_backend:
                output.ai_batches += 1
            else:
                output.fallback_batches += 1

        logger.info(
            "Summarization complete | statements=%d ai_batches=%d fallback_batches=%d fallback_summaries=%d",
            len(statements), output.ai_batches, output.fallback_batches, output.fallback_count,
        )
        return output
