"""Contradiction stage: detect stance reversals across statements.

Two detectors share one output type (ContradictionFinding):

AI detector:
    Sends every gloss to the backend in one prompt and parses lines of
    the form ``Contradiction between ID-X and ID-Y: description``. The
    model's own confidence is not trusted; confidence is recomputed from
    the time gap, the wording of the description and the venues.

Fallback detector:
    Scans the candidate pairs chosen by the relevance filter for lexical
    antonym patterns (support/oppose, love/hate, ...). Used when the
    backend is not configured, the budget denies the call, the call
    fails, or fewer than two summaries exist.

Confidence Bands:
    AI findings: [50, 95]
    Fallback findings: [60, 90]
    Findings under 70 are flagged for human review.
"""

import logging
import re
from dataclasses import dataclass, field

import lexicon
from agents.backend import TextBackend
from budget import BudgetLedger, estimate_tokens
from config import Config
from models.finding import ContradictionFinding, DetectionMethod, normalize_category
from models.statement import Statement, Summary
from relevance import CandidatePair

logger = logging.getLogger(__name__)

PREMIUM_CONTRADICTION_THRESHOLD = 0.5
AI_CONFIDENCE_BOUNDS = (50, 95)
FALLBACK_CONFIDENCE_BOUNDS = (60, 90)
BASE_AI_CONFIDENCE = 80
DAY_SECONDS = 86400

STRONG_OPPOSITION_PHRASES = ("completely opposite", "directly contradicts", "total reversal", "flip-flop")
SATIRE_VENUE_MARKERS = ("circlejerk", "satire", "jokes", "memes")

_FINDING_LINE_RE = re.compile(
    r"^(?:\d+[.)]\s*)?contradiction between (ID-\d+) and (ID-\d+)\s*(?:\[([^\]]+)\])?\s*:\s*(.+)$",
    re.IGNORECASE,
)

CONTRADICTION_PROMPT = """You are reviewing one Reddit user's statements for genuine contradictions.

Report ONLY direct contradictions: the same person taking opposite positions on the same specific topic.

IGNORE:
- normal opinion evolution over long periods of time
- statements made in different contexts or about different things
- sarcasm, jokes and obvious irony
- hypothetical or conditional statements

For each contradiction write exactly one line:
Contradiction between ID-X and ID-Y [category]: <one-sentence description>

[category] is optional and must be one of: political, personal-preference, factual, opinion, lifestyle, relationship, technology, entertainment.

If there are no genuine contradictions, write exactly:
No contradictions detected.

Statements:
{statements}"""


@dataclass(frozen=True)
class OppositionPattern:
    """Pair of phrase sets that express opposite stances."""

    label: str
    positive: tuple[str, ...]
    negative: tuple[str, ...]
    confidence: int

    @property
    def words(self) -> set[str]:
        return {w for phrase in (*self.positive, *self.negative) for w in phrase.split()}


# Checked in order; the first matching pattern decides a pair
OPPOSITION_PATTERNS = (
    OppositionPattern(
        "Strong stance reversal",
        ("strongly support", "absolutely love", "completely agree"),
        ("strongly oppose", "absolutely hate", "completely disagree"),
        85,
    ),
    OppositionPattern(
        "Support/opposition reversal",
        ("support", "favor", "endorse"),
        ("oppose", "against", "reject"),
        75,
    ),
    OppositionPattern(
        "Preference reversal",
        ("love", "enjoy", "like"),
        ("hate", "despise", "dislike"),
        70,
    ),
)


@dataclass
class DetectionResult:
    """Output of the contradiction stage."""

    findings: list[ContradictionFinding] = field(default_factory=list)
    method: DetectionMethod = DetectionMethod.FALLBACK
    model: str = ""


def _clamp(value: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return max(low, min(high, value))


def _excerpt(text: str, limit: int = 80) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit].rstrip() + "..."


def ai_confidence(left: Statement, right: Statement, description: str) -> int:
    """Recompute confidence for a model-reported contradiction."""
    confidence = BASE_AI_CONFIDENCE
    gap_days = abs(right.timestamp - left.timestamp) / DAY_SECONDS

    if gap_days < 1:
        confidence -= 25
    elif gap_days < 7:
        confidence -= 15
    elif gap_days > 365:
        confidence -= 10

    lower = description.lower()
    if any(phrase in lower for phrase in STRONG_OPPOSITION_PHRASES):
        confidence += 15

    if left.venue.lower() != right.venue.lower():
        venues = f"{left.venue} {right.venue}".lower()
        if any(marker in venues for marker in SATIRE_VENUE_MARKERS):
            confidence -= 20
        else:
            confidence -= 5

    return _clamp(confidence, AI_CONFIDENCE_BOUNDS)


def _has_any(text: str, phrases: tuple[str, ...]) -> bool:
    return any(lexicon.contains_phrase(text, p) for p in phrases)


def match_opposition(left_text: str, right_text: str) -> OppositionPattern | None:
    """First opposition pattern the two texts express, if they share a subject.

    One side must use a positive phrase and the other a negative phrase
    of the same pattern, and the texts must share at least one content
    word besides the pattern's own words.
    """
    a = left_text.lower()
    b = right_text.lower()
    for pattern in OPPOSITION_PATTERNS:
        opposed = (
            (_has_any(a, pattern.positive) and _has_any(b, pattern.negative))
            or (_has_any(a, pattern.negative) and _has_any(b, pattern.positive))
        )
        if not opposed:
            continue
        shared = (lexicon.content_words(a) & lexicon.content_words(b)) - pattern.words
        if shared:
            return pattern
    return None


def build_contradiction_prompt(summaries: list[Summary], statements: dict[str, Statement]) -> str:
    lines = []
    for summary in summaries:
        statement = statements.get(summary.statement_id)
        if statement is None:
            continue
        date = statement.date.strftime("%Y-%m-%d")
        lines.append(f"{summary.statement_id} (r/{statement.venue}, {date}): {summary.gloss}")
    return CONTRADICTION_PROMPT.format(statements="\n".join(lines))


class ContradictionDetector:
    """Finds contradiction findings among summarized statements.

    Example:
        >>> detector = ContradictionDetector(config, backend, ledger)
        >>> result = await detector.detect(summaries, statements, pairs)
        >>> for finding in result.findings:
        ...     print(finding)
    """

    def __init__(self, config: Config, backend: TextBackend, ledger: BudgetLedger):
        """Initialize the contradiction stage.

        Args:
            config: Model, cap and pair-gap settings
            backend: Text-generation backend
            ledger: Budget ledger consulted before the call
        """
        self.config = config
        self.backend = backend
        self.ledger = ledger

    def select_model(self) -> str:
        if self.ledger.remaining > PREMIUM_CONTRADICTION_THRESHOLD:
            return self.config.contradiction_model_premium
        return self.config.contradiction_model

    def _finalize(self, findings: list[ContradictionFinding]) -> list[ContradictionFinding]:
        ordered = sorted(findings, key=lambda f: f.confidence, reverse=True)
        return ordered[: self.config.max_findings]

    def parse_findings(self, text: str, statements: dict[str, Statement]) -> list[ContradictionFinding]:
        """Parse model output into findings.

        Lines naming unknown ids, the same id twice, an already reported
        pair, or two statements from the same venue closer than the
        minimum pair gap are dropped.
        """
        findings: list[ContradictionFinding] = []
        seen: set[frozenset[str]] = set()
        dropped = 0

        for raw_line in text.splitlines():
            line = raw_line.strip().lstrip("-*•> ").replace("**", "").strip()
            match = _FINDING_LINE_RE.match(line)
            if not match:
                continue

            first_id, second_id = match.group(1).upper(), match.group(2).upper()
            tag, description = match.group(3), match.group(4).strip()
            first, second = statements.get(first_id), statements.get(second_id)
            key = frozenset((first_id, second_id))
            if first is None or second is None or first_id == second_id or key in seen:
                dropped += 1
                continue

            left, right = (first, second) if first.timestamp <= second.timestamp else (second, first)
            if (
                left.venue.lower() == right.venue.lower()
                and right.timestamp - left.timestamp < self.config.min_pair_gap_seconds
            ):
                dropped += 1
                continue

            seen.add(key)
            findings.append(ContradictionFinding(
                left_id=left.id,
                right_id=right.id,
                description=description,
                confidence=ai_confidence(left, right, description),
                category=normalize_category(tag) if tag else lexicon.detect_category(description),
                method=DetectionMethod.AI,
            ))

        if dropped:
            logger.debug("Contradiction lines dropped | count=%d", dropped)
        return self._finalize(findings)

    def detect_fallback(self, pairs: list[CandidatePair]) -> list[ContradictionFinding]:
        """Lexical antonym detection over candidate pairs."""
        findings = []
        for pair in pairs:
            left, right = pair.left, pair.right
            if left.venue.lower() == right.venue.lower() and pair.gap_days * DAY_SECONDS < self.config.min_pair_gap_seconds:
                continue
            pattern = match_opposition(left.text, right.text)
            if pattern is None:
                continue
            findings.append(ContradictionFinding(
                left_id=left.id,
                right_id=right.id,
                description=f'{pattern.label}: "{_excerpt(left.text)}" vs "{_excerpt(right.text)}"',
                confidence=_clamp(pattern.confidence, FALLBACK_CONFIDENCE_BOUNDS),
                category=lexicon.detect_category(f"{left.text} {right.text}"),
                method=DetectionMethod.FALLBACK,
            ))
        findings = self._finalize(findings)
        logger.info("Fallback detection complete | pairs=%d findings=%d", len(pairs), len(findings))
        return findings

    async def detect(
        self,
        summaries: list[Summary],
        statements: list[Statement],
        candidate_pairs: list[CandidatePair],
        force_fallback: bool = False,
    ) -> DetectionResult:
        """Detect contradictions, preferring the backend when usable.

        Args:
            summaries: One gloss per statement
            statements: Statements the summaries refer to
            candidate_pairs: Pairs used by the fallback detector
            force_fallback: Skip the backend entirely (e.g. budget exceeded)

        Returns:
            DetectionResult with findings and the detector that produced them
        """
        by_id = {s.id: s for s in statements}

        if force_fallback or not self.backend.available or len(summaries) < 2 or self.ledger.is_exceeded:
            return DetectionResult(findings=self.detect_fallback(candidate_pairs))

        model = self.select_model()
        prompt = build_contradiction_prompt(summaries, by_id)
        if not self.ledger.can_afford(model, estimate_tokens(prompt)):
            logger.info("Budget denies contradiction call; using fallback | model=%s", model)
            return DetectionResult(findings=self.detect_fallback(candidate_pairs))

        try:
            response = await self.backend.generate(model, prompt)
        except Exception as e:
            logger.warning("Contradiction call failed; using fallback | error=%s", e)
            return DetectionResult(findings=self.detect_fallback(candidate_pairs))

        findings = self.parse_findings(response, by_id)
        logger.info("AI detection complete | model=%s summaries=%d findings=%d", model, len(summaries), len(findings))
        return DetectionResult(findings=findings, method=DetectionMethod.AI, model=model)
