"""Relevance scoring and contradiction candidate selection.

The relevance filter keeps the statements most likely to carry a stance
so that the summarization budget is spent on them:

    score = opinion markers  (5 each, max 30)
          + |sentiment| * 20
          + engagement bonus (ln(weight + 1) * 5, max 25)
          + length bonus     ((len - 100) / 50, max 15)
          + topic diversity  (3 per topic, max 10)

The candidate selector then scores every pair of kept statements for
"contradiction potential". The fallback detector only looks at these
pairs, which keeps it from flagging same-session remarks or statements
about unrelated things.
"""

import logging
import math
from dataclasses import dataclass, field
from itertools import combinations

import lexicon
from models.statement import Statement

logger = logging.getLogger(__name__)

DEFAULT_RELEVANT_LIMIT = 80
DEFAULT_MAX_PAIRS = 25
DEFAULT_MIN_GAP_SECONDS = 86400
POTENTIAL_THRESHOLD = 0.3
SIMILARITY_PENALTY_THRESHOLD = 0.7

DAY_SECONDS = 86400


@dataclass
class StatementProfile:
    """Lexical features of one statement, computed once per run."""

    statement: Statement
    sentiment: float
    topics: list[str]
    entities: list[str]
    strong: bool
    question: bool
    score: float = 0.0


@dataclass
class CandidatePair:
    """Two statements worth checking for a reversal (left is earlier)."""

    left: Statement
    right: Statement
    potential: float
    shared_topics: list[str] = field(default_factory=list)
    shared_entities: list[str] = field(default_factory=list)

    @property
    def gap_days(self) -> float:
        return abs(self.right.timestamp - self.left.timestamp) / DAY_SECONDS


def profile(statement: Statement) -> StatementProfile:
    text = statement.text
    return StatementProfile(
        statement=statement,
        sentiment=lexicon.sentiment_score(text),
        topics=lexicon.detect_topics(text),
        entities=lexicon.extract_entities(text),
        strong=lexicon.has_strong_language(text),
        question=lexicon.is_question(text),
    )


def relevance_score(statement: Statement, features: StatementProfile | None = None) -> float:
    """Score how likely a statement is to express a stance."""
    features = features or profile(statement)
    text = statement.text

    score = min(lexicon.count_opinion_markers(text) * 5, 30)
    score += abs(features.sentiment) * 20
    if statement.weight > 0:
        score += min(math.log(statement.weight + 1) * 5, 25)
    if len(text) > 100:
        score += min((len(text) - 100) / 50, 15)
    score += min(len(features.topics) * 3, 10)
    return score


def select_relevant(
    statements: list[Statement],
    limit: int = DEFAULT_RELEVANT_LIMIT,
) -> list[Statement]:
    """Keep the top ``limit`` statements by relevance.

    Args:
        statements: Normalized statements (chronological)
        limit: Maximum statements to keep

    Returns:
        Selected statements in chronological order
    """
    if len(statements) <= limit:
        return list(statements)

    scored = [(relevance_score(s), i) for i, s in enumerate(statements)]
    # Stable on ties: earlier statements win
    scored.sort(key=lambda pair: (-pair[0], pair[1]))
    keep = sorted(i for _, i in scored[:limit])
    selected = [statements[i] for i in keep]
    logger.info("Relevance filter | input=%d kept=%d", len(statements), len(selected))
    return selected


def contradiction_potential(a: StatementProfile, b: StatementProfile) -> float:
    """Heuristic likelihood that two statements contradict each other."""
    potential = min(abs(a.sentiment - b.sentiment), 0.4)

    shared_topics = set(a.topics) & set(b.topics)
    potential += min(len(shared_topics) * 0.1, 0.3)

    gap_days = abs(a.statement.timestamp - b.statement.timestamp) / DAY_SECONDS
    if gap_days > 30:
        potential += 0.1
    if gap_days > 90:
        potential += 0.1

    if a.strong and b.strong:
        potential += 0.2

    if lexicon.word_similarity(a.statement.text, b.statement.text) > SIMILARITY_PENALTY_THRESHOLD:
        potential -= 0.3

    return max(potential, 0.0)


def find_candidate_pairs(
    statements: list[Statement],
    max_pairs: int = DEFAULT_MAX_PAIRS,
    min_gap_seconds: int = DEFAULT_MIN_GAP_SECONDS,
    threshold: float = POTENTIAL_THRESHOLD,
) -> list[CandidatePair]:
    """Select statement pairs worth checking for contradictions.

    A pair qualifies when the statements are at least ``min_gap_seconds``
    apart, are not both questions, share a topic or an entity, and their
    contradiction potential exceeds ``threshold``.

    Returns:
        Up to ``max_pairs`` pairs, highest potential first
    """
    profiles = [profile(s) for s in sorted(statements, key=lambda s: s.timestamp)]
    pairs: list[CandidatePair] = []

    for a, b in combinations(profiles, 2):
        if abs(b.statement.timestamp - a.statement.timestamp) < min_gap_seconds:
            continue
        if a.question and b.question:
            continue
        shared_topics = sorted(set(a.topics) & set(b.topics))
        shared_entities = sorted({e.lower() for e in a.entities} & {e.lower() for e in b.entities})
        if not shared_topics and not shared_entities:
            continue

        potential = contradiction_potential(a, b)
        if potential <= threshold:
            continue

        left, right = (a, b) if a.statement.timestamp <= b.statement.timestamp else (b, a)
        pairs.append(CandidatePair(
            left=left.statement,
            right=right.statement,
            potential=round(potential, 3),
            shared_topics=shared_topics,
            shared_entities=shared_entities,
        ))

    pairs.sort(key=lambda p: p.potential, reverse=True)
    logger.info("Candidate pairs | statements=%d pairs=%d kept=%d", len(profiles), len(pairs), min(len(pairs), max_pairs))
    return pairs[:max_pairs]
