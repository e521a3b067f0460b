"""Content normalization and near-duplicate removal.

Turns the raw comments and posts of a subject into the statement set the
rest of the pipeline works on.

Filtering:
    - Empty text and tombstones ("[deleted]", "[removed]") are dropped
    - Text shorter than MIN_STATEMENT_CHARS is dropped
    - Posts without a body are dropped (link posts carry no stance)
    - Malformed records (missing or invalid fields) are dropped

Deduplication Strategy:
    Statements are clustered by a signature computed from:
    - Lower-cased text
    - Non-word characters replaced by spaces, whitespace collapsed
    - First SIGNATURE_LENGTH characters only

    Within a cluster the highest-weight statement survives; ties go to
    the most recent one. Reposts and copy-pasted comments therefore
    collapse to the best-received copy.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from models.statement import SourceContent, SourceItem, Statement, StatementKind

logger = logging.getLogger(__name__)

MIN_STATEMENT_CHARS = 20
SIGNATURE_LENGTH = 100
TOMBSTONES = frozenset({"[deleted]", "[removed]"})

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def signature(text: str) -> str:
    """Near-duplicate signature of a text."""
    normalized = _NON_WORD_RE.sub(" ", text.lower())
    normalized = _WHITESPACE_RE.sub(" ", normalized).strip()
    return normalized[:SIGNATURE_LENGTH]


def _is_usable(text: str | None, min_chars: int) -> bool:
    if not text:
        return False
    stripped = text.strip()
    return stripped not in TOMBSTONES and len(stripped) >= min_chars


def coerce_items(raw: Iterable[SourceItem | Mapping[str, Any]]) -> list[SourceItem]:
    """Validate raw records into SourceItems, dropping malformed ones."""
    items = []
    dropped = 0
    for record in raw:
        if isinstance(record, SourceItem):
            items.append(record)
            continue
        try:
            items.append(SourceItem.model_validate(record))
        except ValidationError as e:
            dropped += 1
            logger.debug("Dropping malformed item | errors=%d", e.error_count())
    if dropped:
        logger.debug("Malformed items dropped | count=%d", dropped)
    return items


def _statement_from_comment(item: SourceItem, min_chars: int) -> Statement | None:
    if not _is_usable(item.text, min_chars):
        return None
    return Statement(
        id="",
        text=item.text.strip(),
        timestamp=item.timestamp,
        venue=item.venue,
        weight=item.weight,
        kind=StatementKind.COMMENT,
        context_title=item.title,
        permalink=item.permalink,
    )


def _statement_from_post(item: SourceItem, min_chars: int) -> Statement | None:
    body = (item.text or "").strip()
    if not body or body in TOMBSTONES:
        return None
    text = f"{item.title or ''} {body}".strip()
    if len(text) < min_chars:
        return None
    return Statement(
        id="",
        text=text,
        timestamp=item.timestamp,
        venue=item.venue,
        weight=item.weight,
        kind=StatementKind.POST,
        context_title=item.title,
        permalink=item.permalink,
    )


def deduplicate(statements: Iterable[Statement]) -> list[Statement]:
    """Collapse near-duplicates and sort chronologically.

    Keeps ids untouched. Idempotent: deduplicating an already
    deduplicated list returns the same statements.

    Args:
        statements: Statements in any order

    Returns:
        One statement per signature cluster, oldest first
    """
    best: dict[str, Statement] = {}
    for statement in statements:
        key = signature(statement.text)
        current = best.get(key)
        if current is None or (statement.weight, statement.timestamp) > (current.weight, current.timestamp):
            best[key] = statement
    return sorted(best.values(), key=lambda s: s.timestamp)


def _renumber(statements: list[Statement]) -> list[Statement]:
    return [s.model_copy(update={"id": f"ID-{i}"}) for i, s in enumerate(statements, start=1)]


def normalize(
    content: SourceContent,
    min_chars: int = MIN_STATEMENT_CHARS,
) -> list[Statement]:
    """Filter, deduplicate and number the content of one subject.

    Args:
        content: Raw comments and posts
        min_chars: Minimum statement length after stripping

    Returns:
        Statements sorted by timestamp with dense ids ``ID-1``..``ID-n``
    """
    candidates: list[Statement] = []
    for item in content.comments:
        statement = _statement_from_comment(item, min_chars)
        if statement:
            candidates.append(statement)
    for item in content.posts:
        statement = _statement_from_post(item, min_chars)
        if statement:
            candidates.append(statement)

    unique = _renumber(deduplicate(candidates))
    logger.info(
        "Normalized content | raw=%d kept=%d duplicates=%d",
        content.item_count, len(unique), len(candidates) - len(unique),
    )
    return unique
