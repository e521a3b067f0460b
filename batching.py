"""Greedy batch partitioning under an estimated token budget."""

import logging
from collections.abc import Callable

from budget import estimate_tokens
from models.statement import Statement

logger = logging.getLogger(__name__)

DEFAULT_BATCH_TOKENS = 3000


def partition(
    statements: list[Statement],
    max_tokens: int = DEFAULT_BATCH_TOKENS,
    estimate: Callable[[str], int] = estimate_tokens,
) -> list[list[Statement]]:
    """Pack statements into batches in input order.

    A new batch starts when adding the next statement would exceed
    ``max_tokens`` and the current batch is not empty. A statement that
    is larger than the budget on its own becomes a singleton batch.
    Nothing is dropped or reordered.

    Args:
        statements: Statements to pack
        max_tokens: Estimated token budget per batch
        estimate: Token estimator applied to each statement's text

    Returns:
        List of non-empty batches whose concatenation equals the input
    """
    batches: list[list[Statement]] = []
    current: list[Statement] = []
    current_tokens = 0

    for statement in statements:
        tokens = estimate(statement.text)
        if current and current_tokens + tokens > max_tokens:
            batches.append(current)
            current = []
            current_tokens = 0
        current.append(statement)
        current_tokens += tokens

    if current:
        batches.append(current)

    logger.debug("Partitioned statements | statements=%d batches=%d", len(statements), len(batches))
    return batches
