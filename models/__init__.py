"""Pydantic models for the Stancecheck analysis pipeline.

This package contains all data models used throughout the pipeline:

SourceItem / SourceContent:
    Raw comments and posts delivered by a statement source, plus the
    content fingerprint used as cache key.

Statement / Summary:
    Normalized statements and their glosses.

ContradictionFinding:
    A stance reversal between two statements, with confidence and
    FindingCategory.

Report / CacheRecord:
    Final analysis output and its cached form.

LedgerEntry / BudgetStatus:
    Budget ledger records.

Example:
    >>> from models import ContradictionFinding, FindingCategory
    >>> finding = ContradictionFinding(
    ...     left_id="ID-1", right_id="ID-4", description="...",
    ...     confidence=85, category=FindingCategory.POLITICAL,
    ... )
"""

from models.statement import SourceItem, SourceContent, Statement, StatementKind, Summary
from models.finding import (
    ContradictionFinding,
    DetectionMethod,
    FindingCategory,
    normalize_category,
)
from models.report import AnalysisMethod, CacheRecord, Report, ReportStats, StatementRef, TimelineEntry
from models.budget import BudgetStatus, LedgerEntry

__all__ = [
    "SourceItem",
    "SourceContent",
    "Statement",
    "StatementKind",
    "Summary",
    "ContradictionFinding",
    "DetectionMethod",
    "FindingCategory",
    "normalize_category",
    "AnalysisMethod",
    "CacheRecord",
    "Report",
    "ReportStats",
    "StatementRef",
    "TimelineEntry",
    "BudgetStatus",
    "LedgerEntry",
]
