"""Contradiction finding models.

A finding pairs two statements whose stances appear to reverse each
other. Findings come from one of two detectors:

    AI: the contradiction stage asked the text-generation backend
    FALLBACK: the lexical antonym detector ran on candidate pairs

Confidence is an integer percentage. Findings under REVIEW_THRESHOLD
are flagged for human review.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

logger = logging.getLogger(__name__)

REVIEW_THRESHOLD = 70
HIGH_CONFIDENCE_THRESHOLD = 80


class FindingCategory(str, Enum):
    """Topic category of a contradiction."""

    POLITICAL = "political"
    PERSONAL_PREFERENCE = "personal-preference"
    FACTUAL = "factual"
    OPINION = "opinion"
    LIFESTYLE = "lifestyle"
    RELATIONSHIP = "relationship"
    TECHNOLOGY = "technology"
    ENTERTAINMENT = "entertainment"


class DetectionMethod(str, Enum):
    """Which detector produced a finding."""

    AI = "ai"
    FALLBACK = "fallback"


# Map common alias strings from LLM output to supported categories.
_CATEGORY_ALIASES: dict[str, FindingCategory] = {
    "politics": FindingCategory.POLITICAL,
    "government": FindingCategory.POLITICAL,
    "election": FindingCategory.POLITICAL,
    "preference": FindingCategory.PERSONAL_PREFERENCE,
    "personal": FindingCategory.PERSONAL_PREFERENCE,
    "taste": FindingCategory.PERSONAL_PREFERENCE,
    "food": FindingCategory.PERSONAL_PREFERENCE,
    "fact": FindingCategory.FACTUAL,
    "facts": FindingCategory.FACTUAL,
    "science": FindingCategory.FACTUAL,
    "health": FindingCategory.LIFESTYLE,
    "fitness": FindingCategory.LIFESTYLE,
    "relationships": FindingCategory.RELATIONSHIP,
    "dating": FindingCategory.RELATIONSHIP,
    "family": FindingCategory.RELATIONSHIP,
    "tech": FindingCategory.TECHNOLOGY,
    "software": FindingCategory.TECHNOLOGY,
    "gaming": FindingCategory.ENTERTAINMENT,
    "movies": FindingCategory.ENTERTAINMENT,
    "music": FindingCategory.ENTERTAINMENT,
    "general": FindingCategory.OPINION,
    "other": FindingCategory.OPINION,
}


def normalize_category(value: str | FindingCategory | None) -> FindingCategory:
    """Normalize a raw category value into a supported FindingCategory."""
    if isinstance(value, FindingCategory):
        return value
    if value is None:
        return FindingCategory.OPINION
    raw = str(value).strip().lower()
    if not raw:
        return FindingCategory.OPINION
    normalized = raw.replace(" ", "-").replace("_", "-")
    try:
        return FindingCategory(normalized)
    except ValueError:
        mapped = _CATEGORY_ALIASES.get(normalized)
        if mapped is not None:
            return mapped
        logger.warning("Unknown finding category; defaulting to opinion | value=%s", value)
        return FindingCategory.OPINION


class ContradictionFinding(BaseModel):
    """A detected stance reversal between two statements.

    Attributes:
        left_id: Id of the earlier statement
        right_id: Id of the later statement (never equal to left_id)
        description: Human-readable explanation of the reversal
        confidence: Integer percentage in [0, 100]
        category: Topic category
        method: Detector that produced the finding
        requires_review: True when confidence is below REVIEW_THRESHOLD
        is_high_confidence: True when confidence is above HIGH_CONFIDENCE_THRESHOLD

    Example:
        >>> finding = ContradictionFinding(
        ...     left_id="ID-1", right_id="ID-2",
        ...     description="Preference reversal on pineapple pizza",
        ...     confidence=70, category="personal-preference",
        ...     method=DetectionMethod.FALLBACK,
        ... )
        >>> finding.requires_review
        False
    """

    model_config = ConfigDict(frozen=True)

    left_id: str
    right_id: str
    description: str
    confidence: int = Field(ge=0, le=100)
    category: FindingCategory = FindingCategory.OPINION
    method: DetectionMethod = DetectionMethod.AI

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        return normalize_category(value)

    @model_validator(mode="after")
    def _distinct_statements(self) -> "ContradictionFinding":
        if self.left_id == self.right_id:
            raise ValueError(f"Finding must reference two distinct statements, got {self.left_id} twice")
        return self

    @computed_field
    @property
    def requires_review(self) -> bool:
        return self.confidence < REVIEW_THRESHOLD

    @computed_field
    @property
    def is_high_confidence(self) -> bool:
        return self.confidence > HIGH_CONFIDENCE_THRESHOLD

    def __str__(self) -> str:
        return f"Finding({self.left_id}<>{self.right_id}, {self.category.value}, {self.confidence}%)"
