"""Report models produced by the analysis pipeline.

Report:
    Immutable result of one Analyze call: narrative, findings, the
    statements they cite, timeline and aggregate stats. Cached reports
    are returned unchanged.

CacheRecord:
    A Report stored in the result cache together with the fingerprint of
    the content it was computed from.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from models.finding import ContradictionFinding


class AnalysisMethod(str, Enum):
    """How the findings of a report were produced."""

    AI = "ai"
    FALLBACK = "fallback"
    NONE = "none"  # No content, or the source failed


class TimelineEntry(BaseModel):
    """One statement in the report timeline."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    excerpt: str
    venue: str
    weight: int = 0


class StatementRef(BaseModel):
    """A statement cited by at least one finding.

    Reports key these by statement id so a finding's ``left_id`` and
    ``right_id`` resolve without the run that produced them.
    """

    model_config = ConfigDict(frozen=True)

    excerpt: str
    timestamp: int
    venue: str
    gloss: str = ""

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


class ReportStats(BaseModel):
    """Aggregate statistics over the analyzed statements.

    Attributes:
        total_statements: Statements left after normalization
        timespan_label: Human span between oldest and newest statement
        top_venues: Up to five most frequent venues
        sentiment_delta: Newest-third minus oldest-third mean sentiment (x100)
        fallback_summaries: Statements whose gloss was produced locally
    """

    model_config = ConfigDict(frozen=True)

    total_statements: int = 0
    timespan_label: str = "0 days"
    top_venues: list[str] = Field(default_factory=list)
    sentiment_delta: int = 0
    fallback_summaries: int = 0


class Report(BaseModel):
    """Result of analyzing one subject."""

    model_config = ConfigDict(frozen=True)

    subject: str
    narrative: str
    findings: list[ContradictionFinding] = Field(default_factory=list)
    statements: dict[str, StatementRef] = Field(default_factory=dict)
    timeline: list[TimelineEntry] = Field(default_factory=list)
    stats: ReportStats = Field(default_factory=ReportStats)
    method: AnalysisMethod = AnalysisMethod.NONE
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        return f"Report({self.subject}, findings={len(self.findings)}, method={self.method.value})"


class CacheRecord(BaseModel):
    """A cached report keyed by subject and content fingerprint."""

    subject: str
    fingerprint: str
    payload: Report
    created_at: float
    expires_at: float
    schema_version: str
