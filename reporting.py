"""Report assembly: narrative, timeline and aggregate statistics.

The assembler is pure: given the statements, summaries, findings and
detector used, it always produces the same report body (only ``generated_at`` differs).

Narrative Rules:
    - Method label: "AI-powered" when the backend produced the findings,
      "Enhanced fallback" otherwise
    - Counts: findings, high-confidence findings (> 80), findings flagged
      for review (< 70), locally produced summaries
    - Empty content and source failures get fixed one-line narratives

Cited statements:
    Every statement named by a finding is copied into the report with a
    400-character excerpt, its timestamp, venue and gloss.
"""

import logging
from collections import Counter

import lexicon
from models.finding import ContradictionFinding
from models.report import AnalysisMethod, Report, ReportStats, StatementRef, TimelineEntry
from models.statement import Statement, Summary

logger = logging.getLogger(__name__)

TIMELINE_LENGTH = 20
TIMELINE_EXCERPT_CHARS = 100
CITED_EXCERPT_CHARS = 400
TOP_VENUE_COUNT = 5
DAY_SECONDS = 86400


def timespan_label(statements: list[Statement]) -> str:
    """Human-readable span between the oldest and newest statement."""
    if len(statements) < 2:
        return "0 days"
    timestamps = [s.timestamp for s in statements]
    days = int((max(timestamps) - min(timestamps)) / DAY_SECONDS)
    if days < 30:
        return f"{days} days"
    if days < 365:
        return f"{days // 30} months"
    return f"{days // 365} years"


def top_venues(statements: list[Statement], limit: int = TOP_VENUE_COUNT) -> list[str]:
    counts = Counter(s.venue for s in statements)
    return [venue for venue, _ in counts.most_common(limit)]


def sentiment_delta(statements: list[Statement]) -> int:
    """Mean sentiment of the newest third minus the oldest third, x100."""
    if len(statements) < 2:
        return 0
    ordered = sorted(statements, key=lambda s: s.timestamp)
    third = max(1, len(ordered) // 3)
    oldest = [lexicon.sentiment_score(s.text) for s in ordered[:third]]
    newest = [lexicon.sentiment_score(s.text) for s in ordered[-third:]]
    return round((sum(newest) / len(newest) - sum(oldest) / len(oldest)) * 100)


def _excerpt(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def build_timeline(statements: list[Statement]) -> list[TimelineEntry]:
    ordered = sorted(statements, key=lambda s: s.timestamp)[-TIMELINE_LENGTH:]
    entries = []
    for statement in ordered:
        entries.append(TimelineEntry(
            timestamp=statement.timestamp,
            excerpt=_excerpt(statement.text, TIMELINE_EXCERPT_CHARS),
            venue=statement.venue,
            weight=statement.weight,
        ))
    return entries


def cited_statements(
    findings: list[ContradictionFinding],
    statements: dict[str, Statement],
    summaries: list[Summary],
) -> dict[str, StatementRef]:
    """Statements named by the findings, keyed by id."""
    glosses = {s.statement_id: s.gloss for s in summaries}
    cited = {}
    for finding in findings:
        for sid in (finding.left_id, finding.right_id):
            if sid in cited:
                continue
            statement = statements[sid]
            cited[sid] = StatementRef(
                excerpt=statement.text[:CITED_EXCERPT_CHARS],
                timestamp=statement.timestamp,
                venue=statement.venue,
                gloss=glosses.get(sid, ""),
            )
    return cited


def build_narrative(
    total: int,
    timespan: str,
    findings: list[ContradictionFinding],
    method: AnalysisMethod,
    fallback_summaries: int = 0,
) -> str:
    label = "AI-powered" if method == AnalysisMethod.AI else "Enhanced fallback"

    if not findings:
        text = (
            f"{label} analysis of {total} statements spanning {timespan} "
            "found no significant contradictions. The user's expressed positions "
            "appear consistent over the analyzed period."
        )
    else:
        high = sum(1 for f in findings if f.is_high_confidence)
        review = sum(1 for f in findings if f.requires_review)
        text = (
            f"{label} analysis reveals {len(findings)} potential contradictions "
            f"across {total} statements spanning {timespan}. "
            f"{high} contradictions show high confidence (>80%). "
            f"{review} findings require human review for context verification."
        )

    if method == AnalysisMethod.AI:
        text += " Analysis used a two-stage pipeline: batched summarization followed by contradiction detection."
        if fallback_summaries:
            text += f" {fallback_summaries} statements were summarized with local fallback processing."
    else:
        text += " Analysis used heuristic fallback detection with local processing."
    return text


def assemble_report(
    subject: str,
    statements: list[Statement],
    summaries: list[Summary],
    findings: list[ContradictionFinding],
    method: AnalysisMethod,
    fallback_summaries: int = 0,
) -> Report:
    """Build the final report for a subject.

    Findings that reference statements outside ``statements`` are dropped.

    Args:
        subject: Analyzed user
        statements: All normalized statements of the run
        summaries: Glosses from the summarization stage
        findings: Findings from the contradiction stage
        method: Detector that produced the findings
        fallback_summaries: Statements glossed locally

    Returns:
        Immutable Report
    """
    if not statements:
        return empty_report(subject)

    known = {s.id: s for s in statements}
    valid = [f for f in findings if f.left_id in known and f.right_id in known]
    if len(valid) != len(findings):
        logger.warning("Dropped findings with unknown statements | count=%d", len(findings) - len(valid))
    valid.sort(key=lambda f: f.confidence, reverse=True)

    span = timespan_label(statements)
    report = Report(
        subject=subject,
        narrative=build_narrative(len(statements), span, valid, method, fallback_summaries),
        findings=valid,
        statements=cited_statements(valid, known, summaries),
        timeline=build_timeline(statements),
        stats=ReportStats(
            total_statements=len(statements),
            timespan_label=span,
            top_venues=top_venues(statements),
            sentiment_delta=sentiment_delta(statements),
            fallback_summaries=fallback_summaries,
        ),
        method=method,
    )
    logger.info(
        "Report assembled | subject=%s statements=%d findings=%d method=%s",
        subject, len(statements), len(valid), method.value,
    )
    return report


def empty_report(subject: str) -> Report:
    """Report for a subject with no usable content."""
    return Report(
        subject=subject,
        narrative=f"No content available for analysis for user {subject}.",
        method=AnalysisMethod.NONE,
    )


def failure_report(subject: str, reason: str) -> Report:
    """Report for a run that could not fetch or process content."""
    return Report(
        subject=subject,
        narrative=f"Analysis failed for user {subject}: {reason}",
        method=AnalysisMethod.NONE,
    )
