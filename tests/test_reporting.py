from models.finding import ContradictionFinding, DetectionMethod
from models.report import AnalysisMethod
from models.statement import Summary
from reporting import (
    assemble_report,
    build_timeline,
    empty_report,
    failure_report,
    sentiment_delta,
    timespan_label,
    top_venues,
)


def _finding(left, right, confidence, method=DetectionMethod.FALLBACK):
    return ContradictionFinding(
        left_id=left,
        right_id=right,
        description="reversal",
        confidence=confidence,
        method=method,
    )


def test_timespan_label_units(make_statement):
    start = make_statement("ID-1", "a", days=0)

    assert timespan_label([start]) == "0 days"
    assert timespan_label([start, make_statement("ID-2", "b", days=12)]) == "12 days"
    assert timespan_label([start, make_statement("ID-2", "b", days=95)]) == "3 months"
    assert timespan_label([start, make_statement("ID-2", "b", days=800)]) == "2 years"


def test_sentiment_delta_compares_thirds(make_statement):
    statements = [
        make_statement("ID-1", "I love it, amazing", days=0),
        make_statement("ID-2", "it is fine", days=1),
        make_statement("ID-3", "I hate it, terrible", days=2),
    ]

    assert sentiment_delta(statements) == -200
    assert sentiment_delta(statements[:1]) == 0


def test_top_venues_by_frequency(make_statement):
    statements = [
        make_statement("ID-1", "a", venue="pizza"),
        make_statement("ID-2", "b", venue="food"),
        make_statement("ID-3", "c", venue="pizza"),
    ]

    assert top_venues(statements) == ["pizza", "food"]


def test_timeline_keeps_latest_twenty(make_statement):
    statements = [make_statement(f"ID-{i}", "z" * 150, days=i) for i in range(1, 26)]

    timeline = build_timeline(statements)

    assert len(timeline) == 20
    assert timeline[0].timestamp == statements[5].timestamp
    assert timeline[-1].excerpt == "z" * 100 + "..."


def test_assemble_report_drops_unknown_findings(make_statement):
    statements = [
        make_statement("ID-1", "I love pineapple pizza", days=0),
        make_statement("ID-2", "I hate pineapple pizza", days=400),
    ]
    findings = [_finding("ID-1", "ID-2", 65), _finding("ID-1", "ID-7", 90), _finding("ID-2", "ID-1", 85)]

    report = assemble_report("pizza_fan", statements, [], findings, AnalysisMethod.FALLBACK)

    assert [f.confidence for f in report.findings] == [85, 65]
    assert report.stats.total_statements == 2
    assert report.stats.timespan_label == "1 years"
    assert report.method == AnalysisMethod.FALLBACK
    assert report.narrative.startswith("Enhanced fallback analysis reveals 2 potential contradictions")
    assert "1 contradictions show high confidence" in report.narrative
    assert "1 findings require human review" in report.narrative
    assert "fallback" in report.narrative


def test_ai_narrative_mentions_local_summaries(make_statement):
    statements = [make_statement("ID-1", "one statement here"), make_statement("ID-2", "another one", days=3)]

    report = assemble_report("u", statements, [], [], AnalysisMethod.AI, fallback_summaries=1)

    assert report.narrative.startswith("AI-powered analysis of 2 statements spanning 3 days found no significant")
    assert "1 statements were summarized with local fallback processing" in report.narrative
    assert report.stats.fallback_summaries == 1


def test_empty_and_failure_reports():
    empty = empty_report("nobody")
    failed = failure_report("ghost", "User not found")

    assert empty.narrative == "No content available for analysis for user nobody."
    assert empty.stats.total_statements == 0
    assert empty.findings == []
    assert empty.method == AnalysisMethod.NONE
    assert failed.narrative == "Analysis failed for user ghost: User not found"
    assert failed.method == AnalysisMethod.NONE


def test_report_cites_statements_outside_timeline(make_statement):
    statements = [make_statement(f"ID-{i}", f"statement number {i} " + "x" * 500, days=i) for i in range(1, 26)]
    summaries = [Summary(statement_id="ID-1", gloss="early stance")]
    findings = [_finding("ID-1", "ID-2", 75, method=DetectionMethod.AI)]

    report = assemble_report("u", statements, summaries, findings, AnalysisMethod.AI)

    assert all(entry.timestamp != statements[0].timestamp for entry in report.timeline)
    assert set(report.statements) == {"ID-1", "ID-2"}
    first = report.statements["ID-1"]
    assert first.excerpt == statements[0].text[:400]
    assert first.timestamp == statements[0].timestamp
    assert first.venue == "pizza"
    assert first.gloss == "early stance"
    assert report.statements["ID-2"].gloss == ""


def test_report_without_findings_cites_nothing(make_statement):
    statements = [make_statement("ID-1", "one statement here"), make_statement("ID-2", "another one", days=3)]

    report = assemble_report("u", statements, [], [], AnalysisMethod.FALLBACK)

    assert report.statements == {}
