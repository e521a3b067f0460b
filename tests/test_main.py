import argparse
import json

from budget import BudgetLedger
from main import cmd_status, render_report
from models.finding import ContradictionFinding
from models.report import AnalysisMethod
from reporting import assemble_report

PREMIUM = "anthropic/claude-3.5-sonnet"
FREE_MODEL = "mistralai/mistral-7b-instruct:free"


def test_render_report_shows_cited_statements(make_statement):
    statements = [
        make_statement("ID-1", "I love pineapple pizza", days=0, venue="pizza"),
        make_statement("ID-2", "I hate pineapple pizza", days=400, venue="food"),
    ]
    finding = ContradictionFinding(left_id="ID-1", right_id="ID-2", description="reversal", confidence=65)
    report = assemble_report("pizza_fan", statements, [], [finding], AnalysisMethod.FALLBACK)

    text = render_report(report)

    assert "- ID-1 vs ID-2 (opinion, 65%) [review]: reversal" in text
    assert "    ID-1 2020-09-13 r/pizza: I love pineapple pizza" in text
    assert "    ID-2 2021-10-18 r/food: I hate pineapple pizza" in text


def test_status_flags_free_models(config, capsys):
    ledger = BudgetLedger(path=config.ledger_path)
    ledger.record_usage(PREMIUM, 1000, 100)
    ledger.record_usage(FREE_MODEL, 1000, 100)
    ledger.save()

    assert cmd_status(argparse.Namespace(), config) == 0

    status = json.loads(capsys.readouterr().out)
    by_model = status["budget"]["usage"]["by_model"]
    assert by_model[FREE_MODEL]["free"]
    assert not by_model[PREMIUM]["free"]
    assert status["cache"]["total"] == 0
