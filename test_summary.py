"""Unit tests for portfolio roll-ups and import templates."""
from dataclasses import replace
from datetime import date
from io import StringIO

import pandas as pd
import pytest

from tracker_core.importer import ImportOutcome, import_records
from tracker_core.kinds import KINDS
from tracker_core.parsers import parse_assignment, parse_company, parse_fund, parse_grade
from tracker_core.summary import assignment_average, fund_summary, portfolio_summary, student_average
from tracker_core.templates import build_template

AS_OF = date(2024, 1, 1)
TEMPLATE_REFERENCES = {
    "fund": {"fund-1": None},
    "student": {"student-1": None},
    "assignment": {"assignment-1": None},
}


def _fund(name, aum, irr, moic, status="Active"):
    return parse_fund({
        "name": name,
        "strategy": "Buyout",
        "vintage": "2020",
        "aum": str(aum),
        "irr": str(irr),
        "moic": str(moic),
        "commitments": "100",
        "called": "50",
        "distributed": "10",
        "nav": "40",
        "status": status,
    })


def _company(name, sector, initial, current):
    return parse_company(
        {
            "name": name,
            "fundId": "fund-1",
            "sector": sector,
            "investmentDate": "2020-01-01",
            "initialInvestment": str(initial),
            "currentValue": str(current),
            "ownership": "10",
            "revenue": "10",
            "ebitda": "1",
            "status": "Active",
        },
        references={"fund": {"fund-1": None}},
        as_of=AS_OF,
    )


def test_fund_summary_weights_by_aum():
    out = fund_summary([
        _fund("A", 300, 10, 1.2),
        _fund("B", 100, 30, 2.0, status="Harvesting"),
    ])
    assert out["fund_count"] == 2
    assert out["total_aum"] == 400.0
    assert out["weighted_irr"] == 15.0
    assert out["weighted_moic"] == 1.4
    assert out["status_distribution"] == {"Active": 1, "Harvesting": 1}


def test_fund_summary_zero_aum_and_empty():
    out = fund_summary([_fund("A", 0, 10, 1.2)])
    assert out["weighted_irr"] == 0.0
    assert out["weighted_moic"] == 0.0
    assert fund_summary([])["fund_count"] == 0


def test_portfolio_summary_groups_sectors_by_value():
    out = portfolio_summary([
        _company("A", "Tech", 10, 15),
        _company("B", "Health", 20, 50),
        _company("C", "Tech", 10, 5),
    ])
    assert out["total_investment"] == 40.0
    assert out["total_current_value"] == 70.0
    assert out["portfolio_moic"] == 1.8
    assert out["sector_distribution"] == [
        {"sector": "Health", "value": 50.0},
        {"sector": "Tech", "value": 20.0},
    ]
    assert out["status_distribution"] == {"Active": 3}


def test_portfolio_summary_zero_investment():
    out = portfolio_summary([_company("A", "Tech", 0, 15)])
    assert out["portfolio_moic"] == 0.0
    assert portfolio_summary([])["sector_distribution"] == []


@pytest.mark.parametrize("kind", sorted(KINDS))
def test_templates_list_every_column(kind):
    frame = pd.read_csv(StringIO(build_template(kind)), dtype=str)
    assert list(frame.columns) == list(KINDS[kind].columns)


@pytest.mark.parametrize("kind", sorted(KINDS))
def test_templates_import_cleanly(kind):
    report = import_records(kind, build_template(kind), references=TEMPLATE_REFERENCES, as_of=AS_OF)
    assert report.outcome is ImportOutcome.IMPORTED
    assert report.failures == []


def test_company_template_has_active_and_exited_rows():
    report = import_records("company", build_template("company", fund_id="fund-9"), references={"fund": {"fund-9": None}}, as_of=AS_OF)
    assert [c.status for c in report.entities] == ["Active", "Exited"]
    exited = report.entities[1]
    assert exited.moic == 2.0
    assert exited.irr is not None


def _assignment(assignment_id, max_points):
    assignment = parse_assignment({
        "title": assignment_id,
        "dueDate": "2024-09-30",
        "maxPoints": str(max_points),
        "classId": "class-1",
    })
    return replace(assignment, id=assignment_id)


def _grade(student_id, assignment, score):
    refs = {"student": {student_id: None}, "assignment": {assignment.id: assignment}}
    return parse_grade(
        {"studentId": student_id, "assignmentId": assignment.id, "score": str(score)},
        references=refs,
        as_of=AS_OF,
    )


def test_student_average_is_mean_percentage():
    essay, quiz = _assignment("essay", 50), _assignment("quiz", 10)
    grades = [_grade("s1", essay, 45), _grade("s1", quiz, 8), _grade("s2", quiz, 2)]
    assert student_average("s1", grades, [essay, quiz]) == 85.0
    assert student_average("s2", grades, [essay, quiz]) == 20.0
    assert student_average("s3", grades, [essay, quiz]) is None


def test_student_average_skips_unknown_assignments():
    essay = _assignment("essay", 50)
    grades = [_grade("s1", essay, 40)]
    assert student_average("s1", grades, []) is None


def test_assignment_average_is_mean_score():
    quiz = _assignment("quiz", 10)
    grades = [_grade("s1", quiz, 8), _grade("s2", quiz, 7), _grade("s3", quiz, 6)]
    assert assignment_average("quiz", grades) == 7.0
    grades.append(_grade("s4", quiz, 4.5))
    assert assignment_average("quiz", grades) == 6.4
    assert assignment_average("essay", grades) is None
