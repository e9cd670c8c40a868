"""Unit tests for the bulk CSV/JSON import pipeline."""
import json
from datetime import date

import pytest

from tracker_core.importer import (
    AbortReason,
    ImportOutcome,
    ImportPipeline,
    ImportState,
    import_records,
)
from tracker_core.parsers import RejectReason

AS_OF = date(2024, 1, 1)
FUND_HEADER = "name,strategy,vintage,aum,irr,moic,commitments,called,distributed,nav,status"
COMPANY_HEADER = (
    "name,fundId,sector,investmentDate,initialInvestment,currentValue,"
    "ownership,revenue,ebitda,status,exitDate,exitValue"
)


def test_fund_import_derives_ratios():
    text = FUND_HEADER + "\nAlpha,Buyout,2020,100,12,1.4,120,50,10,40,Active\n"
    report = import_records("fund", text, as_of=AS_OF)
    assert report.outcome is ImportOutcome.IMPORTED
    assert report.state is ImportState.COMPLETED
    assert report.imported_count == 1
    fund = report.entities[0]
    assert (fund.dpi, fund.tvpi) == (0.2, 1.0)


def test_rows_missing_conditional_fields_are_skipped():
    text = "\n".join([
        COMPANY_HEADER,
        "A,fund-1,Tech,2021-01-01,10,15,20,5,1,Active,,",
        "B,fund-1,Health,2020-01-01,10,,20,5,1,Exited,,25",
        "C,fund-1,Tech,2020-01-01,10,,20,5,1,Exited,2023-01-01,25",
        "D,fund-1,Tech,2020-01-01,10,,20,5,1,Written Off,2022-01-01,",
    ])
    report = import_records("company", text, references={"fund": {"fund-1": None}}, as_of=AS_OF)
    assert [c.name for c in report.entities] == ["A", "C"]
    assert [(f.row, f.reason) for f in report.failures] == [
        (3, RejectReason.MISSING_CONDITIONAL),
        (5, RejectReason.MISSING_CONDITIONAL),
    ]
    assert report.summary() == "2 imported, 2 skipped: missing_conditional x2"


def test_header_order_is_irrelevant():
    text = "status,nav,distributed,called,commitments,moic,irr,aum,vintage,strategy,name\nActive,40,10,50,120,1.4,12,100,2020,Buyout,Alpha\n"
    report = import_records("fund", text, as_of=AS_OF)
    assert report.entities[0].name == "Alpha"
    assert report.entities[0].dpi == 0.2


def test_header_only_file_is_empty_not_missing_headers():
    report = import_records("fund", FUND_HEADER + "\n\n", as_of=AS_OF)
    assert report.outcome is ImportOutcome.ABORTED
    assert report.abort_reason is AbortReason.EMPTY_FILE
    assert import_records("fund", "", as_of=AS_OF).abort_reason is AbortReason.EMPTY_FILE


def test_missing_headers_abort_before_any_row():
    report = import_records("fund", "name,strategy\nAlpha,Buyout\n", as_of=AS_OF)
    assert report.state is ImportState.ABORTED
    assert report.abort_reason is AbortReason.MISSING_HEADERS
    assert "vintage" in report.missing_headers
    assert report.entities == []
    assert report.summary().startswith("Import aborted (missing_headers)")


def test_extra_columns_are_ignored():
    text = FUND_HEADER + ",notes\nAlpha,Buyout,2020,100,12,1.4,120,50,10,40,Active,hello\n"
    report = import_records("fund", text, as_of=AS_OF)
    assert report.imported_count == 1
    assert report.extra_headers == ("notes",)


def test_wrong_column_count_rejects_only_that_row():
    text = "\n".join([
        FUND_HEADER,
        "Alpha,Buyout,2020,100,12,1.4,120,50,10,40,Active",
        "Beta,Buyout,2020,100,12,1.4,120,50,10",
        '"Gamma, LP",Growth,2021,80,9,1.2,90,30,5,28,Active',
    ])
    report = import_records("fund", text, as_of=AS_OF)
    assert [f.name for f in report.entities] == ["Alpha", "Gamma, LP"]
    assert report.failures[0].row == 3
    assert report.failures[0].reason is RejectReason.COLUMN_COUNT


def test_no_valid_rows_is_reported_distinctly():
    text = FUND_HEADER + "\nAlpha,Buyout,2020,lots,12,1.4,120,50,10,40,Active\n"
    report = import_records("fund", text, as_of=AS_OF)
    assert report.outcome is ImportOutcome.NO_VALID_ROWS
    assert report.state is ImportState.COMPLETED
    assert report.failures[0].reason is RejectReason.NON_NUMERIC
    assert report.summary().startswith("No valid fund rows found")


def test_json_records_import():
    payload = [
        {"plateNumber": "ABC-1", "type": "Truck", "capacity": "10t", "status": "Available", "driverName": None},
        {"plateNumber": "ABC-2", "type": "Plane", "capacity": "1t", "status": "Available"},
    ]
    report = import_records("vehicle", json.dumps(payload), as_of=AS_OF)
    assert report.imported_count == 1
    assert report.entities[0].driver_name is None
    assert report.failures[0].row == 3
    assert report.failures[0].reason is RejectReason.INVALID_STATUS


def test_json_numbers_parse_like_csv_text():
    payload = [{
        "name": "Alpha", "strategy": "Buyout", "vintage": 2020, "aum": 100, "irr": 12,
        "moic": 1.4, "commitments": 120, "called": 50, "distributed": 10, "nav": 40, "status": "Active",
    }]
    report = import_records("fund", json.dumps(payload), fmt="json", as_of=AS_OF)
    assert report.entities[0].vintage == 2020
    assert report.entities[0].tvpi == 1.0


def test_bytes_with_bom_are_decoded():
    raw = ("\ufeff" + FUND_HEADER + "\nAlpha,Buyout,2020,100,12,1.4,120,50,10,40,Active\n").encode("utf-8")
    report = import_records("fund", raw, as_of=AS_OF)
    assert report.imported_count == 1


def test_unreadable_input_aborts():
    assert import_records("fund", b"\xff\xfe\x00bad", as_of=AS_OF).abort_reason is AbortReason.UNREADABLE
    assert import_records("fund", "[not json", as_of=AS_OF).abort_reason is AbortReason.UNREADABLE
    assert import_records("fund", '{"name": "x"}', fmt="json", as_of=AS_OF).abort_reason is AbortReason.UNREADABLE


def test_unknown_format_raises():
    with pytest.raises(ValueError):
        import_records("fund", FUND_HEADER, fmt="xlsx")


def test_pipeline_is_single_use():
    pipeline = ImportPipeline("fund", as_of=AS_OF)
    pipeline.run(FUND_HEADER + "\nAlpha,Buyout,2020,100,12,1.4,120,50,10,40,Active\n")
    assert pipeline.state is ImportState.COMPLETED
    with pytest.raises(RuntimeError):
        pipeline.run(FUND_HEADER)


def test_unknown_kind_raises():
    with pytest.raises(KeyError):
        import_records("planet", FUND_HEADER)
