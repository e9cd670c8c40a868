"""Unit tests for derived fund and position metrics."""
from dataclasses import replace
from datetime import date

from tracker_core.data import round_half_up
from tracker_core.metrics import (
    annualized_return,
    compute_dpi,
    compute_irr,
    compute_moic,
    compute_tvpi,
    multiple,
    with_metrics,
)
from tracker_core.parsers import parse_company, parse_fund
from tracker_core.settings import DEFAULT_SETTINGS, MetricSettings, normalize_settings

AS_OF = date(2024, 1, 1)
FUNDS = {"fund": {"fund-1": None}}


def _fund_row(**overrides):
    row = {
        "name": "Alpha",
        "strategy": "Buyout",
        "vintage": "2020",
        "aum": "100",
        "irr": "12",
        "moic": "1.4",
        "commitments": "120",
        "called": "50",
        "distributed": "10",
        "nav": "40",
        "status": "Active",
    }
    row.update(overrides)
    return row


def _company_row(**overrides):
    row = {
        "name": "Widget Co",
        "fundId": "fund-1",
        "sector": "Industrials",
        "investmentDate": "2020-01-01",
        "initialInvestment": "20",
        "currentValue": "",
        "ownership": "30",
        "revenue": "50",
        "ebitda": "5",
        "status": "Active",
        "exitDate": "",
        "exitValue": "",
    }
    row.update(overrides)
    return row


def test_fund_dpi_tvpi_from_called_distributed_nav():
    fund = parse_fund(_fund_row())
    assert fund.dpi == 0.2
    assert fund.tvpi == 1.0


def test_written_off_position_is_total_loss():
    company = parse_company(
        _company_row(status="Written Off", exitDate="2023-01-01", exitValue="0"),
        references=FUNDS,
        as_of=AS_OF,
    )
    assert company.moic == 0.0
    assert company.irr == -100.0
    assert company.current_value == 0.0


def test_near_total_loss_reported_as_zero_moic_is_total_loss():
    company = parse_company(
        _company_row(status="Written Off", exitDate="2023-01-01", exitValue="0.9"),
        references=FUNDS,
        as_of=AS_OF,
    )
    assert company.moic == 0.0
    assert company.irr == -100.0
    assert compute_irr(0.9, 20, "2020-01-01", "2023-01-01") == -100.0
    # Still a reportable multiple at two decimals, so the IRR is a real rate.
    fine = MetricSettings(precision=2)
    assert compute_moic(0.9, 20, settings=fine) == 0.05
    assert compute_irr(0.9, 20, "2020-01-01", "2023-01-01", settings=fine) > -100.0


def test_same_day_exit_leaves_irr_undefined():
    company = parse_company(
        _company_row(status="Exited", investmentDate="2022-01-01", exitDate="2022-01-01", exitValue="30"),
        references=FUNDS,
        as_of=AS_OF,
    )
    assert company.moic == 1.5
    assert company.irr is None


def test_exit_before_investment_leaves_irr_undefined():
    assert compute_irr(30, 20, "2022-06-01", "2022-01-01") is None


def test_zero_denominators_fall_back_to_zero():
    assert compute_dpi(10, 0) == 0.0
    assert compute_tvpi(40, 10, 0) == 0.0
    assert compute_moic(25, 0) == 0.0
    assert multiple(5, float("nan")) == 0.0
    assert multiple(None, 10) == 0.0


def test_irr_over_exact_two_year_span():
    settings = MetricSettings(days_per_year=365.5)
    # 2020-01-01 -> 2022-01-01 is 731 days, i.e. two years on this basis.
    assert compute_irr(121, 100, "2020-01-01", "2022-01-01", settings=settings) == 10.0


def test_irr_uses_unrounded_moic():
    # 1.04 rounds to a 1.0 multiple, which would otherwise give 0% IRR.
    irr = compute_irr(104, 100, "2020-01-01", "2022-01-01", settings=MetricSettings(days_per_year=365.5))
    assert compute_moic(104, 100) == 1.0
    assert irr == 2.0


def test_annualized_return_guards():
    assert annualized_return(0.0, None) == -100.0
    assert annualized_return(0.0, -1.0) == -100.0
    assert annualized_return(2.0, 0.0) is None
    assert annualized_return(2.0, None) is None
    assert annualized_return(2.0, 1.0) == 100.0
    assert annualized_return(1e300, 1e-300) is None


def test_active_position_valued_at_as_of():
    row = _company_row(investmentDate="2023-01-01", currentValue="20")
    same_day = parse_company(row, references=FUNDS, as_of=date(2023, 1, 1))
    later = parse_company(row, references=FUNDS, as_of=date(2024, 1, 1))
    assert same_day.moic == 1.0
    assert same_day.irr is None
    assert later.irr == 0.0


def test_active_position_ignores_exit_fields():
    company = parse_company(
        _company_row(currentValue="40", exitDate="2023-01-01", exitValue="99"),
        references=FUNDS,
        as_of=AS_OF,
    )
    assert company.exit_date is None
    assert company.exit_value is None
    assert company.moic == 2.0


def test_recomputing_metrics_is_idempotent():
    fund = parse_fund(_fund_row(called="30", distributed="7", nav="26"))
    company = parse_company(_company_row(currentValue="33"), references=FUNDS, as_of=AS_OF)
    assert with_metrics(fund) == fund
    assert with_metrics(company, as_of=AS_OF) == company


def test_stale_metrics_are_replaced():
    fund = parse_fund(_fund_row())
    drifted = replace(fund, dpi=9.9, tvpi=9.9)
    assert with_metrics(drifted) == fund


def test_round_half_away_from_zero():
    assert round_half_up(0.25, 1) == 0.3
    assert round_half_up(-0.25, 1) == -0.3
    assert round_half_up(0.35, 1) == 0.4
    assert round_half_up(None, 1) is None


def test_precision_setting_controls_rounding():
    settings = MetricSettings(precision=3)
    assert compute_dpi(1, 3, settings=settings) == 0.333
    assert compute_dpi(1, 3) == 0.3


def test_normalize_settings_tolerates_junk():
    assert normalize_settings() == DEFAULT_SETTINGS
    assert normalize_settings({"precision": "2"}) == MetricSettings(precision=2)
    out = normalize_settings({"precision": "9", "days_per_year": "x"})
    assert out.precision == 6
    assert out.days_per_year == 365.25
    assert normalize_settings({"precision": None, "days_per_year": -1}) == DEFAULT_SETTINGS
