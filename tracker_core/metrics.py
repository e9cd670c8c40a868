"""Derived performance ratios (DPI, TVPI, MOIC, IRR).

Every function here is a pure function of raw monetary and date inputs.
Guarded divisions fall back to 0 and IRR falls back to None, so no NaN or
Infinity ever leaves this module. Rounding (half away from zero, at
``MetricSettings.precision`` decimals) happens exactly once, on the way out.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Optional

import pandas as pd

from tracker_core.data import round_half_up
from tracker_core.entities import EXIT_STATUSES, Fund, PortfolioCompany
from tracker_core.settings import DEFAULT_SETTINGS, MetricSettings


@dataclass(frozen=True)
class FundMetrics:
    dpi: float
    tvpi: float


@dataclass(frozen=True)
class PositionMetrics:
    moic: float
    irr: Optional[float]


def multiple(numerator: Optional[float], denominator: Optional[float]) -> float:
    """Unrounded numerator / denominator, 0 unless the denominator is a positive finite number."""
    if numerator is None or denominator is None:
        return 0.0
    if not (math.isfinite(numerator) and math.isfinite(denominator)) or denominator <= 0:
        return 0.0
    return numerator / denominator


def holding_years(start: Optional[str], end: Optional[str], days_per_year: float = 365.25) -> Optional[float]:
    if not start or not end:
        return None
    start_ts = pd.to_datetime(start, errors="coerce")
    end_ts = pd.to_datetime(end, errors="coerce")
    if pd.isna(start_ts) or pd.isna(end_ts):
        return None
    return ((end_ts - start_ts) / pd.Timedelta(days=1)) / days_per_year


def annualized_return(moic: float, years: Optional[float]) -> Optional[float]:
    """Unrounded IRR in percent implied by ``moic`` over ``years``.

    A total loss is -100 whatever the time span; otherwise the span must be
    positive or the return is undefined.
    """
    if moic == 0:
        return -100.0
    if years is None or years <= 0 or moic < 0:
        return None
    try:
        growth = moic ** (1 / years)
    except OverflowError:
        return None
    if not math.isfinite(growth):
        return None
    return (growth - 1) * 100


def compute_dpi(distributed: float, called: float, *, settings: MetricSettings = DEFAULT_SETTINGS) -> float:
    return round_half_up(multiple(distributed, called), settings.precision)


def compute_tvpi(nav: float, distributed: float, called: float, *, settings: MetricSettings = DEFAULT_SETTINGS) -> float:
    return round_half_up(multiple(nav + distributed, called), settings.precision)


def compute_moic(value: Optional[float], initial_investment: float, *, settings: MetricSettings = DEFAULT_SETTINGS) -> float:
    return round_half_up(multiple(value, initial_investment), settings.precision)


def compute_irr(
    value: Optional[float],
    initial_investment: float,
    start_date: Optional[str],
    end_date: Optional[str],
    *,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> Optional[float]:
    if value is None:
        return None
    raw_moic = multiple(value, initial_investment)
    # Total loss is judged on the reported (rounded) MOIC.
    if round_half_up(raw_moic, settings.precision) == 0:
        return -100.0
    years = holding_years(start_date, end_date, settings.days_per_year)
    irr = annualized_return(raw_moic, years)
    return round_half_up(irr, settings.precision)


def fund_metrics(called: float, distributed: float, nav: float, *, settings: MetricSettings = DEFAULT_SETTINGS) -> FundMetrics:
    return FundMetrics(
        dpi=compute_dpi(distributed, called, settings=settings),
        tvpi=compute_tvpi(nav, distributed, called, settings=settings),
    )


def position_metrics(
    initial_investment: float,
    value: Optional[float],
    start_date: Optional[str],
    end_date: Optional[str],
    *,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> PositionMetrics:
    return PositionMetrics(
        moic=compute_moic(value, initial_investment, settings=settings),
        irr=compute_irr(value, initial_investment, start_date, end_date, settings=settings),
    )


def company_metrics(
    company: PortfolioCompany,
    *,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> PositionMetrics:
    """Exit-based metrics for closed positions, mark-based (valued at ``as_of``) for active ones."""
    if company.status in EXIT_STATUSES:
        return position_metrics(
            company.initial_investment,
            company.exit_value,
            company.investment_date,
            company.exit_date,
            settings=settings,
        )
    end = (as_of or date.today()).isoformat()
    return position_metrics(
        company.initial_investment,
        company.current_value,
        company.investment_date,
        end,
        settings=settings,
    )


def with_metrics(entity: Any, *, as_of: Optional[date] = None, settings: MetricSettings = DEFAULT_SETTINGS) -> Any:
    """Return ``entity`` with its derived fields recomputed from its raw fields."""
    if isinstance(entity, Fund):
        m = fund_metrics(entity.called, entity.distributed, entity.nav, settings=settings)
        return replace(entity, dpi=m.dpi, tvpi=m.tvpi)
    if isinstance(entity, PortfolioCompany):
        m = company_metrics(entity, as_of=as_of, settings=settings)
        return replace(entity, moic=m.moic, irr=m.irr)
    return entity
