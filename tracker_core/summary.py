from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from tracker_core.data import round_half_up
from tracker_core.entities import Assignment, Fund, Grade, PortfolioCompany
from tracker_core.metrics import multiple
from tracker_core.settings import DEFAULT_SETTINGS, MetricSettings


def _frame(entities: Sequence[Any]) -> pd.DataFrame:
    return pd.DataFrame([asdict(e) for e in entities])


def _distribution(df: pd.DataFrame, column: str) -> Dict[str, int]:
    if df.empty or column not in df.columns:
        return {}
    counts = df[column].value_counts(sort=False)
    return {str(k): int(v) for k, v in counts.items()}


def _weighted(values: pd.Series, weights: pd.Series, total: float, precision: int) -> float:
    if total <= 0:
        return 0.0
    return round_half_up(float(np.average(values.astype(float), weights=weights.astype(float))), precision)


def fund_summary(funds: Sequence[Fund], *, settings: MetricSettings = DEFAULT_SETTINGS) -> Dict[str, Any]:
    """AUM-weighted roll-up of the reported fund figures."""
    df = _frame(funds)
    if df.empty:
        return {
            "fund_count": 0,
            "total_aum": 0.0,
            "weighted_irr": 0.0,
            "weighted_moic": 0.0,
            "status_distribution": {},
        }

    total_aum = float(df["aum"].sum())
    return {
        "fund_count": int(len(df)),
        "total_aum": round_half_up(total_aum, settings.precision),
        "weighted_irr": _weighted(df["irr"], df["aum"], total_aum, settings.precision),
        "weighted_moic": _weighted(df["moic"], df["aum"], total_aum, settings.precision),
        "status_distribution": _distribution(df, "status"),
    }


def portfolio_summary(
    companies: Sequence[PortfolioCompany],
    *,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> Dict[str, Any]:
    df = _frame(companies)
    if df.empty:
        return {
            "company_count": 0,
            "total_investment": 0.0,
            "total_current_value": 0.0,
            "portfolio_moic": 0.0,
            "sector_distribution": [],
            "status_distribution": {},
        }

    total_investment = float(df["initial_investment"].sum())
    total_value = float(df["current_value"].sum())

    by_sector = (
        df.groupby("sector", sort=False)["current_value"]
        .sum()
        .reset_index()
        .sort_values("current_value", ascending=False, kind="stable")
    )
    sectors: List[Dict[str, Any]] = [
        {"sector": str(r.sector), "value": round_half_up(float(r.current_value), settings.precision)}
        for r in by_sector.itertuples(index=False)
    ]

    return {
        "company_count": int(len(df)),
        "total_investment": round_half_up(total_investment, settings.precision),
        "total_current_value": round_half_up(total_value, settings.precision),
        "portfolio_moic": round_half_up(multiple(total_value, total_investment), settings.precision),
        "sector_distribution": sectors,
        "status_distribution": _distribution(df, "status"),
    }


def student_average(
    student_id: str,
    grades: Sequence[Grade],
    assignments: Sequence[Assignment],
    *,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> Optional[float]:
    """Mean percentage (score / max points * 100) across a student's graded assignments.

    Grades whose assignment is unknown or worth 0 points are left out; None when nothing is left.
    """
    df = _frame([g for g in grades if g.student_id == student_id])
    if df.empty:
        return None
    max_points = {a.id: a.max_points for a in assignments}
    df["max_points"] = df["assignment_id"].map(max_points)
    df = df[df["max_points"] > 0]
    if df.empty:
        return None
    pct = df["score"].astype(float) / df["max_points"].astype(float) * 100
    return round_half_up(float(pct.mean()), settings.precision)


def assignment_average(
    assignment_id: str,
    grades: Sequence[Grade],
    *,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> Optional[float]:
    df = _frame([g for g in grades if g.assignment_id == assignment_id])
    if df.empty:
        return None
    return round_half_up(float(df["score"].mean()), settings.precision)
