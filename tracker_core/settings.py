from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MetricSettings:
    precision: int = 1
    days_per_year: float = 365.25


DEFAULT_SETTINGS = MetricSettings()


def normalize_settings(raw: Optional[dict] = None) -> MetricSettings:
    raw = raw or {}

    precision = raw.get("precision", DEFAULT_SETTINGS.precision)
    try:
        precision = int(precision)
    except (TypeError, ValueError):
        precision = DEFAULT_SETTINGS.precision
    precision = max(0, min(6, precision))

    days_per_year = raw.get("days_per_year", DEFAULT_SETTINGS.days_per_year)
    try:
        days_per_year = float(days_per_year)
    except (TypeError, ValueError):
        days_per_year = DEFAULT_SETTINGS.days_per_year
    if not days_per_year > 0:
        days_per_year = DEFAULT_SETTINGS.days_per_year

    return MetricSettings(precision=precision, days_per_year=days_per_year)
