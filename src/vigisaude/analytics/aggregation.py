from __future__ import annotations
"""
Aggregation engine: pure functions over location summaries and weekly series.

Nothing here performs I/O. Inputs are assumed well formed and may be empty;
all reductions are order independent.
"""

from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from vigisaude.data.schemas import LocationSeriesPoint, LocationSummary, MonthBucket, NationalSummaryStats
from vigisaude.utils.epiweek import week_of_year

MONTH_LABELS = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]

# Last epidemiological week of each month (index 0 = January).
_MONTH_LAST_WEEK = (4, 9, 13, 17, 22, 26, 30, 35, 39, 43, 48, 52)


def aggregate_national(summaries: Iterable[LocationSummary]) -> NationalSummaryStats:
    """Reduce the capitals' latest records to the national figures.

    Summaries without a latest record contribute nothing. Mean Rt divides by
    the number of capitals actually reporting Rt.
    """
    total = 0
    rt_sum = 0.0
    rt_count = 0
    in_alert = 0
    max_level = 1
    for s in summaries:
        latest = s.latest
        if latest is None:
            continue
        total += latest.cumulative_annual_cases or 0
        if latest.reproduction_number is not None:
            rt_sum += latest.reproduction_number
            rt_count += 1
        if latest.alert_level >= 3:
            in_alert += 1
        max_level = max(max_level, latest.alert_level)

    return NationalSummaryStats(
        total_cases=total,
        mean_reproduction_number=rt_sum / rt_count if rt_count else 0.0,
        alert_city_count=in_alert,
        max_alert_level=max_level,
    )


def week_to_month(week: int) -> int:
    """Epidemiological week (1..53) -> month index 0..11; weeks past 52 fall in December."""
    for month, last in enumerate(_MONTH_LAST_WEEK):
        if week <= last:
            return month
    return 11


def bucket_by_month(series: Iterable[LocationSeriesPoint]) -> List[MonthBucket]:
    """Fold a weekly series into 12 monthly buckets.

    Cases are summed. Temperature and humidity are means over the points that
    carry them; months with no such point report None.
    """
    cases = [0] * 12
    temp_sum = [0.0] * 12
    temp_n = [0] * 12
    hum_sum = [0.0] * 12
    hum_n = [0] * 12

    for p in series:
        m = week_to_month(week_of_year(p.week))
        cases[m] += p.cases or 0
        if p.mean_temperature is not None:
            temp_sum[m] += p.mean_temperature
            temp_n[m] += 1
        if p.mean_humidity is not None:
            hum_sum[m] += p.mean_humidity
            hum_n[m] += 1

    return [
        MonthBucket(
            cases=cases[m],
            mean_temperature=temp_sum[m] / temp_n[m] if temp_n[m] else None,
            mean_humidity=hum_sum[m] / hum_n[m] if hum_n[m] else None,
        )
        for m in range(12)
    ]


def alerts_by_uf(summaries: Iterable[LocationSummary]) -> Dict[str, LocationSeriesPoint]:
    """UF -> latest record of its capital (capitals without data are left out)."""
    return {s.uf: s.latest for s in summaries if s.latest is not None}


def cases_by_uf(summaries: Iterable[LocationSummary]) -> Dict[str, int]:
    """UF -> cases in the capital's latest week (heatmap weight)."""
    return {s.uf: s.latest.cases for s in summaries if s.latest is not None and s.latest.cases}


def data_year(summaries: Sequence[LocationSummary]) -> Optional[int]:
    """Year the overview was taken from (all summaries of one overview share it)."""
    return summaries[0].data_year if summaries else None


def latest_week(summaries: Iterable[LocationSummary]) -> Optional[int]:
    """Most recent epidemiological week (YYYYWW) across the summaries."""
    weeks = [s.latest.week for s in summaries if s.latest is not None]
    return max(weeks) if weeks else None


def summaries_frame(summaries: Iterable[LocationSummary]) -> pd.DataFrame:
    """Tabular view of the capitals' latest records (one row per capital)."""
    rows = []
    for s in summaries:
        latest = s.latest
        rows.append(
            {
                "uf": s.uf,
                "capital": s.name,
                "se": latest.week if latest else None,
                "casos": latest.cases if latest else None,
                "rt": latest.reproduction_number if latest else None,
                "inc_100k": latest.incidence_per_100k if latest else None,
                "casos_ano": latest.cumulative_annual_cases if latest else None,
                "nivel": latest.alert_level if latest else None,
            }
        )
    df = pd.DataFrame(
        rows, columns=["uf", "capital", "se", "casos", "rt", "inc_100k", "casos_ano", "nivel"]
    )
    return df.sort_values("uf").reset_index(drop=True)


__all__ = [
    "MONTH_LABELS",
    "aggregate_national",
    "week_to_month",
    "bucket_by_month",
    "alerts_by_uf",
    "cases_by_uf",
    "data_year",
    "latest_week",
    "summaries_frame",
]
