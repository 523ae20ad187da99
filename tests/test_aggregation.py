import pytest

from fakes import point, summary
from vigisaude.analytics.aggregation import (
    aggregate_national,
    alerts_by_uf,
    bucket_by_month,
    cases_by_uf,
    latest_week,
    summaries_frame,
    week_to_month,
)
from vigisaude.data.schemas import NationalSummaryStats


def test_aggregate_national_empty_input():
    assert aggregate_national([]) == NationalSummaryStats(
        total_cases=0, mean_reproduction_number=0.0, alert_city_count=0, max_alert_level=1
    )


def test_aggregate_national_ignores_locations_without_latest():
    stats = aggregate_national([summary("PE"), summary("SP")])
    assert stats.total_cases == 0
    assert stats.max_alert_level == 1


def test_aggregate_national_uses_latest_point_only():
    summaries = [
        summary(
            "PE",
            point(202508, cumulative_annual_cases=50, alert_level=4, reproduction_number=2.0),
            point(202509, cumulative_annual_cases=80, alert_level=3, reproduction_number=1.5),
        ),
        summary("SP", point(202509, cumulative_annual_cases=20, alert_level=1, reproduction_number=0.5)),
        summary("AM", point(202509, cumulative_annual_cases=0, alert_level=2)),
    ]
    stats = aggregate_national(summaries)
    assert stats.total_cases == 100
    assert stats.mean_reproduction_number == pytest.approx(1.0)  # AM has no Rt
    assert stats.alert_city_count == 1
    assert stats.max_alert_level == 3


def test_aggregate_national_counts_zero_rt_as_reported():
    summaries = [
        summary("PE", point(202509, reproduction_number=0.0)),
        summary("SP", point(202509, reproduction_number=2.0)),
    ]
    assert aggregate_national(summaries).mean_reproduction_number == pytest.approx(1.0)


def test_aggregate_national_is_order_independent():
    summaries = [
        summary("PE", point(202509, cumulative_annual_cases=7, alert_level=2, reproduction_number=1.3)),
        summary("SP", point(202509, cumulative_annual_cases=11, alert_level=4, reproduction_number=0.9)),
        summary("RJ"),
    ]
    assert aggregate_national(summaries) == aggregate_national(list(reversed(summaries)))


@pytest.mark.parametrize(
    "week, month",
    [
        (1, 0), (4, 0), (5, 1), (9, 1), (10, 2), (13, 2), (14, 3), (17, 3),
        (18, 4), (22, 4), (23, 5), (26, 5), (27, 6), (30, 6), (31, 7), (35, 7),
        (36, 8), (39, 8), (40, 9), (43, 9), (44, 10), (48, 10), (49, 11), (52, 11), (53, 11),
    ],
)
def test_week_to_month_table(week, month):
    assert week_to_month(week) == month


def test_bucket_by_month_sums_cases_and_averages_climate():
    series = [
        point(202501, cases=3, mean_temperature=26.0, mean_humidity=80.0),
        point(202502, cases=4, mean_temperature=28.0),
        point(202505, cases=10),
        point(202553, cases=1, mean_humidity=60.0),
    ]
    buckets = bucket_by_month(series)

    assert len(buckets) == 12
    assert buckets[0].cases == 7
    assert buckets[0].mean_temperature == pytest.approx(27.0)
    assert buckets[0].mean_humidity == pytest.approx(80.0)
    assert buckets[1].cases == 10
    assert buckets[1].mean_temperature is None
    assert buckets[11].cases == 1
    assert buckets[11].mean_humidity == pytest.approx(60.0)
    assert sum(b.cases for b in buckets) == 18


def test_bucket_by_month_single_week_one_point():
    buckets = bucket_by_month([point(202501, cases=9)])

    assert buckets[0].cases == 9
    rest = buckets[1:]
    assert len(rest) == 11
    assert all(b.cases == 0 and b.mean_temperature is None and b.mean_humidity is None for b in rest)


def test_bucket_by_month_empty_series():
    buckets = bucket_by_month([])
    assert [b.cases for b in buckets] == [0] * 12
    assert all(b.mean_temperature is None and b.mean_humidity is None for b in buckets)


def test_alerts_and_cases_by_uf_skip_empty_locations():
    summaries = [
        summary("PE", point(202509, cases=12, alert_level=3)),
        summary("SP", point(202509, cases=0, alert_level=1)),
        summary("AM"),
    ]
    alerts = alerts_by_uf(summaries)
    assert set(alerts) == {"PE", "SP"}
    assert alerts["PE"].alert_level == 3
    assert cases_by_uf(summaries) == {"PE": 12}


def test_latest_week_and_frame():
    summaries = [summary("SP", point(202510, cases=2)), summary("AM"), summary("PE", point(202511, cases=5))]
    assert latest_week(summaries) == 202511
    assert latest_week([]) is None

    df = summaries_frame(summaries)
    assert list(df["uf"]) == ["AM", "PE", "SP"]
    assert df.loc[df["uf"] == "PE", "casos"].iloc[0] == 5
