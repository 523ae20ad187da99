import pytest

from fakes import point, summary
from vigisaude.analytics.charting import (
    build_correlation_series,
    build_scatter_series,
    build_tracker_series,
    correlation_figure,
    location_uf,
    scatter_figure,
)
from vigisaude.data.errors import UnresolvableLocation
from vigisaude.data.reference import CHART_COLORS, get_sanitation_table
from vigisaude.data.schemas import TrackedLocation

SANITATION = get_sanitation_table()

SERIES = [
    point(202502, cases=5, mean_temperature=28.0, mean_humidity=75.0),
    point(202506, cases=8, mean_temperature=30.0),
]


def test_location_uf():
    assert location_uf("Recife - PE") == "PE"
    with pytest.raises(UnresolvableLocation):
        location_uf("Recife")


def test_correlation_series_with_known_uf_adds_sanitation_lines():
    out = build_correlation_series("Recife - PE", SERIES, SANITATION)

    assert [s.metric for s in out] == ["cases", "humidity", "temperature", "collection", "treatment"]
    cases, humidity, temperature, collection, treatment = out
    assert cases.kind == "bar" and cases.axis == "y"
    assert cases.label == "Recife - PE - Casos"
    assert cases.values[0] == 5 and cases.values[1] == 8
    assert humidity.dash == "dash" and humidity.axis == "y2"
    assert humidity.values[0] == pytest.approx(75.0) and humidity.values[1] is None
    assert temperature.values[1] == pytest.approx(30.0)
    assert collection.values == [SANITATION["PE"].sewage_collection_pct] * 12
    assert treatment.values == [SANITATION["PE"].sewage_treatment_pct] * 12
    assert all(len(s.values) == 12 for s in out)


@pytest.mark.parametrize("name", ["Recife", "Cidade - ZZ"])
def test_correlation_series_without_parseable_uf_omits_sanitation(name):
    out = build_correlation_series(name, SERIES, SANITATION)
    assert [s.metric for s in out] == ["cases", "humidity", "temperature"]


def test_tracker_series_colors_follow_tracker_order():
    tracked = [
        TrackedLocation(geocode=2611606, name="Recife - PE", series=SERIES),
        TrackedLocation(geocode=3550308, name="São Paulo - SP", series=SERIES),
    ]
    bars = [s for s in build_tracker_series(tracked, SANITATION) if s.kind == "bar"]
    assert [b.label for b in bars] == ["Recife - PE - Casos", "São Paulo - SP - Casos"]
    assert [b.color for b in bars] == list(CHART_COLORS[:2])


def test_tracker_series_skips_locations_without_data():
    tracked = [
        TrackedLocation(geocode=2611606, name="Recife - PE", series=[]),
        TrackedLocation(geocode=3550308, name="São Paulo - SP", series=SERIES),
    ]
    out = build_tracker_series(tracked, SANITATION)

    assert {s.label.split(" - ")[0] for s in out} == {"São Paulo"}
    bars = [s for s in out if s.kind == "bar"]
    assert [b.color for b in bars] == [CHART_COLORS[1]]
    assert build_tracker_series(tracked[:1], SANITATION) == []


def test_scatter_series_drops_unknown_uf_and_empty_locations():
    summaries = [
        summary("PE", point(202510, incidence_per_100k=12.5), name="Recife"),
        summary("SP", point(202510), name="São Paulo"),
        summary("ZZ", point(202510, incidence_per_100k=3.0), name="Nowhere"),
        summary("RJ", name="Rio de Janeiro"),
    ]
    points = build_scatter_series(summaries, SANITATION)

    assert [(p.label, p.uf) for p in points] == [("Recife", "PE"), ("São Paulo", "SP")]
    assert points[0].x == SANITATION["PE"].sewage_collection_pct
    assert points[0].y == pytest.approx(12.5)
    assert points[1].y == 0.0


def test_correlation_figure_uses_fixed_secondary_axis():
    fig = correlation_figure(build_correlation_series("Recife - PE", SERIES, SANITATION), title="Recife - PE")

    assert len(fig.data) == 5
    assert fig.data[0].type == "bar"
    assert list(fig.layout.yaxis2.range) == [0, 100]
    assert fig.layout.yaxis2.title.text == "Valores Secundários (%, °C)"
    assert list(fig.data[0].x)[:3] == ["Jan", "Fev", "Mar"]


def test_scatter_figure_carries_tooltip_data():
    points = build_scatter_series([summary("PE", point(202510, incidence_per_100k=2.0), name="Recife")], SANITATION)
    fig = scatter_figure(points, "dengue")

    assert [list(row) for row in fig.data[0].customdata] == [["Recife", "PE"]]
    assert "Esgoto" in fig.data[0].hovertemplate
    assert fig.layout.xaxis.title.text == "Coleta de Esgoto (%)"
