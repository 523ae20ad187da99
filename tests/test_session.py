import asyncio

import pytest

from fakes import FakeApi, default_series, make_client
from vigisaude.dashboard.events import (
    DiseaseChanged,
    EventChannel,
    LayerChanged,
    LegendUpdated,
    NationalDataLoaded,
    PeriodChanged,
    TrackerChanged,
)
from vigisaude.data.errors import UnresolvableLocation
from vigisaude.data.reference import CAPITALS, CHART_COLORS
from vigisaude.data.schemas import MunicipalityRef, ReportingPeriod
from vigisaude.dashboard.session import DashboardSession

DISEASES = ("dengue", "chikungunya", "zika")
SAO_PAULO = MunicipalityRef(geocode=3550308, name="São Paulo", uf="SP")


@pytest.fixture
def session(client):
    return DashboardSession(client, diseases=DISEASES)


def _record(channel, *types):
    seen = []
    for t in types:
        channel.subscribe(t, seen.append)
    return seen


def test_start_loads_map_and_active_disease(session, api):
    seen = _record(session.events, NationalDataLoaded, LegendUpdated)
    asyncio.run(session.start())

    loaded = [e for e in seen if isinstance(e, NationalDataLoaded)]
    assert [(e.disease, e.data_year) for e in loaded] == [("dengue", 2025)]
    assert len(loaded[0].summaries) == len(CAPITALS)
    assert any(isinstance(e, LegendUpdated) for e in seen)
    assert session.map.has_base and session.map_error is None
    assert session.last_updated is not None
    assert set(session.national) == {"dengue"}
    assert session.latest_week_label() == "SE 12/2025"
    assert not session.is_stale() and session.stale_note() is None


def test_base_map_failure_keeps_dashboard_running(api, client):
    api.failures.append(lambda url, params: "/malhas/paises/" in url)
    session = DashboardSession(client, diseases=DISEASES)
    asyncio.run(session.start())

    assert session.map_error.startswith("Não foi possível carregar o mapa do Brasil")
    assert not session.map.has_base
    assert session.national_stats().total_cases > 0


def test_stale_data_is_flagged():
    def only_2024(geocode, disease, params):
        return default_series(geocode, disease, params) if params["ey_start"] == 2024 else []

    session = DashboardSession(make_client(FakeApi(series=only_2024)), diseases=DISEASES)
    asyncio.run(session.start())

    assert session.data_year() == 2024
    assert session.is_stale()
    assert session.stale_note() == "⚠ Dados de 2024"
    card = next(c for c in session.disease_cards() if c.disease == "dengue")
    assert card.is_stale and card.is_active and card.data_year == 2024


def test_select_disease_publishes_and_loads(session, api):
    seen = _record(session.events, DiseaseChanged)

    async def scenario():
        await session.start()
        await session.select_disease("chikungunya")
        await session.select_disease("chikungunya")

    asyncio.run(scenario())

    assert seen == [DiseaseChanged(disease="chikungunya", previous="dengue")]
    assert session.active_disease == "chikungunya"
    assert session.map.state.active_disease == "chikungunya"
    assert set(session.national) == {"dengue", "chikungunya"}
    with pytest.raises(ValueError):
        asyncio.run(session.select_disease("malaria"))


def test_heatmap_loads_every_tracked_disease(session, api):
    seen = _record(session.events, LayerChanged)

    async def scenario():
        await session.start()
        await session.select_layer("heatmap")

    asyncio.run(scenario())

    assert seen == [LayerChanged(layer="heatmap", previous="disease")]
    assert set(session.national) == set(DISEASES)
    assert len(session.canvas.named("heatmap")) == 1
    assert [i.label for i in session.map.legend.items] == ["Dengue", "Chikungunya", "Zika"]


def test_tracker_keeps_order_and_rejects_duplicates(session):
    seen = _record(session.events, TrackerChanged)
    assert session.chart_title() == "Dengue — Selecione uma localidade"

    async def scenario():
        assert await session.add_location("Recife") is True
        assert await session.add_location("recife") is False
        assert await session.add_location(SAO_PAULO) is True

    asyncio.run(scenario())

    assert [t.name for t in session.tracked] == ["Recife - PE", "São Paulo - SP"]
    assert len(seen) == 2
    assert session.chart_title() == "2 localidades"
    bars = [s for s in session.correlation_series() if s.kind == "bar"]
    assert [b.color for b in bars] == list(CHART_COLORS[:2])

    assert session.remove_location(2611606) is True
    assert session.remove_location(2611606) is False
    assert session.chart_title() == "São Paulo - SP"
    assert [b.color for b in session.correlation_series() if b.kind == "bar"] == [CHART_COLORS[0]]


def test_unknown_location_is_rejected(session):
    with pytest.raises(UnresolvableLocation):
        asyncio.run(session.add_location("Cidade Inexistente"))
    assert session.tracked == []


def test_period_change_refetches_tracked_locations(session, api):
    seen = _record(session.events, PeriodChanged)
    period = ReportingPeriod(week_start=10, week_end=20, year_start=2023, year_end=2024)

    async def scenario():
        await session.add_location(SAO_PAULO)
        await session.set_period(period)

    asyncio.run(scenario())

    assert seen == [PeriodChanged(period=period)]
    last = api.alertcity_calls()[-1]
    assert (last["ew_start"], last["ew_end"], last["ey_start"], last["ey_end"]) == (10, 20, 2023, 2024)
    assert session.tracked[0].series[0].week == 202310


def test_disease_change_reloads_tracker(session, api):
    async def scenario():
        await session.add_location(SAO_PAULO)
        await session.select_disease("zika")

    asyncio.run(scenario())

    tracked_calls = [p for p in api.alertcity_calls() if p["geocode"] == SAO_PAULO.geocode]
    assert [p["disease"] for p in tracked_calls][-1] == "zika"
    assert [t.name for t in session.tracked] == ["São Paulo - SP"]


def test_tracker_reload_tolerates_failures(session, api):
    async def scenario():
        await session.add_location(SAO_PAULO)
        api.failures.append(lambda url, params: params.get("disease") == "zika")
        await session.select_disease("zika")

    asyncio.run(scenario())
    assert session.tracked[0].series == []
    assert session.correlation_series() == []


def test_reset_returns_to_initial_state(session):
    async def scenario():
        await session.start()
        await session.add_location(SAO_PAULO)
        await session.select_disease("zika")

    asyncio.run(scenario())
    old_map = session.map
    session.reset()

    assert session.tracked == [] and session.national == {}
    assert session.active_disease == "dengue"
    assert session.map is not old_map and not session.map.has_base
    assert len(session.client.cache) == 0


def test_region_and_derived_views(session):
    asyncio.run(session.start())
    session.select_region("nordeste")

    assert session.active_region == "nordeste"
    assert session.map.state.active_region == "nordeste"
    assert len(session.scatter_points()) == len(CAPITALS)
    frame = session.capitals_frame()
    assert len(frame) == len(CAPITALS)
    assert [c.disease for c in session.disease_cards()] == list(DISEASES)


def test_event_unsubscribe():
    channel = EventChannel()
    seen = []
    unsubscribe = channel.subscribe(PeriodChanged, seen.append)
    channel.publish(PeriodChanged(period=ReportingPeriod(year_start=2024, year_end=2024)))
    unsubscribe()
    unsubscribe()
    channel.publish(PeriodChanged(period=ReportingPeriod(year_start=2025, year_end=2025)))
    channel.publish(TrackerChanged(locations=()))

    assert len(seen) == 1
