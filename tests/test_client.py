import asyncio

import pytest

from fakes import FakeApi, default_series, make_client
from vigisaude.data.errors import FetchError, UnresolvableLocation
from vigisaude.data.reference import CAPITALS


def _years_requested(api):
    years = []
    for params in api.alertcity_calls():
        if params["ey_start"] not in years:
            years.append(params["ey_start"])
    return years


def test_location_series_is_sorted_and_parametrized(api, client):
    series = asyncio.run(client.fetch_location_series(2611606, "dengue", 1, 3, 2024, 2024))

    assert [p.week for p in series] == [202401, 202402, 202403]
    assert series[-1].cases == 3
    (params,) = api.alertcity_calls()
    assert params == {
        "geocode": 2611606,
        "disease": "dengue",
        "format": "json",
        "ew_start": 1,
        "ew_end": 3,
        "ey_start": 2024,
        "ey_end": 2024,
    }


def test_location_series_rejects_undecodable_payloads():
    api = FakeApi(series=lambda g, d, p: {"error": "nope"})
    with pytest.raises(FetchError):
        asyncio.run(make_client(api).fetch_location_series(2611606, "dengue"))

    api = FakeApi(series=lambda g, d, p: [{"SE": 202501, "nivel": 9}])
    with pytest.raises(FetchError):
        asyncio.run(make_client(api).fetch_location_series(2611606, "dengue"))


def test_national_overview_current_year_uses_trailing_window(api, client):
    summaries = asyncio.run(client.fetch_national_overview("dengue"))

    assert len(summaries) == len(CAPITALS)
    assert {s.data_year for s in summaries} == {2025}
    assert all(s.latest.week == 202512 for s in summaries)
    calls = api.alertcity_calls()
    assert len(calls) == len(CAPITALS)
    assert all((p["ew_start"], p["ew_end"], p["ey_start"]) == (8, 12, 2025) for p in calls)


def test_national_overview_falls_back_year_by_year():
    def only_2023(geocode, disease, params):
        return default_series(geocode, disease, params) if params["ey_start"] == 2023 else []

    api = FakeApi(series=only_2023)
    summaries = asyncio.run(make_client(api).fetch_national_overview("zika"))

    assert _years_requested(api) == [2025, 2024, 2023]
    assert {s.data_year for s in summaries} == {2023}
    assert all(s.latest.week == 202352 for s in summaries)
    fallback_calls = [p for p in api.alertcity_calls() if p["ey_start"] != 2025]
    assert all((p["ew_start"], p["ew_end"]) == (1, 52) for p in fallback_calls)


def test_national_overview_without_any_data_keeps_last_attempt():
    api = FakeApi(series=lambda g, d, p: [])
    summaries = asyncio.run(make_client(api).fetch_national_overview("chikungunya"))

    assert _years_requested(api) == [2025, 2024, 2023, 2022]
    assert all(s.is_empty and s.latest is None for s in summaries)
    assert {s.data_year for s in summaries} == {2022}


def test_national_overview_tolerates_single_location_failures(api, client):
    recife = 2611606
    api.failures.append(lambda url, params: params.get("geocode") == recife)

    summaries = asyncio.run(client.fetch_national_overview("dengue"))

    by_geocode = {s.geocode: s for s in summaries}
    assert by_geocode[recife].is_empty
    assert sum(1 for s in summaries if not s.is_empty) == len(CAPITALS) - 1
    assert {s.data_year for s in summaries} == {2025}


def test_concurrent_overviews_issue_one_request_per_capital(api, client):
    async def scenario():
        return await asyncio.gather(
            client.fetch_national_overview("dengue"), client.fetch_national_overview("dengue")
        )

    first, second = asyncio.run(scenario())
    assert first is second
    assert len(api.alertcity_calls()) == len(CAPITALS)


def test_bulk_latest_omits_failed_and_empty_municipalities():
    def series(geocode, disease, params):
        return [] if geocode == 3518800 else default_series(geocode, disease, params)

    api = FakeApi(series=series)
    api.failures.append(lambda url, params: params.get("geocode") == 3509502)

    latest = asyncio.run(make_client(api).fetch_bulk_municipality_latest([3550308, 3518800, 3509502], "dengue"))

    assert set(latest) == {3550308}
    assert latest[3550308].week == 202512
    assert all((p["ew_start"], p["ew_end"]) == (10, 12) for p in api.alertcity_calls())


def test_boundaries_must_be_feature_collections(api, client):
    geo = asyncio.run(client.fetch_country_boundaries())
    assert len(geo["features"]) == 4

    api.country = {"type": "Topology"}
    client.clear_cache()
    with pytest.raises(FetchError):
        asyncio.run(client.fetch_country_boundaries())


def test_fetch_states_and_municipalities(client):
    states = asyncio.run(client.fetch_states())
    assert [s["sigla"] for s in states] == ["PE", "SP"]

    municipalities = asyncio.run(client.fetch_municipalities(26))
    assert municipalities and all(m.uf == "PE" for m in municipalities)
    assert municipalities[0].label.endswith(" - PE")


def test_malformed_municipality_listing_is_a_fetch_error(api, client):
    async def listing(url, params=None):
        return [{"codigo": 2611606}]

    client.transport = listing
    with pytest.raises(FetchError):
        asyncio.run(client.fetch_municipalities(26))
    assert len(client.cache) == 0


def test_search_is_accent_insensitive_and_ranks_exact_first(api, client):
    results = asyncio.run(client.search_municipalities("sao paulo"))
    assert [r.label for r in results] == ["São Paulo - SP", "São Paulo do Potengi - RN"]

    only_sp = asyncio.run(client.search_municipalities("Campinas - SP"))
    assert [r.geocode for r in only_sp] == [3509502]
    assert asyncio.run(client.search_municipalities("Campinas - RJ")) == []
    assert api.count("/v1/localidades/municipios") == 1


def test_resolve_municipality(client):
    ref = asyncio.run(client.resolve_municipality("RECIFE"))
    assert (ref.geocode, ref.uf) == (2611606, "PE")

    with pytest.raises(UnresolvableLocation):
        asyncio.run(client.resolve_municipality("Cidade Inexistente"))
