# src/vigisaude/data/client.py
"""
Data access layer: InfoDengue surveillance series and IBGE geography.

Every fetch is memoized in a ``RequestCache`` keyed by its parameters, so
identical concurrent requests share a single upstream call. Batch fetches
(national overview, bulk municipality alerts) tolerate per-item failures;
single fetches raise ``FetchError``.

The transport and the ``today`` provider are injectable so the client can be
exercised without network access.
"""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from vigisaude.data.cache import RequestCache
from vigisaude.data.errors import FetchError, UnresolvableLocation
from vigisaude.data.reference import capitals, uf_abbreviation
from vigisaude.data.schemas import LocationSeriesPoint, LocationSummary, MunicipalityRef
from vigisaude.utils.config import (
    BULK_TRAILING_WEEKS,
    FALLBACK_YEARS_BACK,
    IBGE_API_URL,
    INFODENGUE_API_URL,
    NATIONAL_TRAILING_WEEKS,
)
from vigisaude.utils.epiweek import MAX_WEEK, trailing_window
from vigisaude.utils.http import HttpTransport, Transport
from vigisaude.utils.text import normalize_text

log = logging.getLogger(__name__)

Series = Tuple[LocationSeriesPoint, ...]

GEOJSON_FORMAT = "application/vnd.geo+json"


class SurveillanceClient:
    """Memoized async fetchers over InfoDengue and IBGE."""

    def __init__(
        self,
        transport: Optional[Transport] = None,
        *,
        cache: Optional[RequestCache] = None,
        today: Callable[[], date] = date.today,
        infodengue_url: str = INFODENGUE_API_URL,
        ibge_url: str = IBGE_API_URL,
        national_trailing_weeks: int = NATIONAL_TRAILING_WEEKS,
        bulk_trailing_weeks: int = BULK_TRAILING_WEEKS,
        fallback_years_back: int = FALLBACK_YEARS_BACK,
    ):
        self.transport = transport or HttpTransport()
        self.cache = cache if cache is not None else RequestCache()
        self.today = today
        self.infodengue_url = infodengue_url.rstrip("/")
        self.ibge_url = ibge_url.rstrip("/")
        self.national_trailing_weeks = national_trailing_weeks
        self.bulk_trailing_weeks = bulk_trailing_weeks
        self.fallback_years_back = fallback_years_back

    # -------------------------------------------------------------------------
    # InfoDengue
    # -------------------------------------------------------------------------

    async def fetch_location_series(
        self,
        geocode: int,
        disease: str,
        week_start: int = 1,
        week_end: int = MAX_WEEK,
        year_start: Optional[int] = None,
        year_end: Optional[int] = None,
    ) -> Series:
        """
        Weekly series of one municipality, ascending by epidemiological week.

        Years default to the current one. An empty tuple means the upstream has
        no data for the period.

        Raises:
            FetchError: On transport failure or an undecodable payload.
        """
        year = self.today().year
        year_start = year if year_start is None else year_start
        year_end = year_start if year_end is None else year_end
        key = ("series", int(geocode), disease, week_start, week_end, year_start, year_end)
        return await self.cache.get_or_fetch(
            key, lambda: self._load_series(int(geocode), disease, week_start, week_end, year_start, year_end)
        )

    async def _load_series(
        self, geocode: int, disease: str, week_start: int, week_end: int, year_start: int, year_end: int
    ) -> Series:
        url = f"{self.infodengue_url}/alertcity"
        params = {
            "geocode": geocode,
            "disease": disease,
            "format": "json",
            "ew_start": week_start,
            "ew_end": week_end,
            "ey_start": year_start,
            "ey_end": year_end,
        }
        payload = await self.transport(url, params)
        if not isinstance(payload, list):
            raise FetchError(f"Resposta inesperada do InfoDengue para {geocode}", url=url)
        try:
            points = [LocationSeriesPoint.model_validate(rec) for rec in payload]
        except ValidationError as exc:
            raise FetchError(f"Registro inválido do InfoDengue para {geocode}: {exc}", url=url) from exc
        return tuple(sorted(points, key=lambda p: p.week))

    async def fetch_national_overview(self, disease: str) -> Tuple[LocationSummary, ...]:
        """
        One summary per tracked capital for ``disease``.

        Tries the trailing window of the current year first; when no capital
        has a latest record, falls back to full previous years (weeks 1..52),
        down to ``fallback_years_back`` years. Summaries carry the year used.
        Never raises for a single capital: failures degrade to an empty series.
        """
        return await self.cache.get_or_fetch(("national", disease), lambda: self._resolve_national(disease))

    async def _resolve_national(self, disease: str) -> Tuple[LocationSummary, ...]:
        t0 = time.perf_counter()
        today = self.today()
        year = today.year
        week_start, week_end = trailing_window(today, self.national_trailing_weeks)

        summaries = await self._overview_for_year(disease, year, week_start, week_end)
        for back in range(1, self.fallback_years_back + 1):
            if any(s.latest is not None for s in summaries):
                break
            log.info("no %s data for %s, falling back to %s", disease, year - back + 1, year - back)
            summaries = await self._overview_for_year(disease, year - back, 1, MAX_WEEK)

        data_year = summaries[0].data_year if summaries else year
        log.info(
            "national_overview_ms=%d disease=%s year=%s capitals_with_data=%d",
            int((time.perf_counter() - t0) * 1000),
            disease,
            data_year,
            sum(1 for s in summaries if s.latest is not None),
        )
        return summaries

    async def _overview_for_year(
        self, disease: str, year: int, week_start: int, week_end: int
    ) -> Tuple[LocationSummary, ...]:
        async def one(ref: MunicipalityRef) -> LocationSummary:
            try:
                series = await self.fetch_location_series(
                    ref.geocode, disease, week_start, week_end, year, year
                )
            except FetchError as exc:
                log.warning("series unavailable geocode=%s disease=%s year=%s: %s", ref.geocode, disease, year, exc)
                series = ()
            return LocationSummary(
                geocode=ref.geocode, name=ref.name, uf=ref.uf, series=list(series), data_year=year
            )

        return tuple(await asyncio.gather(*(one(ref) for ref in capitals())))

    async def fetch_bulk_municipality_latest(
        self, geocodes: Iterable[int], disease: str
    ) -> Dict[int, LocationSeriesPoint]:
        """
        Latest record of each municipality over the last few weeks of this year.

        Municipalities that fail or have no data are left out of the result.
        """
        today = self.today()
        week_start, week_end = trailing_window(today, self.bulk_trailing_weeks)

        async def one(geocode: int) -> Optional[LocationSeriesPoint]:
            try:
                series = await self.fetch_location_series(
                    geocode, disease, week_start, week_end, today.year, today.year
                )
            except FetchError as exc:
                log.warning("bulk latest unavailable geocode=%s disease=%s: %s", geocode, disease, exc)
                return None
            return series[-1] if series else None

        codes = [int(g) for g in geocodes]
        latest = await asyncio.gather(*(one(g) for g in codes))
        return {g: point for g, point in zip(codes, latest) if point is not None}

    # -------------------------------------------------------------------------
    # IBGE
    # -------------------------------------------------------------------------

    async def fetch_country_boundaries(self) -> Dict[str, Any]:
        """GeoJSON of Brazil split by UF (features carry ``properties.codarea``)."""
        url = f"{self.ibge_url}/v3/malhas/paises/BR"
        params = {"formato": GEOJSON_FORMAT, "qualidade": "minima", "intrarregiao": "UF"}
        return await self.cache.get_or_fetch(("geo", "BR"), lambda: self._load_geojson(url, params))

    async def fetch_state_boundaries(self, state_id: int) -> Dict[str, Any]:
        """GeoJSON of one UF split by municipality."""
        url = f"{self.ibge_url}/v3/malhas/estados/{int(state_id)}"
        params = {"formato": GEOJSON_FORMAT, "qualidade": "minima", "intrarregiao": "municipio"}
        return await self.cache.get_or_fetch(("geo", int(state_id)), lambda: self._load_geojson(url, params))

    async def _load_geojson(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = await self.transport(url, params)
        if not isinstance(payload, dict) or not isinstance(payload.get("features"), list):
            raise FetchError(f"GeoJSON inválido em {url}", url=url)
        return payload

    async def fetch_states(self) -> List[Dict[str, Any]]:
        """IBGE state listing ordered by name (``id``, ``sigla``, ``nome``)."""
        url = f"{self.ibge_url}/v1/localidades/estados"
        return await self.cache.get_or_fetch(("states",), lambda: self._load_list(url, {"orderBy": "nome"}))

    async def fetch_municipalities(self, uf_id: int) -> Tuple[MunicipalityRef, ...]:
        """Municipalities of one UF ordered by name."""
        uf_id = int(uf_id)

        async def load() -> Tuple[MunicipalityRef, ...]:
            url = f"{self.ibge_url}/v1/localidades/estados/{uf_id}/municipios"
            rows = await self._load_list(url, {"orderBy": "nome"})
            uf = uf_abbreviation(uf_id)
            try:
                return tuple(MunicipalityRef(geocode=int(r["id"]), name=r["nome"], uf=uf) for r in rows)
            except (KeyError, TypeError, ValueError) as exc:
                raise FetchError(f"Listagem de municípios inválida para UF {uf_id}: {exc}", url=url) from exc

        return await self.cache.get_or_fetch(("municipalities", uf_id), load)

    async def _all_municipalities(self) -> Tuple[MunicipalityRef, ...]:
        async def load() -> Tuple[MunicipalityRef, ...]:
            url = f"{self.ibge_url}/v1/localidades/municipios"
            rows = await self._load_list(url, {"view": "nivelado"})
            try:
                return tuple(
                    MunicipalityRef(geocode=int(r["municipio-id"]), name=r["municipio-nome"], uf=r["UF-sigla"])
                    for r in rows
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise FetchError(f"Listagem de municípios inválida: {exc}", url=url) from exc

        return await self.cache.get_or_fetch(("municipalities", "all"), load)

    async def _load_list(self, url: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        payload = await self.transport(url, params)
        if not isinstance(payload, list):
            raise FetchError(f"Listagem inesperada em {url}", url=url)
        return payload

    # -------------------------------------------------------------------------
    # Tracker search
    # -------------------------------------------------------------------------

    async def search_municipalities(self, query: str, limit: int = 10) -> List[MunicipalityRef]:
        """
        Accent/case-insensitive name search, optionally as ``"City - UF"``.

        Exact name matches come first, then prefix matches, then substrings.
        """
        name, uf = _split_query(query)
        if not name:
            return []
        ranked: List[Tuple[int, MunicipalityRef]] = []
        for ref in await self._all_municipalities():
            if uf and ref.uf != uf:
                continue
            candidate = normalize_text(ref.name)
            if candidate == name:
                ranked.append((0, ref))
            elif candidate.startswith(name):
                ranked.append((1, ref))
            elif name in candidate:
                ranked.append((2, ref))
        ranked.sort(key=lambda item: (item[0], normalize_text(item[1].name), item[1].uf))
        return [ref for _, ref in ranked[:limit]]

    async def resolve_municipality(self, query: str) -> MunicipalityRef:
        """
        Best match for ``query``.

        Raises:
            UnresolvableLocation: When nothing matches.
        """
        matches = await self.search_municipalities(query, limit=1)
        if not matches:
            raise UnresolvableLocation(query)
        return matches[0]

    def clear_cache(self) -> None:
        self.cache.clear()


def _split_query(query: str) -> Tuple[str, Optional[str]]:
    """``"Recife - PE"`` -> ``("recife", "PE")``; a bare name has no UF."""
    text = (query or "").strip()
    head, sep, tail = text.rpartition(" - ")
    if sep and len(tail.strip()) == 2 and tail.strip().isalpha():
        return normalize_text(head), tail.strip().upper()
    return normalize_text(text), None


__all__ = ["SurveillanceClient"]
