# src/vigisaude/dashboard/session.py
"""
Dashboard session: the single owner of dashboard state.

A session holds the data client (and its request cache), the map layer
manager, the national overview per disease, the tracker and the reporting
period. The UI calls the ``select_*`` / tracker methods and reads the derived
views (cards, stats, chart series); every state change is also published on
the session's ``EventChannel``.

Design goals:
- No module-level mutable state; ``reset()`` returns the session to its initial state
- Tracker order is explicit and drives chart colors
- Upstream failures degrade the view instead of aborting it
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from vigisaude.analytics.aggregation import aggregate_national, data_year, latest_week, summaries_frame
from vigisaude.analytics.charting import build_scatter_series, build_tracker_series
from vigisaude.dashboard.events import (
    DiseaseChanged,
    EventChannel,
    LayerChanged,
    LegendUpdated,
    NationalDataLoaded,
    PeriodChanged,
    RegionChanged,
    TrackerChanged,
)
from vigisaude.data.client import SurveillanceClient
from vigisaude.data.errors import FetchError
from vigisaude.data.reference import ALL_REGIONS, classify_alert_level, disease_info, get_sanitation_table
from vigisaude.data.schemas import (
    DiseaseCard,
    LocationSummary,
    MunicipalityRef,
    NationalSummaryStats,
    PlotSeries,
    ReportingPeriod,
    SanitationRecord,
    ScatterPoint,
    TrackedLocation,
)
from vigisaude.maps.canvas import FoliumCanvas, MapCanvas, Viewport
from vigisaude.maps.manager import MapLayer, MapLayerManager
from vigisaude.utils.config import TRACKED_DISEASES
from vigisaude.utils.epiweek import format_week

log = logging.getLogger(__name__)


class DashboardSession:
    def __init__(
        self,
        client: Optional[SurveillanceClient] = None,
        *,
        canvas_factory: Callable[[], MapCanvas] = FoliumCanvas,
        events: Optional[EventChannel] = None,
        diseases: Sequence[str] = TRACKED_DISEASES,
        sanitation: Optional[Mapping[str, SanitationRecord]] = None,
    ):
        if not diseases:
            raise ValueError("At least one disease must be tracked.")
        self.client = client or SurveillanceClient()
        self.canvas_factory = canvas_factory
        self.events = events or EventChannel()
        self.diseases: Tuple[str, ...] = tuple(diseases)
        self.sanitation = sanitation if sanitation is not None else get_sanitation_table()
        self._init_state()

    def _init_state(self) -> None:
        self.active_disease: str = self.diseases[0]
        self.active_region: str = ALL_REGIONS
        self.national: Dict[str, Tuple[LocationSummary, ...]] = {}
        self.tracked: List[TrackedLocation] = []
        year = self.client.today().year
        self.period = ReportingPeriod(year_start=year, year_end=year)
        self.map_error: Optional[str] = None
        self.last_updated: Optional[datetime] = None
        self.canvas: MapCanvas = self.canvas_factory()
        self.map = MapLayerManager(
            self.canvas,
            self.client,
            sanitation=self.sanitation,
            disease=self.active_disease,
            on_legend=lambda legend: self.events.publish(LegendUpdated(legend)),
        )

    def reset(self) -> None:
        """Drop every cached response and all session state."""
        self.client.clear_cache()
        self._init_state()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Load the base map and the active disease's national overview."""
        try:
            await self.map.load_base()
            self.map_error = None
        except FetchError as exc:
            log.exception("base map unavailable")
            self.map_error = f"Não foi possível carregar o mapa do Brasil ({exc})."
        await self.load_national(self.active_disease)

    async def load_national(self, disease: str) -> Tuple[LocationSummary, ...]:
        summaries = tuple(await self.client.fetch_national_overview(disease))
        self.national[disease] = summaries
        self.last_updated = datetime.now()
        self.map.set_national_data(disease, summaries)
        self.events.publish(NationalDataLoaded(disease=disease, summaries=summaries, data_year=data_year(summaries)))
        return summaries

    async def ensure_national(self, diseases: Optional[Sequence[str]] = None) -> None:
        """Load the overview of each disease not loaded yet."""
        missing = [d for d in (diseases or self.diseases) if d not in self.national]
        if missing:
            await asyncio.gather(*(self.load_national(d) for d in missing))

    # -------------------------------------------------------------------------
    # Controls
    # -------------------------------------------------------------------------

    async def select_disease(self, disease: str) -> None:
        if disease not in self.diseases:
            raise ValueError(f"Doença não monitorada: {disease!r}")
        if disease == self.active_disease:
            return
        previous, self.active_disease = self.active_disease, disease
        self.events.publish(DiseaseChanged(disease=disease, previous=previous))
        await self.map.set_disease(disease)
        await self.ensure_national([disease])
        await self.reload_tracker()

    def select_region(self, region: str) -> None:
        self.map.set_region(region)
        self.active_region = region
        self.events.publish(RegionChanged(region=region))

    async def select_layer(self, layer: Union[MapLayer, str]) -> None:
        layer = MapLayer(layer)
        previous = self.map.state.active_layer
        self.map.set_layer(layer)
        self.events.publish(LayerChanged(layer=layer.value, previous=previous.value))
        if layer is MapLayer.HEATMAP:
            # each overview re-renders the heatmap as it arrives
            await self.ensure_national()

    async def on_viewport(self, viewport: Optional[Viewport]) -> None:
        if viewport is not None:
            await self.map.on_viewport_settled(viewport)

    # -------------------------------------------------------------------------
    # Tracker
    # -------------------------------------------------------------------------

    def is_tracked(self, geocode: int) -> bool:
        return any(t.geocode == int(geocode) for t in self.tracked)

    async def add_location(self, location: Union[str, MunicipalityRef]) -> bool:
        """Resolve and append a location; False when it is already tracked.

        Raises:
            UnresolvableLocation: If a text query matches no municipality.
            FetchError: If its series cannot be fetched.
        """
        ref = location if isinstance(location, MunicipalityRef) else await self.client.resolve_municipality(location)
        if self.is_tracked(ref.geocode):
            return False
        series = await self._tracked_series(ref.geocode)
        self.tracked.append(TrackedLocation(geocode=ref.geocode, name=ref.label, series=list(series)))
        log.info("tracker add geocode=%s name=%s points=%d", ref.geocode, ref.label, len(series))
        self._publish_tracker()
        return True

    def remove_location(self, geocode: int) -> bool:
        before = len(self.tracked)
        self.tracked = [t for t in self.tracked if t.geocode != int(geocode)]
        if len(self.tracked) == before:
            return False
        self._publish_tracker()
        return True

    async def reload_tracker(self) -> None:
        """Refetch every tracked location for the active disease and period, keeping order."""
        if not self.tracked:
            return

        async def one(loc: TrackedLocation) -> TrackedLocation:
            try:
                series = await self._tracked_series(loc.geocode)
            except FetchError as exc:
                log.warning("tracker reload failed geocode=%s: %s", loc.geocode, exc)
                series = ()
            return TrackedLocation(geocode=loc.geocode, name=loc.name, series=list(series))

        self.tracked = list(await asyncio.gather(*(one(loc) for loc in self.tracked)))
        self._publish_tracker()

    async def set_period(self, period: ReportingPeriod) -> None:
        self.period = period
        self.events.publish(PeriodChanged(period=period))
        await self.reload_tracker()

    async def _tracked_series(self, geocode: int):
        p = self.period
        return await self.client.fetch_location_series(
            geocode, self.active_disease, p.week_start, p.week_end, p.year_start, p.year_end
        )

    def _publish_tracker(self) -> None:
        self.events.publish(TrackerChanged(locations=tuple(self.tracked)))

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    def national_stats(self, disease: Optional[str] = None) -> NationalSummaryStats:
        return aggregate_national(self.national.get(disease or self.active_disease, ()))

    def data_year(self, disease: Optional[str] = None) -> Optional[int]:
        return data_year(self.national.get(disease or self.active_disease, ()))

    def is_stale(self, disease: Optional[str] = None) -> bool:
        year = self.data_year(disease)
        return year is not None and year < self.client.today().year

    def stale_note(self, disease: Optional[str] = None) -> Optional[str]:
        return f"⚠ Dados de {self.data_year(disease)}" if self.is_stale(disease) else None

    def disease_cards(self) -> List[DiseaseCard]:
        cards = []
        for d in self.diseases:
            info = disease_info(d)
            stats = self.national_stats(d)
            cards.append(
                DiseaseCard(
                    disease=d,
                    name=info.name,
                    color_hex=info.color_hex,
                    stats=stats,
                    alert=classify_alert_level(stats.max_alert_level),
                    data_year=self.data_year(d),
                    is_stale=self.is_stale(d),
                    is_active=d == self.active_disease,
                )
            )
        return cards

    def latest_week_label(self) -> Optional[str]:
        week = latest_week(self.national.get(self.active_disease, ()))
        return format_week(week) if week else None

    def chart_title(self) -> str:
        if not self.tracked:
            return f"{disease_info(self.active_disease).name} — Selecione uma localidade"
        if len(self.tracked) == 1:
            return self.tracked[0].name
        return f"{len(self.tracked)} localidades"

    def correlation_series(self) -> List[PlotSeries]:
        return build_tracker_series(self.tracked, self.sanitation)

    def scatter_points(self) -> List[ScatterPoint]:
        return build_scatter_series(self.national.get(self.active_disease, ()), self.sanitation)

    def capitals_frame(self) -> pd.DataFrame:
        return summaries_frame(self.national.get(self.active_disease, ()))


__all__ = ["DashboardSession"]
