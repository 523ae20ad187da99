"""
Map layer manager.

Owns which visualization layer is on the canvas and the municipality
drill-down cache. Exactly one of the five layers is active; switching tears
down what the previous layer drew before building the next one. While the
``disease`` layer is active and the map is zoomed past the threshold, the
states intersecting the viewport are loaded at municipality granularity, one
load per state, and kept until the disease changes, the layer changes or the
map zooms back out.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from vigisaude.analytics.aggregation import alerts_by_uf, cases_by_uf
from vigisaude.data.client import SurveillanceClient
from vigisaude.data.errors import FetchError
from vigisaude.data.reference import (
    ALL_REGIONS,
    REGION_BOUNDS,
    disease_info,
    get_sanitation_table,
    major_cities,
    state_name,
)
from vigisaude.data.schemas import LocationSeriesPoint, LocationSummary, SanitationRecord
from vigisaude.maps.canvas import Artifact, Bounds, MapCanvas, Viewport
from vigisaude.maps.layers import (
    BRAZIL_BOUNDS,
    backdrop_style,
    disease_style,
    feature_code,
    feature_uf,
    heat_blobs,
    heatmap_svg,
    municipality_popup_html,
    municipality_style,
    relief_markers,
    sanitation_style,
    state_bounds,
    state_popup_html,
)
from vigisaude.maps.legend import Legend, legend_for
from vigisaude.utils.config import DEFAULT_DISEASE, MAP_ZOOM_START, MUNICIPALITY_ZOOM_THRESHOLD

log = logging.getLogger(__name__)

Z_BASE = 10
Z_MUNICIPALITY = 20
Z_HEATMAP = 30
Z_RELIEF = 40


class MapLayer(str, Enum):
    DISEASE = "disease"
    HEATMAP = "heatmap"
    SEWAGE_COLLECTION = "sewageCollection"
    SEWAGE_TREATMENT = "sewageTreatment"
    SEWAGE_RELIEF = "sewageRelief"


class Granularity(str, Enum):
    STATE = "state"
    MUNICIPALITY = "municipality"


@dataclass
class MapLayerState:
    active_layer: MapLayer = MapLayer.DISEASE
    active_disease: str = DEFAULT_DISEASE
    active_region: str = ALL_REGIONS
    zoom_level: float = MAP_ZOOM_START
    granularity: Granularity = Granularity.STATE


@dataclass
class MunicipalityLayer:
    """Drill-down of one state for one disease."""

    state_id: int
    disease: str
    artifact: Artifact
    alerts: Dict[int, LocationSeriesPoint] = field(default_factory=dict)


class MapLayerManager:
    def __init__(
        self,
        canvas: MapCanvas,
        client: SurveillanceClient,
        *,
        sanitation: Optional[Mapping[str, SanitationRecord]] = None,
        zoom_threshold: int = MUNICIPALITY_ZOOM_THRESHOLD,
        disease: str = DEFAULT_DISEASE,
        on_legend: Optional[Callable[[Legend], None]] = None,
    ):
        self.canvas = canvas
        self.client = client
        self.sanitation = sanitation if sanitation is not None else get_sanitation_table()
        self.zoom_threshold = zoom_threshold
        self.on_legend = on_legend
        self.state = MapLayerState(active_disease=disease)

        self.municipality_layers: Dict[int, MunicipalityLayer] = {}
        self.placeholder: Optional[str] = None
        self.legend: Legend = legend_for(MapLayer.DISEASE.value, disease)

        self._national: Dict[str, Sequence[LocationSummary]] = {}
        self._boundaries: Optional[Dict[str, Any]] = None
        self._state_bounds: Dict[int, Bounds] = {}
        self._viewport: Optional[Viewport] = None
        self._base: Optional[Artifact] = None
        self._heatmap: Optional[Artifact] = None
        self._relief: Optional[Artifact] = None
        self._in_flight: Dict[int, asyncio.Task] = {}
        self._generation = 0

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def zoomed_in(self) -> bool:
        return self.state.zoom_level >= self.zoom_threshold

    @property
    def has_base(self) -> bool:
        return self._boundaries is not None

    @property
    def last_viewport(self) -> Optional[Viewport]:
        return self._viewport

    def in_flight(self) -> List[int]:
        return sorted(self._in_flight)

    def visible_states(self) -> List[int]:
        """UF ids whose bounding box intersects the last settled viewport."""
        if self._viewport is None:
            return []
        return [sid for sid, bbox in sorted(self._state_bounds.items()) if self._viewport.intersects(bbox)]

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------

    async def load_base(self) -> None:
        """Fetch the country boundaries and draw the active layer.

        Raises:
            FetchError: When the boundaries cannot be fetched.
        """
        self._boundaries = await self.client.fetch_country_boundaries()
        self._state_bounds = state_bounds(self._boundaries)
        log.info("base map loaded states=%d", len(self._state_bounds))
        self._render()

    def set_national_data(self, disease: str, summaries: Sequence[LocationSummary]) -> None:
        self._national[disease] = tuple(summaries)
        self._render()
        self._update_legend()

    def set_layer(self, layer: MapLayer | str) -> None:
        layer = MapLayer(layer)
        previous = self.state.active_layer
        self._evict_municipalities()
        if previous is MapLayer.HEATMAP:
            self._heatmap = self._remove(self._heatmap)
        if previous is MapLayer.SEWAGE_RELIEF:
            self._relief = self._remove(self._relief)
        self.state.active_layer = layer
        log.debug("layer %s -> %s", previous.value, layer.value)
        self._render()
        self._update_legend()

    async def set_disease(self, disease: str) -> None:
        """Switch disease; drops every municipality layer and reloads the visible ones if zoomed in."""
        if disease == self.state.active_disease:
            return
        self.state.active_disease = disease
        self._evict_municipalities()
        self._render()
        self._update_legend()
        if self.state.active_layer is MapLayer.DISEASE and self.zoomed_in:
            await self._load_visible()

    def set_region(self, region: str) -> None:
        if region not in REGION_BOUNDS:
            raise ValueError(f"Região desconhecida: {region!r}")
        self.state.active_region = region
        self.canvas.fit_bounds(REGION_BOUNDS[region])
        self._render()

    async def on_viewport_settled(self, viewport: Viewport) -> None:
        """React to the map settling: drill down past the threshold, restore below it."""
        was_zoomed_in = self.zoomed_in
        self._viewport = viewport
        self.canvas.update_viewport(viewport)
        self.state.zoom_level = viewport.zoom

        if not self.zoomed_in:
            if was_zoomed_in or self.municipality_layers or self._in_flight:
                self._evict_municipalities()
                self._draw_base()
            return

        if self.state.active_layer is not MapLayer.DISEASE:
            return
        if not was_zoomed_in:
            self._draw_base()
        await self._load_visible()

    async def wait_idle(self) -> None:
        """Wait for every drill-down load in flight."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight.values()))

    # -------------------------------------------------------------------------
    # Drill-down
    # -------------------------------------------------------------------------

    async def _load_visible(self) -> None:
        disease = self.state.active_disease
        started = []
        for sid in self.visible_states():
            if sid in self.municipality_layers or sid in self._in_flight:
                continue
            task = asyncio.ensure_future(self._load_state(sid, disease, self._generation))
            self._in_flight[sid] = task
            started.append(task)
        if started:
            log.info("drill-down disease=%s states=%s", disease, sorted(self._in_flight))
            await asyncio.gather(*started)

    async def _load_state(self, state_id: int, disease: str, generation: int) -> None:
        task = asyncio.current_task()
        try:
            geojson, alerts, names = await asyncio.gather(
                self.client.fetch_state_boundaries(state_id),
                self.client.fetch_bulk_municipality_latest(major_cities(state_id), disease),
                self._municipality_names(state_id),
            )
        except FetchError as exc:
            log.warning("municipality layer failed state=%s disease=%s: %s", state_id, disease, exc)
            return
        finally:
            if self._in_flight.get(state_id) is task:
                del self._in_flight[state_id]

        if (
            generation != self._generation
            or disease != self.state.active_disease
            or self.state.active_layer is not MapLayer.DISEASE
            or not self.zoomed_in
        ):
            log.debug("discarding superseded municipality layer state=%s disease=%s", state_id, disease)
            return
        if state_id in self.municipality_layers:
            return

        def label(feature) -> str:
            code = feature_code(feature) or 0
            latest = alerts.get(code)
            return names.get(code) or (latest.municipality_name if latest else None) or f"Município {code}"

        artifact = self.canvas.add_geojson(
            f"municipios-{state_id}",
            geojson,
            style=municipality_style(alerts),
            z=Z_MUNICIPALITY,
            popup=lambda f: municipality_popup_html(label(f), alerts.get(feature_code(f) or 0)),
            tooltip=label,
        )
        self.municipality_layers[state_id] = MunicipalityLayer(
            state_id=state_id, disease=disease, artifact=artifact, alerts=dict(alerts)
        )
        self.state.granularity = Granularity.MUNICIPALITY

    async def _municipality_names(self, state_id: int) -> Dict[int, str]:
        """Geocode -> name for labels; empty when the IBGE listing is unavailable."""
        try:
            municipalities = await self.client.fetch_municipalities(state_id)
        except FetchError as exc:
            log.warning("municipality names unavailable state=%s: %s", state_id, exc)
            return {}
        return {m.geocode: m.name for m in municipalities}

    def _evict_municipalities(self) -> None:
        for layer in self.municipality_layers.values():
            self.canvas.remove(layer.artifact)
        self.municipality_layers.clear()
        # pending loads finish on their own and are discarded by generation
        self._in_flight.clear()
        self._generation += 1
        self.state.granularity = Granularity.STATE

    # -------------------------------------------------------------------------
    # Drawing
    # -------------------------------------------------------------------------

    def _remove(self, artifact: Optional[Artifact]) -> None:
        if artifact is not None:
            self.canvas.remove(artifact)
        return None

    def _alerts(self) -> Dict[str, LocationSeriesPoint]:
        return alerts_by_uf(self._national.get(self.state.active_disease, ()))

    def _base_style(self):
        layer, region = self.state.active_layer, self.state.active_region
        if layer is MapLayer.DISEASE:
            return disease_style(self._alerts(), region, dimmed=self.zoomed_in)
        if layer is MapLayer.HEATMAP:
            return backdrop_style("#050c1f", 0.75, region)
        if layer is MapLayer.SEWAGE_COLLECTION:
            return sanitation_style(self.sanitation, "collection", region)
        if layer is MapLayer.SEWAGE_TREATMENT:
            return sanitation_style(self.sanitation, "treatment", region)
        return backdrop_style("#0f172a", 0.55, region)

    def _draw_base(self) -> None:
        self._base = self._remove(self._base)
        if self._boundaries is None:
            return
        alerts, disease = self._alerts(), self.state.active_disease
        self._base = self.canvas.add_geojson(
            "estados",
            self._boundaries,
            style=self._base_style(),
            z=Z_BASE,
            popup=lambda f: state_popup_html(
                feature_uf(f), alerts.get(feature_uf(f)), disease, self.sanitation.get(feature_uf(f))
            ),
            tooltip=lambda f: state_name(feature_uf(f)),
        )

    def _render(self) -> None:
        """Redraw the state-level layer; municipality layers are left alone."""
        self._heatmap = self._remove(self._heatmap)
        self._relief = self._remove(self._relief)
        self.placeholder = None
        self._draw_base()

        layer = self.state.active_layer
        if layer is MapLayer.DISEASE:
            self.placeholder = self._disease_placeholder()
        elif layer is MapLayer.HEATMAP:
            blobs = heat_blobs({d: cases_by_uf(s) for d, s in self._national.items()})
            if blobs:
                self._heatmap = self.canvas.add_overlay(
                    "heatmap", heatmap_svg(blobs), BRAZIL_BOUNDS, z=Z_HEATMAP, opacity=0.95
                )
            else:
                self.placeholder = "Sem dados de casos para o mapa de calor."
        elif layer is MapLayer.SEWAGE_RELIEF:
            self._relief = self.canvas.add_markers(
                "relief", relief_markers(self.sanitation, self.state.active_region), z=Z_RELIEF
            )

    def _disease_placeholder(self) -> Optional[str]:
        name = disease_info(self.state.active_disease).name
        summaries = self._national.get(self.state.active_disease)
        if summaries is None:
            return f"Carregando dados de {name}…"
        if not any(s.latest is not None for s in summaries):
            return f"Sem dados de {name} disponíveis."
        return None

    def _update_legend(self) -> None:
        loaded = [d for d, s in self._national.items() if any(x.latest is not None for x in s)]
        self.legend = legend_for(self.state.active_layer.value, self.state.active_disease, loaded_diseases=loaded)
        if self.on_legend is not None:
            self.on_legend(self.legend)


__all__ = [
    "MapLayer",
    "Granularity",
    "MapLayerState",
    "MunicipalityLayer",
    "MapLayerManager",
    "Z_BASE",
    "Z_MUNICIPALITY",
    "Z_HEATMAP",
    "Z_RELIEF",
]
