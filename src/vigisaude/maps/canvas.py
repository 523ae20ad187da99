"""
Map substrate.

``MapCanvas`` is the surface the layer manager draws on: it hands out
``Artifact`` handles for GeoJSON layers, marker groups and image overlays and
takes them back on ``remove``. ``FoliumCanvas`` keeps that bookkeeping in
memory and only builds a ``folium.Map`` when ``render()`` is called, which is
what the web app hands to ``streamlit-folium``.
"""
from __future__ import annotations

import base64
import copy
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import folium
from shapely.geometry import Polygon, box

from vigisaude.utils.config import (
    MAP_ATTRIBUTION,
    MAP_CENTER,
    MAP_MAX_ZOOM,
    MAP_MIN_ZOOM,
    MAP_TILES,
    MAP_ZOOM_START,
)

log = logging.getLogger(__name__)

# ((south, west), (north, east))
Bounds = Tuple[Tuple[float, float], Tuple[float, float]]
Feature = Mapping[str, Any]
StyleFn = Callable[[Feature], Dict[str, Any]]
TextFn = Callable[[Feature], str]


def bounds_box(bounds: Bounds) -> Polygon:
    (south, west), (north, east) = bounds
    return box(west, south, east, north)


def bounds_intersect(a: Bounds, b: Bounds) -> bool:
    return bounds_box(a).intersects(bounds_box(b))


@dataclass(frozen=True)
class Viewport:
    """Zoom level and visible bounds reported when the map settles."""

    zoom: float
    bounds: Bounds

    def intersects(self, other: Bounds) -> bool:
        return bounds_intersect(self.bounds, other)

    @classmethod
    def from_st_folium(cls, state: Optional[Mapping[str, Any]]) -> Optional["Viewport"]:
        """Build from the dict ``st_folium`` returns (``zoom`` + Leaflet ``bounds``)."""
        if not state or state.get("zoom") is None:
            return None
        b = state.get("bounds") or {}
        sw, ne = b.get("_southWest") or {}, b.get("_northEast") or {}
        try:
            bounds = ((float(sw["lat"]), float(sw["lng"])), (float(ne["lat"]), float(ne["lng"])))
        except (KeyError, TypeError, ValueError):
            return None
        return cls(zoom=float(state["zoom"]), bounds=bounds)


@dataclass(frozen=True)
class Marker:
    """One point symbol: a circle (``radius`` in pixels) or a text label."""

    location: Tuple[float, float]
    kind: str = "circle"
    radius: float = 6.0
    color: str = "#ffffff"
    weight: float = 1.0
    opacity: float = 1.0
    fill_color: Optional[str] = None
    fill_opacity: float = 0.5
    popup: Optional[str] = None
    tooltip: Optional[str] = None
    html: Optional[str] = None


@dataclass
class Artifact:
    """Handle to something drawn on the canvas."""

    id: int
    kind: str
    name: str
    z: int
    data: Any = None
    style: Optional[StyleFn] = None
    popup: Optional[TextFn] = None
    tooltip: Optional[TextFn] = None
    markers: List[Marker] = field(default_factory=list)
    bounds: Optional[Bounds] = None
    opacity: float = 1.0


class MapCanvas(ABC):
    """Drawing surface used by the layer manager."""

    @abstractmethod
    def add_geojson(
        self,
        name: str,
        data: Mapping[str, Any],
        *,
        style: StyleFn,
        z: int,
        popup: Optional[TextFn] = None,
        tooltip: Optional[TextFn] = None,
    ) -> Artifact: ...

    @abstractmethod
    def add_markers(self, name: str, markers: Sequence[Marker], *, z: int) -> Artifact: ...

    @abstractmethod
    def add_overlay(self, name: str, svg: str, bounds: Bounds, *, z: int, opacity: float = 1.0) -> Artifact: ...

    @abstractmethod
    def remove(self, artifact: Artifact) -> None: ...

    @abstractmethod
    def fit_bounds(self, bounds: Bounds) -> None: ...

    @property
    @abstractmethod
    def viewport(self) -> Optional[Viewport]: ...

    @abstractmethod
    def update_viewport(self, viewport: Optional[Viewport]) -> None: ...


class FoliumCanvas(MapCanvas):
    """In-memory canvas rendered to a ``folium.Map`` on demand."""

    def __init__(self, *, center: Tuple[float, float] = MAP_CENTER, zoom_start: int = MAP_ZOOM_START):
        self.center = center
        self.zoom_start = zoom_start
        self.requested_bounds: Optional[Bounds] = None
        self._viewport: Optional[Viewport] = None
        self._artifacts: Dict[int, Artifact] = {}
        self._ids = itertools.count(1)

    # --- bookkeeping ---------------------------------------------------------

    def _add(self, artifact: Artifact) -> Artifact:
        self._artifacts[artifact.id] = artifact
        log.debug("canvas add id=%s kind=%s name=%s z=%s", artifact.id, artifact.kind, artifact.name, artifact.z)
        return artifact

    def add_geojson(self, name, data, *, style, z, popup=None, tooltip=None) -> Artifact:
        return self._add(
            Artifact(id=next(self._ids), kind="geojson", name=name, z=z, data=data, style=style, popup=popup, tooltip=tooltip)
        )

    def add_markers(self, name, markers, *, z) -> Artifact:
        return self._add(Artifact(id=next(self._ids), kind="markers", name=name, z=z, markers=list(markers)))

    def add_overlay(self, name, svg, bounds, *, z, opacity=1.0) -> Artifact:
        return self._add(
            Artifact(id=next(self._ids), kind="overlay", name=name, z=z, data=svg, bounds=bounds, opacity=opacity)
        )

    def remove(self, artifact: Artifact) -> None:
        if self._artifacts.pop(artifact.id, None) is not None:
            log.debug("canvas remove id=%s name=%s", artifact.id, artifact.name)

    def fit_bounds(self, bounds: Bounds) -> None:
        self.requested_bounds = bounds

    @property
    def viewport(self) -> Optional[Viewport]:
        return self._viewport

    def update_viewport(self, viewport: Optional[Viewport]) -> None:
        if viewport is not None:
            self._viewport = viewport

    def artifacts(self) -> List[Artifact]:
        """Live artifacts, bottom to top."""
        return sorted(self._artifacts.values(), key=lambda a: (a.z, a.id))

    def named(self, prefix: str) -> List[Artifact]:
        return [a for a in self.artifacts() if a.name.startswith(prefix)]

    # --- rendering -----------------------------------------------------------

    def render(self, *, legend_html: Optional[str] = None) -> folium.Map:
        """Build a fresh ``folium.Map`` with every live artifact in z order.

        A pending ``fit_bounds`` request is applied once and then dropped.
        """
        center, zoom = self.center, self.zoom_start
        if self._viewport is not None:
            (s, w), (n, e) = self._viewport.bounds
            center, zoom = ((s + n) / 2, (w + e) / 2), int(round(self._viewport.zoom))

        m = folium.Map(
            location=list(center),
            zoom_start=zoom,
            tiles=MAP_TILES,
            attr=MAP_ATTRIBUTION,
            min_zoom=MAP_MIN_ZOOM,
            max_zoom=MAP_MAX_ZOOM,
            control_scale=True,
        )
        for artifact in self.artifacts():
            if artifact.kind == "geojson":
                _render_geojson(artifact).add_to(m)
            elif artifact.kind == "markers":
                _render_markers(artifact).add_to(m)
            elif artifact.kind == "overlay":
                _render_overlay(artifact).add_to(m)

        if self.requested_bounds is not None:
            (s, w), (n, e) = self.requested_bounds
            m.fit_bounds([[s, w], [n, e]])
            self.requested_bounds = None
        if legend_html:
            m.get_root().html.add_child(folium.Element(legend_html))
        return m


def _render_geojson(artifact: Artifact) -> folium.GeoJson:
    data = copy.deepcopy(artifact.data)
    fields = []
    for feature in data.get("features", []):
        props = feature.setdefault("properties", {})
        if artifact.popup is not None:
            props["popup_html"] = artifact.popup(feature)
        if artifact.tooltip is not None:
            props["tooltip_text"] = artifact.tooltip(feature)
    if artifact.popup is not None:
        fields.append("popup_html")

    style = artifact.style
    return folium.GeoJson(
        data,
        name=artifact.name,
        style_function=lambda feature: style(feature),
        highlight_function=lambda feature: {"weight": 2.5, "color": "#e2e8f0"},
        popup=folium.GeoJsonPopup(fields=fields, labels=False, max_width=320) if fields else None,
        tooltip=folium.GeoJsonTooltip(fields=["tooltip_text"], labels=False) if artifact.tooltip else None,
    )


def _render_markers(artifact: Artifact) -> folium.FeatureGroup:
    group = folium.FeatureGroup(name=artifact.name)
    for mk in artifact.markers:
        if mk.kind == "label":
            folium.Marker(
                location=list(mk.location),
                icon=folium.DivIcon(html=mk.html or "", icon_size=(30, 14), icon_anchor=(15, 7)),
                tooltip=mk.tooltip,
            ).add_to(group)
            continue
        folium.CircleMarker(
            location=list(mk.location),
            radius=mk.radius,
            color=mk.color,
            weight=mk.weight,
            opacity=mk.opacity,
            fill=True,
            fill_color=mk.fill_color or mk.color,
            fill_opacity=mk.fill_opacity,
            popup=folium.Popup(mk.popup, max_width=280) if mk.popup else None,
            tooltip=mk.tooltip,
        ).add_to(group)
    return group


def _render_overlay(artifact: Artifact) -> folium.raster_layers.ImageOverlay:
    encoded = base64.b64encode(artifact.data.encode("utf-8")).decode("ascii")
    (s, w), (n, e) = artifact.bounds
    return folium.raster_layers.ImageOverlay(
        image=f"data:image/svg+xml;base64,{encoded}",
        bounds=[[s, w], [n, e]],
        opacity=artifact.opacity,
        interactive=False,
        name=artifact.name,
    )


__all__ = ["Bounds", "Viewport", "Marker", "Artifact", "MapCanvas", "FoliumCanvas", "bounds_box", "bounds_intersect"]
