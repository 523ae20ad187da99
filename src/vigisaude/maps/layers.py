"""
Per-layer styling and symbol builders.

Pure functions: given alert lookups or the sanitation table they return
Leaflet style callables, ``Marker`` lists or the heatmap SVG. The manager
decides which of them is on the canvas.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from html import escape
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from shapely.geometry import shape

from vigisaude.data.reference import (
    ALL_REGIONS,
    UF_CENTROIDS,
    classify_alert_level,
    disease_info,
    resolve_region,
    state_name,
    uf_abbreviation,
)
from vigisaude.data.schemas import LocationSeriesPoint, SanitationRecord
from vigisaude.maps.canvas import Bounds, Feature, Marker
from vigisaude.utils.epiweek import format_week

NO_DATA_FILL = "#1e293b"
BORDER_COLOR = "rgba(148, 163, 184, 0.3)"

# Brazil's extent, used to project centroids onto the heatmap viewBox.
BRAZIL_WEST, BRAZIL_EAST = -73.99, -34.79
BRAZIL_NORTH, BRAZIL_SOUTH = 5.27, -33.75
BRAZIL_BOUNDS: Bounds = ((BRAZIL_SOUTH, BRAZIL_WEST), (BRAZIL_NORTH, BRAZIL_EAST))
HEATMAP_WIDTH, HEATMAP_HEIGHT = 1000, 800


# -----------------------------------------------------------------------------
# Features
# -----------------------------------------------------------------------------

def feature_code(feature: Feature) -> Optional[int]:
    """IBGE ``codarea`` of a boundary feature (UF id or municipality geocode)."""
    try:
        return int(feature["properties"]["codarea"])
    except (KeyError, TypeError, ValueError):
        return None


def feature_uf(feature: Feature) -> str:
    code = feature_code(feature)
    return uf_abbreviation(code) if code is not None else ""


def feature_bounds(feature: Feature) -> Optional[Bounds]:
    """Bounding box ``((south, west), (north, east))`` of a boundary feature."""
    geometry = feature.get("geometry")
    if not geometry:
        return None
    geom = shape(geometry)
    if geom.is_empty:
        return None
    west, south, east, north = geom.bounds
    return (south, west), (north, east)


def state_bounds(geojson: Mapping[str, Any]) -> Dict[int, Bounds]:
    """UF id -> bounding box, from the country boundaries split by UF."""
    out: Dict[int, Bounds] = {}
    for feature in geojson.get("features", []):
        code, bbox = feature_code(feature), feature_bounds(feature)
        if code is not None and bbox is not None:
            out[code] = bbox
    return out


def in_region(uf: str, region: str) -> bool:
    return region == ALL_REGIONS or resolve_region(uf) == region


# -----------------------------------------------------------------------------
# Choropleth styles
# -----------------------------------------------------------------------------

def disease_style(
    alerts: Mapping[str, LocationSeriesPoint], region: str = ALL_REGIONS, *, dimmed: bool = False
):
    """State fill by the capital's alert level; ``dimmed`` when municipalities are drawn on top."""

    def style(feature: Feature) -> Dict[str, Any]:
        uf = feature_uf(feature)
        latest = alerts.get(uf)
        fill, opacity = NO_DATA_FILL, 0.6
        if latest is not None:
            fill, opacity = classify_alert_level(latest.alert_level).color_hex, 0.55
        if dimmed:
            opacity = 0.1
        elif not in_region(uf, region):
            opacity = 0.15
        return {"fillColor": fill, "fillOpacity": opacity, "color": BORDER_COLOR, "weight": 1.5}

    return style


def backdrop_style(fill: str, opacity: float, region: str = ALL_REGIONS):
    """Flat dark fill used under the heatmap and relief symbols."""

    def style(feature: Feature) -> Dict[str, Any]:
        dim = 0.15 if not in_region(feature_uf(feature), region) else opacity
        return {"fillColor": fill, "fillOpacity": dim, "color": BORDER_COLOR, "weight": 1}

    return style


def sanitation_color(pct: float) -> str:
    if pct >= 80:
        return "#06b6d4"
    if pct >= 60:
        return "#22d3ee"
    if pct >= 40:
        return "#67e8f9"
    if pct >= 20:
        return "#f59e0b"
    return "#ef4444"


def sanitation_opacity(pct: float) -> float:
    return 0.35 + pct / 100 * 0.4


def sanitation_style(
    sanitation: Mapping[str, SanitationRecord], metric: str, region: str = ALL_REGIONS
):
    """Five-bucket ramp over sewage ``collection`` or ``treatment`` percentage."""

    def style(feature: Feature) -> Dict[str, Any]:
        uf = feature_uf(feature)
        record = sanitation.get(uf)
        if record is None:
            return {"fillColor": NO_DATA_FILL, "fillOpacity": 0.6, "color": BORDER_COLOR, "weight": 1.5}
        pct = record.sewage_collection_pct if metric == "collection" else record.sewage_treatment_pct
        opacity = sanitation_opacity(pct) if in_region(uf, region) else 0.15
        return {"fillColor": sanitation_color(pct), "fillOpacity": opacity, "color": BORDER_COLOR, "weight": 1.5}

    return style


def municipality_style(alerts: Mapping[int, LocationSeriesPoint]):
    def style(feature: Feature) -> Dict[str, Any]:
        latest = alerts.get(feature_code(feature) or 0)
        if latest is None:
            return {"fillColor": "rgba(30, 41, 59, 0.4)", "fillOpacity": 0.25, "color": BORDER_COLOR, "weight": 0.8}
        color = classify_alert_level(latest.alert_level).color_hex
        return {"fillColor": color, "fillOpacity": 0.6, "color": BORDER_COLOR, "weight": 0.8}

    return style


# -----------------------------------------------------------------------------
# Popups
# -----------------------------------------------------------------------------

def _badge(level: int) -> str:
    info = classify_alert_level(level)
    return (
        f'<span style="background:{info.color_hex};color:#0f172a;border-radius:4px;'
        f'padding:1px 6px;font-weight:600">{escape(info.label)}</span>'
    )


def _fmt(value: Optional[float], pattern: str = "{:.2f}") -> str:
    return "—" if value is None else pattern.format(value)


def state_popup_html(
    uf: str, latest: Optional[LocationSeriesPoint], disease: str, record: Optional[SanitationRecord]
) -> str:
    """Popup with the capital's latest record and the state's SNIS figures."""
    lines = [f"<b>{escape(state_name(uf))} ({escape(uf)})</b>"]
    if latest is None:
        lines.append(f"<i>Sem dados de {escape(disease_info(disease).name)}</i>")
    else:
        lines += [
            f"Casos ({format_week(latest.week)}): <b>{latest.cases:,}</b>".replace(",", "."),
            f"Rt: {_fmt(latest.reproduction_number)}",
            f"Incidência: {_fmt(latest.incidence_per_100k, '{:.1f}')}/100k",
            f"Acumulado no ano: {latest.cumulative_annual_cases:,}".replace(",", "."),
            f"Alerta: {_badge(latest.alert_level)}",
        ]
    if record is not None:
        lines += [
            f"Coleta de esgoto: {record.sewage_collection_pct:.1f}%",
            f"Tratamento de esgoto: {record.sewage_treatment_pct:.1f}%",
            f"IDH: {record.human_development_index:.3f}",
        ]
    return "<br>".join(lines)


def municipality_popup_html(name: str, latest: Optional[LocationSeriesPoint]) -> str:
    if latest is None:
        return f"<b>{escape(name)}</b><br><i>Sem dados recentes</i>"
    return "<br>".join(
        [
            f"<b>{escape(name)}</b>",
            f"Casos ({format_week(latest.week)}): <b>{latest.cases}</b>",
            f"Rt: {_fmt(latest.reproduction_number)}",
            f"Alerta: {_badge(latest.alert_level)}",
        ]
    )


# -----------------------------------------------------------------------------
# Heatmap
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class HeatStyle:
    stops: Tuple[str, str, str]
    opacity: float


HEAT_STYLES: Dict[str, HeatStyle] = {
    "dengue": HeatStyle(("#7a3500", "#f59e0b", "#fde68a"), 0.75),
    "chikungunya": HeatStyle(("#7c1060", "#ec4899", "#fce7f3"), 0.68),
    "zika": HeatStyle(("#3b0764", "#8b5cf6", "#ede9fe"), 0.62),
}


@dataclass(frozen=True)
class HeatBlob:
    disease: str
    uf: str
    x: float
    y: float
    radius: float
    cases: int


def project(lat: float, lng: float) -> Tuple[float, float]:
    """(lat, lng) -> (x, y) inside the 1000x800 heatmap viewBox."""
    x = (lng - BRAZIL_WEST) / (BRAZIL_EAST - BRAZIL_WEST) * HEATMAP_WIDTH
    y = (lat - BRAZIL_NORTH) / (BRAZIL_SOUTH - BRAZIL_NORTH) * HEATMAP_HEIGHT
    return x, y


def heat_radius(cases: int, global_max: int) -> float:
    return 40 + math.sqrt(cases / global_max) * 160


def heat_blobs(cases_by_disease: Mapping[str, Mapping[str, int]]) -> List[HeatBlob]:
    """One blob per (disease, state with cases), scaled against the max over all loaded diseases."""
    global_max = 1
    for per_uf in cases_by_disease.values():
        for cases in per_uf.values():
            global_max = max(global_max, cases or 0)

    blobs = []
    for disease, per_uf in cases_by_disease.items():
        if disease not in HEAT_STYLES:
            continue
        for uf, cases in sorted(per_uf.items()):
            centroid = UF_CENTROIDS.get(uf)
            if not cases or centroid is None:
                continue
            x, y = project(*centroid)
            blobs.append(HeatBlob(disease, uf, x, y, heat_radius(cases, global_max), cases))
    return blobs


def heatmap_svg(blobs: Sequence[HeatBlob]) -> str:
    """Radial-gradient blobs grouped per disease, blurred and screen-blended."""
    defs = ['<filter id="blur" x="-50%" y="-50%" width="200%" height="200%">'
            '<feGaussianBlur stdDeviation="28"/></filter>']
    for disease, hs in HEAT_STYLES.items():
        inner, mid, outer = hs.stops
        defs.append(
            f'<radialGradient id="grad-{disease}">'
            f'<stop offset="0%" stop-color="{outer}" stop-opacity="0.9"/>'
            f'<stop offset="35%" stop-color="{mid}" stop-opacity="0.65"/>'
            f'<stop offset="70%" stop-color="{inner}" stop-opacity="0.3"/>'
            f'<stop offset="100%" stop-color="{inner}" stop-opacity="0"/>'
            "</radialGradient>"
        )

    groups = []
    for disease, hs in HEAT_STYLES.items():
        circles = [
            f'<circle cx="{b.x:.1f}" cy="{b.y:.1f}" r="{b.radius:.1f}" fill="url(#grad-{disease})"/>'
            for b in blobs
            if b.disease == disease
        ]
        if circles:
            groups.append(
                f'<g style="mix-blend-mode: screen" opacity="{hs.opacity}" filter="url(#blur)">'
                + "".join(circles)
                + "</g>"
            )

    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {HEATMAP_WIDTH} {HEATMAP_HEIGHT}" '
        f'width="{HEATMAP_WIDTH}" height="{HEATMAP_HEIGHT}" preserveAspectRatio="none">'
        f"<defs>{''.join(defs)}</defs>{''.join(groups)}</svg>"
    )


# -----------------------------------------------------------------------------
# Sanitation relief
# -----------------------------------------------------------------------------

def treatment_color(pct: float) -> str:
    if pct >= 70:
        return "#06b6d4"
    if pct >= 55:
        return "#22d3ee"
    if pct >= 40:
        return "#a3e635"
    if pct >= 25:
        return "#f59e0b"
    return "#ef4444"


def relief_radius(collection_pct: float, lo: float, hi: float) -> float:
    normalized = (collection_pct - lo) / (hi - lo) if hi > lo else 0.0
    return 10 + normalized * 45


def relief_popup_html(record: SanitationRecord) -> str:
    return "<br>".join(
        [
            f"<b>{escape(record.name)} ({record.uf})</b>",
            f"Coleta de esgoto: {record.sewage_collection_pct:.1f}%",
            f"Tratamento de esgoto: {record.sewage_treatment_pct:.1f}%",
            f"IDH: {record.human_development_index:.3f}",
        ]
    )


def relief_markers(sanitation: Mapping[str, SanitationRecord], region: str = ALL_REGIONS) -> List[Marker]:
    """Halo + core + inner dot + UF label per state.

    Radius follows collection % normalized over the whole table; color follows
    treatment %.
    """
    records = list(sanitation.values())
    if not records:
        return []
    lo = min(r.sewage_collection_pct for r in records)
    hi = max(r.sewage_collection_pct for r in records)

    markers: List[Marker] = []
    for record in sorted(records, key=lambda r: r.uf):
        centroid = UF_CENTROIDS.get(record.uf)
        if centroid is None:
            continue
        radius = relief_radius(record.sewage_collection_pct, lo, hi)
        color = treatment_color(record.sewage_treatment_pct)
        fade = 1.0 if in_region(record.uf, region) else 0.3
        popup = relief_popup_html(record)
        markers += [
            Marker(centroid, radius=radius + 5, color=color, weight=1.2, opacity=0.4 * fade,
                   fill_color=color, fill_opacity=0.08 * fade),
            Marker(centroid, radius=radius, color=color, weight=2, opacity=0.9 * fade,
                   fill_color=color, fill_opacity=0.45 * fade, popup=popup, tooltip=record.name),
            Marker(centroid, radius=max(4.0, radius * 0.18), color="#ffffff", weight=0, opacity=0,
                   fill_color="#ffffff", fill_opacity=0.6 * fade),
            Marker(centroid, kind="label", tooltip=record.name, html=(
                '<div style="color:#f8fafc;font-size:10px;font-weight:700;text-align:center;'
                f'text-shadow:0 0 3px #0f172a">{record.uf}</div>'
            )),
        ]
    return markers


__all__ = [
    "NO_DATA_FILL",
    "BRAZIL_BOUNDS",
    "HEAT_STYLES",
    "HeatBlob",
    "feature_code",
    "feature_uf",
    "feature_bounds",
    "state_bounds",
    "disease_style",
    "backdrop_style",
    "sanitation_color",
    "sanitation_opacity",
    "sanitation_style",
    "municipality_style",
    "state_popup_html",
    "municipality_popup_html",
    "project",
    "heat_radius",
    "heat_blobs",
    "heatmap_svg",
    "treatment_color",
    "relief_radius",
    "relief_markers",
]
