from __future__ import annotations
"""
Chart builders: merge disease incidence, climate and sanitation into plot-ready
series, and render them as Plotly figures.

The builders return plain ``PlotSeries`` / ``ScatterPoint`` models so they can
be tested without a renderer; the ``*_figure`` functions turn them into
``plotly.graph_objects.Figure`` instances for the web app.
"""

from typing import Iterable, List, Mapping, Optional, Sequence

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from vigisaude.analytics.aggregation import MONTH_LABELS, bucket_by_month
from vigisaude.data.errors import UnresolvableLocation
from vigisaude.data.reference import chart_color, disease_info, parse_location_label
from vigisaude.data.schemas import (
    LocationSeriesPoint,
    LocationSummary,
    PlotSeries,
    SanitationRecord,
    ScatterPoint,
    TrackedLocation,
)

HUMIDITY_COLOR = "#38bdf8"
TEMPERATURE_COLOR = "#f59e0b"
COLLECTION_COLOR = "#22c55e"
TREATMENT_COLOR = "#06b6d4"

PRIMARY_AXIS_TITLE = "Número de Casos Mensais"
SECONDARY_AXIS_TITLE = "Valores Secundários (%, °C)"


def location_uf(location_name: str) -> str:
    """UF of a ``"<City> - <UF>"`` label.

    Raises:
        UnresolvableLocation: If the label carries no known UF.
    """
    return parse_location_label(location_name)[1]


def build_correlation_series(
    location_name: str,
    series: Iterable[LocationSeriesPoint],
    sanitation_by_uf: Mapping[str, SanitationRecord],
    *,
    color: Optional[str] = None,
) -> List[PlotSeries]:
    """Monthly cases, humidity and temperature for one location.

    When the name resolves to a UF with a sanitation record, sewage collection
    and treatment are added as constant 12-month lines; otherwise they are
    omitted.
    """
    color = color or chart_color(0)
    buckets = bucket_by_month(series)

    out = [
        PlotSeries(
            label=f"{location_name} - Casos",
            metric="cases",
            kind="bar",
            axis="y",
            values=[float(b.cases) for b in buckets],
            color=color,
        ),
        PlotSeries(
            label=f"{location_name} - Umidade Média (%)",
            metric="humidity",
            kind="line",
            axis="y2",
            values=[b.mean_humidity for b in buckets],
            color=HUMIDITY_COLOR,
            dash="dash",
        ),
        PlotSeries(
            label=f"{location_name} - Temp. Média (°C)",
            metric="temperature",
            kind="line",
            axis="y2",
            values=[b.mean_temperature for b in buckets],
            color=TEMPERATURE_COLOR,
        ),
    ]

    try:
        uf = location_uf(location_name)
    except UnresolvableLocation:
        return out
    record = sanitation_by_uf.get(uf)
    if record is None:
        return out

    out.append(
        PlotSeries(
            label=f"{location_name} - Coleta de Esgoto (%)",
            metric="collection",
            kind="line",
            axis="y2",
            values=[record.sewage_collection_pct] * 12,
            color=COLLECTION_COLOR,
            dash="dot",
        )
    )
    out.append(
        PlotSeries(
            label=f"{location_name} - Trat. Esgoto (%)",
            metric="treatment",
            kind="line",
            axis="y2",
            values=[record.sewage_treatment_pct] * 12,
            color=TREATMENT_COLOR,
            dash="dot",
        )
    )
    return out


def build_tracker_series(
    tracked: Sequence[TrackedLocation], sanitation_by_uf: Mapping[str, SanitationRecord]
) -> List[PlotSeries]:
    """Correlation series for every tracked location, colored by tracker position.

    Locations without data are left off the chart but keep their color slot.
    """
    out: List[PlotSeries] = []
    for i, loc in enumerate(tracked):
        if not loc.series:
            continue
        out.extend(build_correlation_series(loc.name, loc.series, sanitation_by_uf, color=chart_color(i)))
    return out


def build_scatter_series(
    summaries: Iterable[LocationSummary], sanitation_by_uf: Mapping[str, SanitationRecord]
) -> List[ScatterPoint]:
    """Sewage collection (x) vs. latest incidence per 100k (y), one point per capital.

    Capitals without a latest record or without a sanitation entry are dropped.
    """
    points = []
    for s in summaries:
        record = sanitation_by_uf.get(s.uf)
        if s.latest is None or record is None:
            continue
        points.append(
            ScatterPoint(
                x=record.sewage_collection_pct,
                y=s.latest.incidence_per_100k or 0.0,
                label=s.name,
                uf=s.uf,
            )
        )
    return points


# -----------------------------------------------------------------------------
# Plotly figures
# -----------------------------------------------------------------------------

def style_fig(fig: go.Figure, *, title: Optional[str] = None, height: int = 420) -> go.Figure:
    """Apply the dashboard's dark theme to a Plotly figure."""
    if title:
        fig.update_layout(title=title)
    fig.update_layout(
        template="plotly_dark",
        height=height,
        margin=dict(l=16, r=16, t=48, b=16),
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        font=dict(size=13),
        legend=dict(orientation="h", yanchor="bottom", y=-0.35, x=0),
    )
    fig.update_xaxes(showgrid=False)
    fig.update_yaxes(gridcolor="rgba(255,255,255,0.08)")
    return fig


def correlation_figure(plot_series: Sequence[PlotSeries], *, title: Optional[str] = None) -> go.Figure:
    """Mixed bar/line monthly chart; secondary axis (%, °C) fixed to 0..100."""
    fig = make_subplots(specs=[[{"secondary_y": True}]])
    for ps in plot_series:
        secondary = ps.axis == "y2"
        if ps.kind == "bar":
            trace = go.Bar(
                x=MONTH_LABELS,
                y=ps.values,
                name=ps.label,
                marker_color=ps.color,
                marker_line_color=ps.color,
                marker_line_width=1,
                opacity=0.6,
            )
        else:
            trace = go.Scatter(
                x=MONTH_LABELS,
                y=ps.values,
                name=ps.label,
                mode="lines+markers",
                line=dict(color=ps.color, width=2, dash=ps.dash or "solid", shape="spline"),
                marker=dict(size=4),
                connectgaps=False,
            )
        fig.add_trace(trace, secondary_y=secondary)

    fig.update_layout(barmode="group", hovermode="x unified")
    fig.update_yaxes(title_text=PRIMARY_AXIS_TITLE, rangemode="tozero", secondary_y=False)
    fig.update_yaxes(title_text=SECONDARY_AXIS_TITLE, range=[0, 100], showgrid=False, secondary_y=True)
    return style_fig(fig, title=title)


def scatter_figure(points: Sequence[ScatterPoint], disease: str) -> go.Figure:
    """Sanitation vs. incidence scatter with per-point tooltips."""
    info = disease_info(disease)
    fig = go.Figure(
        go.Scatter(
            x=[p.x for p in points],
            y=[p.y for p in points],
            mode="markers+text",
            text=[p.uf for p in points],
            textposition="top center",
            customdata=[[p.label, p.uf] for p in points],
            hovertemplate="%{customdata[0]} (%{customdata[1]}): Esgoto %{x}%, Inc %{y:.1f}/100k<extra></extra>",
            marker=dict(size=11, color=info.color_hex, line=dict(color="#0f172a", width=1), opacity=0.85),
            name=info.name,
        )
    )
    fig.update_xaxes(title_text="Coleta de Esgoto (%)", range=[0, 100])
    fig.update_yaxes(title_text="Incidência por 100k hab.", rangemode="tozero")
    fig.update_layout(hovermode="closest", showlegend=False)
    return style_fig(fig, title=f"Saneamento × {info.name}", height=380)


__all__ = [
    "location_uf",
    "build_correlation_series",
    "build_tracker_series",
    "build_scatter_series",
    "style_fig",
    "correlation_figure",
    "scatter_figure",
]
