# src/vigisaude/data/schemas.py
from __future__ import annotations

"""
Typed data models used across VigiSaúde.

These Pydantic schemas define the contract between:
- the upstream payloads (InfoDengue ``alertcity`` records, IBGE listings),
- the aggregation engine and the chart builders,
- the map layer manager, the dashboard session and the web app.

Upstream field names (Portuguese, e.g. ``casos``, ``nivel``) are accepted as
aliases so records can be validated straight from the API response.
"""

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LocationSeriesPoint(BaseModel):
    """
    One epidemiological-week record for a location.

    Attributes:
        week: Epidemiological week encoded as YYYYWW (upstream ``SE``).
        cases: Notified cases in the week (upstream ``casos``).
        reproduction_number: Estimated Rt (upstream ``Rt``).
        incidence_per_100k: Incidence per 100k inhabitants (upstream ``p_inc100k``).
        cumulative_annual_cases: Cases accumulated in the year (upstream ``notif_accum_year``).
        alert_level: 1=baseline, 2=watch, 3=alert, 4=emergency (upstream ``nivel``).
        mean_temperature: Mean temperature °C (upstream ``tempmed``).
        mean_humidity: Mean relative humidity % (upstream ``umidmed``).
        municipality_name: Municipality name when provided (upstream ``municipio_nome``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    week: int = Field(..., alias="SE", description="Epidemiological week, YYYYWW.")
    cases: int = Field(0, ge=0, alias="casos", description="Notified cases in the week.")
    reproduction_number: Optional[float] = Field(None, alias="Rt", description="Estimated Rt.")
    incidence_per_100k: Optional[float] = Field(None, alias="p_inc100k", description="Incidence per 100k.")
    cumulative_annual_cases: int = Field(
        0, ge=0, alias="notif_accum_year", description="Cases accumulated in the year."
    )
    alert_level: int = Field(1, ge=1, le=4, alias="nivel", description="Alert tier 1..4.")
    mean_temperature: Optional[float] = Field(None, alias="tempmed", description="Mean temperature (°C).")
    mean_humidity: Optional[float] = Field(None, alias="umidmed", description="Mean humidity (%).")
    municipality_name: Optional[str] = Field(None, alias="municipio_nome")

    @field_validator("cases", "cumulative_annual_cases", mode="before")
    @classmethod
    def _count_or_zero(cls, v):
        return 0 if v is None else v

    @field_validator("alert_level", mode="before")
    @classmethod
    def _level_or_baseline(cls, v):
        return 1 if v is None else v


class LocationSummary(BaseModel):
    """
    A location's series for one disease and the year it was taken from.

    ``data_year`` is the year actually used, which can be a fallback year
    older than the current one; the UI must flag it when stale.
    """

    model_config = ConfigDict(frozen=True)

    geocode: int
    name: str
    uf: str
    series: List[LocationSeriesPoint] = Field(default_factory=list)
    data_year: int

    @property
    def latest(self) -> Optional[LocationSeriesPoint]:
        return self.series[-1] if self.series else None

    @property
    def is_empty(self) -> bool:
        """No data for this location/period (a valid degraded state, not an error)."""
        return not self.series

    def is_stale(self, current_year: int) -> bool:
        return self.data_year < current_year


class SanitationRecord(BaseModel):
    """SNIS sewage coverage for one federative unit."""

    model_config = ConfigDict(frozen=True)

    uf: str
    name: str
    sewage_collection_pct: float = Field(..., ge=0, le=100)
    sewage_treatment_pct: float = Field(..., ge=0, le=100)
    human_development_index: float


class NationalSummaryStats(BaseModel):
    """Per-disease national figures derived from the capitals' latest records."""

    total_cases: int = Field(0, description="Sum of cumulative annual cases.")
    mean_reproduction_number: float = Field(0.0, description="Mean Rt over capitals reporting it.")
    alert_city_count: int = Field(0, description="Capitals at alert level 3 or 4.")
    max_alert_level: int = Field(1, description="Highest alert level (1 when no data).")


class MonthBucket(BaseModel):
    cases: int = 0
    mean_temperature: Optional[float] = None
    mean_humidity: Optional[float] = None


class AlertInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: int
    label: str
    color_token: str
    css_class: str
    color_hex: str


class DiseaseInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    color_token: str
    color_hex: str


class MunicipalityRef(BaseModel):
    """A municipality known by IBGE geocode."""

    model_config = ConfigDict(frozen=True)

    geocode: int
    name: str
    uf: str

    @property
    def label(self) -> str:
        """Display label ``"<City> - <UF>"`` (parsed back by the chart builder)."""
        return f"{self.name} - {self.uf}"


class ReportingPeriod(BaseModel):
    """Tracker reporting window (epidemiological weeks and years, inclusive)."""

    week_start: int = Field(1, ge=1, le=53)
    week_end: int = Field(52, ge=1, le=53)
    year_start: int = Field(default_factory=lambda: date.today().year)
    year_end: int = Field(default_factory=lambda: date.today().year)

    @model_validator(mode="after")
    def _ordered(self) -> "ReportingPeriod":
        if self.year_end < self.year_start:
            raise ValueError("year_end must be >= year_start")
        if self.year_start == self.year_end and self.week_end < self.week_start:
            raise ValueError("week_end must be >= week_start within the same year")
        return self


class TrackedLocation(BaseModel):
    geocode: int
    name: str
    series: List[LocationSeriesPoint] = Field(default_factory=list)


class PlotSeries(BaseModel):
    """
    One chart-ready series of the monthly correlation chart.

    Attributes:
        label: Legend label, e.g. 'Recife - PE - Casos'.
        metric: Which measure the series carries.
        kind: 'bar' (cases) or 'line'.
        axis: 'y' (primary, cases) or 'y2' (secondary, %, °C).
        values: 12 monthly values; None marks a month without data.
        color: Hex color.
        dash: Optional dash style for lines ('dash', 'dot').
    """

    label: str
    metric: Literal["cases", "humidity", "temperature", "collection", "treatment"]
    kind: Literal["bar", "line"]
    axis: Literal["y", "y2"]
    values: List[Optional[float]]
    color: str
    dash: Optional[str] = None


class ScatterPoint(BaseModel):
    x: float = Field(..., description="Sewage collection (%).")
    y: float = Field(..., description="Incidence per 100k.")
    label: str
    uf: str


class DiseaseCard(BaseModel):
    """Summary card for one disease (sidebar)."""

    disease: str
    name: str
    color_hex: str
    stats: NationalSummaryStats
    alert: AlertInfo
    data_year: Optional[int] = None
    is_stale: bool = False
    is_active: bool = False
