# src/vigisaude/dashboard/events.py
"""Typed events published by the dashboard session."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, List, Optional, Tuple, Type, TypeVar

from vigisaude.data.schemas import LocationSummary, ReportingPeriod, TrackedLocation
from vigisaude.maps.legend import Legend

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiseaseChanged:
    disease: str
    previous: Optional[str]


@dataclass(frozen=True)
class LayerChanged:
    layer: str
    previous: str


@dataclass(frozen=True)
class RegionChanged:
    region: str


@dataclass(frozen=True)
class NationalDataLoaded:
    disease: str
    summaries: Tuple[LocationSummary, ...]
    data_year: Optional[int]


@dataclass(frozen=True)
class TrackerChanged:
    locations: Tuple[TrackedLocation, ...]


@dataclass(frozen=True)
class LegendUpdated:
    legend: Legend


@dataclass(frozen=True)
class PeriodChanged:
    period: ReportingPeriod


E = TypeVar("E")
Handler = Callable[[E], None]


class EventChannel:
    """Synchronous publish/subscribe keyed by event type."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[type, List[Callable]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Handler) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    def publish(self, event: object) -> None:
        handlers = list(self._handlers.get(type(event), ()))
        log.debug("publish %s handlers=%d", type(event).__name__, len(handlers))
        for handler in handlers:
            handler(event)

    def clear(self) -> None:
        self._handlers.clear()


__all__ = [
    "DiseaseChanged",
    "LayerChanged",
    "RegionChanged",
    "NationalDataLoaded",
    "TrackerChanged",
    "LegendUpdated",
    "PeriodChanged",
    "EventChannel",
]
