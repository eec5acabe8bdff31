"""Circuit JSON output schema and element store."""

from .db import CircuitDb, ElementTable
from .models import (
    ELEMENT_TYPES,
    CircuitElement,
    LayerRef,
    PcbBoard,
    PcbComponent,
    PcbPlatedHole,
    PcbPort,
    PcbSmtPad,
    PcbTrace,
    PcbVia,
    Point,
    RoutePoint,
    SourceComponent,
    SourceNet,
    SourcePort,
    SourceTrace,
    ViaRoutePoint,
    WireRoutePoint,
)

__all__ = [
    "CircuitDb",
    "ElementTable",
    "ELEMENT_TYPES",
    "CircuitElement",
    "LayerRef",
    "PcbBoard",
    "PcbComponent",
    "PcbPlatedHole",
    "PcbPort",
    "PcbSmtPad",
    "PcbTrace",
    "PcbVia",
    "Point",
    "RoutePoint",
    "SourceComponent",
    "SourceNet",
    "SourcePort",
    "SourceTrace",
    "ViaRoutePoint",
    "WireRoutePoint",
]
