"""
Raw wire segments and via records from routing results.

Walks SES ``network_out`` or DSN ``wiring`` and emits, per net, a flat list
of segments (ordered points in mm with a layer and width) and via records.
Nothing is merged here; that is the stitcher's job.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from ..specctra import Library, SpecctraDesign, SpecctraSession, Via, Wire
from ..units import UNIT_TO_MM
from .transform import AffineTransform

logger = logging.getLogger(__name__)

DEFAULT_VIA_OUTER_DIAMETER = 0.6
DEFAULT_VIA_HOLE_DIAMETER = 0.3

# Wire types that are routing artifacts rather than copper
IGNORED_WIRE_TYPES = frozenset({"shove_fixed", "via"})

_VIA_SIZE_RE = re.compile(r"(\d+(?:\.\d+)?):(\d+(?:\.\d+)?)")
_VIA_UNIT_RE = re.compile(r"_(um|mil|mm|in)$", re.IGNORECASE)

Coord = tuple[float, float]


def normalize_layer(value: Union[str, int, float, None]) -> str:
    """
    Map a Specctra layer to ``top`` or ``bottom``.

    ``2``, ``B.Cu`` and names mentioning bottom/back are the bottom layer;
    ``1``, ``F.Cu``, anything unrecognized or missing is the top layer.
    """
    if value is None:
        return "top"
    if isinstance(value, (int, float)):
        return "bottom" if value == 2 else "top"
    lowered = value.strip().lower()
    if lowered == "2":
        return "bottom"
    if "b.cu" in lowered or "bottom" in lowered or "back" in lowered:
        return "bottom"
    return "top"


@dataclass(frozen=True)
class Segment:
    """An extracted piece of routing: two or more points on one layer."""

    net: str
    layer: str
    width: float
    points: tuple[Coord, ...]

    @property
    def start(self) -> Coord:
        return self.points[0]

    @property
    def end(self) -> Coord:
        return self.points[-1]

    @property
    def length(self) -> float:
        return sum(
            math.dist(self.points[i], self.points[i + 1]) for i in range(len(self.points) - 1)
        )


@dataclass(frozen=True)
class ViaRecord:
    net: str
    x: float
    y: float
    padstack_id: str = ""
    outer_diameter: float = DEFAULT_VIA_OUTER_DIAMETER
    hole_diameter: float = DEFAULT_VIA_HOLE_DIAMETER
    from_layer: str = "top"
    to_layer: str = "bottom"


@dataclass(frozen=True)
class SkippedPrimitive:
    """A wire or via that could not be used (in full)."""

    net: str
    kind: str
    reason: str


@dataclass
class RoutingTable:
    segments_by_net: dict[str, list[Segment]] = field(default_factory=dict)
    vias_by_net: dict[str, list[ViaRecord]] = field(default_factory=dict)
    skipped: list[SkippedPrimitive] = field(default_factory=list)

    def add_segment(self, segment: Segment) -> None:
        self.segments_by_net.setdefault(segment.net, []).append(segment)

    def add_via(self, via: ViaRecord) -> None:
        self.vias_by_net.setdefault(via.net, []).append(via)

    @property
    def segment_count(self) -> int:
        return sum(len(s) for s in self.segments_by_net.values())

    @property
    def via_count(self) -> int:
        return sum(len(v) for v in self.vias_by_net.values())

    def nets(self) -> list[str]:
        """Every net with segments or vias, in first-seen order."""
        names = list(self.segments_by_net)
        names.extend(n for n in self.vias_by_net if n not in self.segments_by_net)
        return names


def via_catalog_from_library(library: Optional[Library]) -> dict[str, float]:
    """Padstack id -> circle diameter (design units) for via padstacks."""
    catalog: dict[str, float] = {}
    if library is None:
        return catalog
    for padstack in library.padstacks:
        for primitive in padstack.shapes:
            if primitive.kind in ("circle", "circ") and primitive.values:
                catalog.setdefault(padstack.padstack_id, primitive.values[0])
                break
    return catalog


def session_via_catalog(
    session: SpecctraSession, design: Optional[SpecctraDesign] = None
) -> dict[str, float]:
    """Via diameters from the design library, overridden by the session's ``library_out``."""
    catalog = via_catalog_from_library(design.library if design is not None else None)
    if session.routes is not None:
        catalog.update(via_catalog_from_library(session.routes.library_out))
    return catalog


def resolve_via_size(
    padstack_id: str,
    transform: AffineTransform,
    via_catalog: Optional[dict[str, float]] = None,
    default_outer: float = DEFAULT_VIA_OUTER_DIAMETER,
    default_hole: float = DEFAULT_VIA_HOLE_DIAMETER,
) -> tuple[float, float]:
    """
    Outer and hole diameter of a via in mm.

    Tried in order:
    1. ``<outer>:<hole>`` in the padstack name (``Via[0-1]_600:300_um``),
       in the unit named by a trailing ``_um``/``_mil``/``_mm``/``_in``
       suffix, otherwise in design units
    2. The padstack's circle diameter from the library, hole at 50%
    3. The defaults
    """
    match = _VIA_SIZE_RE.search(padstack_id or "")
    if match:
        outer, hole = float(match.group(1)), float(match.group(2))
        unit_match = _VIA_UNIT_RE.search(padstack_id)
        if unit_match:
            factor = UNIT_TO_MM[unit_match.group(1).lower()]
            return (outer * factor, hole * factor)
        return (transform.scale_length(outer), transform.scale_length(hole))

    if via_catalog and padstack_id in via_catalog:
        outer = transform.scale_length(via_catalog[padstack_id])
        return (outer, outer * 0.5)

    return (default_outer, default_hole)


def _line_intersection(a: tuple[float, ...], b: tuple[float, ...]) -> Coord:
    """Intersection of the infinite lines through two 4-tuples.

    Parallel lines give the midpoint between the end of ``a`` and the start
    of ``b``.
    """
    x1, y1, x2, y2 = a
    x3, y3, x4, y4 = b
    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < 1e-10:
        return ((x2 + x3) / 2, (y2 + y3) / 2)
    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    return (x1 + t * (x2 - x1), y1 + t * (y2 - y1))


def polyline_corners(coordinates: list[float]) -> list[Coord]:
    """
    Corner points of a ``polyline_path``.

    The coordinates are line pieces of four values; the route's corners are
    where consecutive lines meet. A single line contributes its endpoints.
    """
    lines = [
        tuple(coordinates[i : i + 4]) for i in range(0, len(coordinates) - 3, 4)
    ]
    if len(lines) == 1:
        x1, y1, x2, y2 = lines[0]
        return [(x1, y1), (x2, y2)]
    return [_line_intersection(lines[i], lines[i + 1]) for i in range(len(lines) - 1)]


def _wire_points(
    wire: Wire, net: str, transform: AffineTransform, skipped: list[SkippedPrimitive]
) -> list[Coord]:
    coords = wire.coordinates
    if wire.kind == "polyline_path":
        if len(coords) % 4:
            skipped.append(
                SkippedPrimitive(net, "wire", f"polyline_path has {len(coords)} values, not a multiple of 4")
            )
        raw = polyline_corners(coords)
    else:
        if len(coords) % 2:
            skipped.append(
                SkippedPrimitive(net, "wire", f"odd coordinate count {len(coords)}, dropped last value")
            )
        raw = [(coords[i], coords[i + 1]) for i in range(0, len(coords) - 1, 2)]
    return [transform.apply(x, y) for x, y in raw]


def _add_wire(
    table: RoutingTable, wire: Wire, net: str, transform: AffineTransform
) -> None:
    points = _wire_points(wire, net, transform, table.skipped)
    if len(points) < 2:
        table.skipped.append(SkippedPrimitive(net, "wire", f"only {len(points)} point(s)"))
        return
    table.add_segment(
        Segment(
            net=net,
            layer=normalize_layer(wire.layer),
            width=transform.scale_length(wire.width),
            points=tuple(points),
        )
    )


def _add_via(
    table: RoutingTable,
    via: Via,
    net: str,
    transform: AffineTransform,
    via_catalog: Optional[dict[str, float]],
    default_size: tuple[float, float],
) -> None:
    x, y = transform.apply(via.x, via.y)
    outer, hole = resolve_via_size(via.padstack_id, transform, via_catalog, *default_size)
    table.add_via(ViaRecord(net, x, y, via.padstack_id, outer, hole))


def extract_ses_routes(
    session: SpecctraSession,
    transform: AffineTransform,
    via_catalog: Optional[dict[str, float]] = None,
    default_via_size: tuple[float, float] = (DEFAULT_VIA_OUTER_DIAMETER, DEFAULT_VIA_HOLE_DIAMETER),
) -> RoutingTable:
    """
    Segments and vias of every net in a session's ``network_out``.

    Args:
        session: Parsed SES file
        transform: Design units to mm
        via_catalog: Padstack diameters; defaults to the session's ``library_out``
        default_via_size: (outer, hole) in mm when nothing else applies
    """
    table = RoutingTable()
    routes = session.routes
    if routes is None:
        return table
    if via_catalog is None:
        via_catalog = via_catalog_from_library(routes.library_out)

    for net in routes.nets:
        for wire in net.wires:
            _add_wire(table, wire, net.name, transform)
        for via in net.vias:
            _add_via(table, via, net.name, transform, via_catalog, default_via_size)
        for _ in range(net.malformed_vias):
            table.skipped.append(SkippedPrimitive(net.name, "via", "missing coordinates"))

    logger.debug(
        "Extracted %d segments and %d vias from SES", table.segment_count, table.via_count
    )
    return table


def extract_dsn_wiring(
    design: SpecctraDesign,
    transform: AffineTransform,
    via_catalog: Optional[dict[str, float]] = None,
    default_via_size: tuple[float, float] = (DEFAULT_VIA_OUTER_DIAMETER, DEFAULT_VIA_HOLE_DIAMETER),
) -> RoutingTable:
    """
    Segments and vias from a design's pre-routed ``wiring`` section.

    Wires typed ``shove_fixed`` or ``via`` are ignored. Wires and vias without
    a ``(net ...)`` are grouped under the empty net name.
    """
    table = RoutingTable()
    wiring = design.wiring
    if wiring is None:
        return table
    if via_catalog is None:
        via_catalog = via_catalog_from_library(design.library)

    for wire in wiring.wires:
        if wire.wire_type in IGNORED_WIRE_TYPES:
            continue
        _add_wire(table, wire, wire.net or "", transform)
    for via in wiring.vias:
        _add_via(table, via, via.net or "", transform, via_catalog, default_via_size)
    for _ in range(wiring.malformed_vias):
        table.skipped.append(SkippedPrimitive("", "via", "missing coordinates"))

    logger.debug(
        "Extracted %d segments and %d vias from DSN wiring", table.segment_count, table.via_count
    )
    return table
