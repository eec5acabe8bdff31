"""
Attach stitched chains to component pads.

A chain end is attached to a port when it falls inside the port's pad
bounding box, grown by a small slack because routed wires usually stop at a
pad's edge rather than its center. Ports without area fall back to point
matching at the stitch tolerance. With ``refine_shapes`` a bounding-box hit
must also lie within the (slack-buffered) true pad outline.

Chains with no attached end are "hanging". They are kept for diagnostics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

import numpy as np
from shapely import affinity
from shapely.geometry import LineString, Polygon, box
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry.base import BaseGeometry

from .circuit.models import PcbPlatedHole, PcbSmtPad, WireRoutePoint
from .stitch import TOLERANCE, PointIndex, StitchedChain

if TYPE_CHECKING:
    from .circuit.db import CircuitDb

logger = logging.getLogger(__name__)

PORT_MATCH_TOLERANCE = 0.01


@dataclass(frozen=True)
class PortLocation:
    """Absolute position and bounding footprint of a pad's contact, in mm."""

    port_id: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    layers: tuple[str, ...] = ("top",)
    shape: Optional[BaseGeometry] = field(default=None, compare=False, repr=False)

    @property
    def is_point(self) -> bool:
        return self.width <= 0 and self.height <= 0


class PortLocator:
    """Finds the port under a point."""

    def __init__(
        self,
        ports: Iterable[PortLocation],
        slack: float = PORT_MATCH_TOLERANCE,
        tolerance: float = TOLERANCE,
        refine_shapes: bool = False,
    ):
        self.ports = list(ports)
        self.slack = slack
        self.tolerance = tolerance
        self.refine_shapes = refine_shapes

        if self.ports:
            data = np.array([(p.x, p.y, p.width, p.height) for p in self.ports], dtype=float)
        else:
            data = np.empty((0, 4))
        self._centers = data[:, :2]
        half = data[:, 2:] / 2
        self._is_point = (data[:, 2] <= 0) & (data[:, 3] <= 0)
        self._lo = self._centers - half - slack
        self._hi = self._centers + half + slack
        self._buffered: dict[int, BaseGeometry] = {}

    def __len__(self) -> int:
        return len(self.ports)

    def _shape_accepts(self, index: int, x: float, y: float) -> bool:
        port = self.ports[index]
        if port.shape is None:
            return True
        if index not in self._buffered:
            self._buffered[index] = port.shape.buffer(self.slack)
        return self._buffered[index].covers(ShapelyPoint(x, y))

    def candidates(self, x: float, y: float) -> list[PortLocation]:
        """All matching ports, nearest center first."""
        if not self.ports:
            return []
        point = np.array([x, y])
        in_box = np.all((point >= self._lo) & (point <= self._hi), axis=1) & ~self._is_point
        exact = self._is_point & np.all(np.abs(self._centers - point) < self.tolerance, axis=1)
        hits = np.flatnonzero(in_box | exact)
        if self.refine_shapes:
            hits = np.array([i for i in hits if self._shape_accepts(int(i), x, y)], dtype=int)
        if hits.size == 0:
            return []
        distances = np.hypot(*(self._centers[hits] - point).T)
        order = hits[np.argsort(distances, kind="stable")]
        return [self.ports[int(i)] for i in order]

    def find(self, x: float, y: float) -> Optional[PortLocation]:
        """Nearest matching port, or None."""
        found = self.candidates(x, y)
        return found[0] if found else None

    def is_terminal(self, x: float, y: float, layer: str = "top") -> bool:
        """Stitcher terminal test: does the point lie on any pad."""
        return self.find(x, y) is not None


@dataclass
class ReconciledChain:
    chain: StitchedChain
    start_port_id: Optional[str] = None
    end_port_id: Optional[str] = None
    # "port", "trace" or "open" for each end
    start_kind: str = "open"
    end_kind: str = "open"

    @property
    def attached_ends(self) -> int:
        return (self.start_port_id is not None) + (self.end_port_id is not None)

    @property
    def is_hanging(self) -> bool:
        return self.attached_ends == 0

    @property
    def route(self):
        return self.chain.route

    @property
    def net(self) -> str:
        return self.chain.net


@dataclass
class ReconciledTraces:
    pad_attached: list[ReconciledChain] = field(default_factory=list)
    hanging: list[ReconciledChain] = field(default_factory=list)

    def all(self) -> list[ReconciledChain]:
        return self.pad_attached + self.hanging

    def __len__(self) -> int:
        return len(self.pad_attached) + len(self.hanging)


def _tag_endpoints(chain: StitchedChain, start_port_id: Optional[str], end_port_id: Optional[str]) -> None:
    route = chain.route
    wire_indices = [i for i, p in enumerate(route) if isinstance(p, WireRoutePoint)]
    first, last = wire_indices[0], wire_indices[-1]
    route[first] = route[first].model_copy(update={"start_pcb_port_id": start_port_id})
    route[last] = route[last].model_copy(update={"end_pcb_port_id": end_port_id})


def reconcile_chains(
    chains: Sequence[StitchedChain],
    locator: PortLocator,
    tolerance: Optional[float] = None,
) -> ReconciledTraces:
    """
    Tag chain ends with the ports they land on and split off hanging chains.

    The first wire point of a chain gets ``start_pcb_port_id`` and the last
    gets ``end_pcb_port_id``. Chains are updated in place.

    Args:
        chains: Stitched chains (any mix of nets)
        locator: Port lookup
        tolerance: Point matching tolerance for chain-to-chain ends
            (default: the locator's)

    Returns:
        Chains split into pad-attached and hanging
    """
    tolerance = locator.tolerance if tolerance is None else tolerance

    # Every wire point of every chain, to tell "ends on another trace" from "open"
    points = PointIndex(tolerance)
    for index, chain in enumerate(chains):
        for point in chain.route:
            if isinstance(point, WireRoutePoint):
                points.add((point.x, point.y), (index, chain.net))

    def end_kind(index: int, chain: StitchedChain, xy: tuple[float, float], port) -> str:
        if port is not None:
            return "port"
        for other, net in points.near(xy):
            if other != index and net == chain.net:
                return "trace"
        return "open"

    result = ReconciledTraces()
    for index, chain in enumerate(chains):
        start_port = locator.find(*chain.start)
        end_port = locator.find(*chain.end)
        start_id = start_port.port_id if start_port else None
        end_id = end_port.port_id if end_port else None
        _tag_endpoints(chain, start_id, end_id)

        reconciled = ReconciledChain(
            chain,
            start_id,
            end_id,
            start_kind=end_kind(index, chain, chain.start, start_port),
            end_kind=end_kind(index, chain, chain.end, end_port),
        )
        if reconciled.is_hanging:
            result.hanging.append(reconciled)
        else:
            result.pad_attached.append(reconciled)

    logger.debug(
        "Reconciled %d chains: %d pad-attached, %d hanging",
        len(chains),
        len(result.pad_attached),
        len(result.hanging),
    )
    return result


def pad_geometry(pad: PcbSmtPad | PcbPlatedHole) -> Optional[BaseGeometry]:
    """Shapely outline of a pad record, None if it has no usable size."""
    if isinstance(pad, PcbPlatedHole):
        if pad.shape == "pill" and pad.outer_width and pad.outer_height:
            return _stadium(pad.x, pad.y, pad.outer_width, pad.outer_height, 0.0)
        if pad.outer_diameter:
            return ShapelyPoint(pad.x, pad.y).buffer(pad.outer_diameter / 2)
        return None

    if pad.shape == "polygon":
        if pad.points and len(pad.points) >= 3:
            poly = Polygon([(p.x, p.y) for p in pad.points])
            return poly if poly.is_valid else poly.buffer(0)
        return None
    if pad.x is None or pad.y is None:
        return None
    if pad.shape == "circle":
        return ShapelyPoint(pad.x, pad.y).buffer(pad.radius) if pad.radius else None
    if not pad.width or not pad.height:
        return None
    if pad.shape == "pill":
        return _stadium(pad.x, pad.y, pad.width, pad.height, pad.ccw_rotation or 0.0)
    rect = box(pad.x - pad.width / 2, pad.y - pad.height / 2, pad.x + pad.width / 2, pad.y + pad.height / 2)
    if pad.ccw_rotation:
        rect = affinity.rotate(rect, pad.ccw_rotation, origin=(pad.x, pad.y))
    return rect


def _stadium(x: float, y: float, width: float, height: float, rotation: float) -> BaseGeometry:
    radius = min(width, height) / 2
    half = abs(width - height) / 2
    if width >= height:
        core = LineString([(x - half, y), (x + half, y)]) if half else ShapelyPoint(x, y)
    else:
        core = LineString([(x, y - half), (x, y + half)]) if half else ShapelyPoint(x, y)
    geom = core.buffer(radius)
    if rotation:
        geom = affinity.rotate(geom, rotation, origin=(x, y))
    return geom


def port_locations_from_board(db: CircuitDb) -> list[PortLocation]:
    """
    Port locations from the pads and ports already in a circuit store.

    Each pad linked to a port contributes its bounding box. Ports without a
    pad become zero-area locations at the port position.
    """
    locations: list[PortLocation] = []
    with_pads: set[str] = set()

    pads: list[PcbSmtPad | PcbPlatedHole] = [*db.pcb_smtpad.list(), *db.pcb_plated_hole.list()]
    for pad in pads:
        if not pad.pcb_port_id:
            continue
        geom = pad_geometry(pad)
        if geom is None or geom.is_empty:
            continue
        minx, miny, maxx, maxy = geom.bounds
        layers = tuple(pad.layers) if isinstance(pad, PcbPlatedHole) else (pad.layer,)
        locations.append(
            PortLocation(
                port_id=pad.pcb_port_id,
                x=(minx + maxx) / 2,
                y=(miny + maxy) / 2,
                width=maxx - minx,
                height=maxy - miny,
                layers=layers,
                shape=geom,
            )
        )
        with_pads.add(pad.pcb_port_id)

    for port in db.pcb_port.list():
        if port.pcb_port_id not in with_pads:
            locations.append(PortLocation(port.pcb_port_id, port.x, port.y, layers=tuple(port.layers)))

    return locations

