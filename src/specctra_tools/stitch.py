"""
Trace segment stitching.

Autorouters emit routing as many small wire pieces per net. The stitcher
merges pieces that share an endpoint into maximal chains, threading a via
point into the chain wherever a layer change happens on a via.

Algorithm (per net, independent of every other net):

1. Every segment becomes a ``TraceNode`` with a ``used`` flag. Endpoints are
   indexed by tolerance bucket in ``by_start`` / ``by_end``.
2. For each unused node in input order, mark it used and extend the chain
   forward from its end: direct continuations (segments starting there)
   first, then reversed ones (segments ending there). Then extend backward
   from its start: segments ending there first, then reversed segments
   starting there.
3. A candidate on the chain's layer is joined dropping the shared point. A
   candidate on another layer is only eligible when a via of the net sits at
   the shared point; the join inserts a via point there.
4. When more than one candidate is eligible, each one's continuation is
   looked at without consuming anything: reaching a pad (when a terminal
   test is given) beats continuing into another unused segment, which beats
   an immediate dead end. Ties go to the first candidate. Branches that are
   not taken stay unused and become chains of their own.

Two points are the same when they differ by less than the tolerance on both
axes. The index buckets points to the tolerance grid and lookups also scan
the neighbouring buckets, so points straddling a bucket boundary still match.

Example::

    from specctra_tools.convert.segments import Segment
    from specctra_tools.stitch import stitch_net

    chains = stitch_net([
        Segment("GND", "top", 0.25, ((0, 0), (1, 0))),
        Segment("GND", "top", 0.25, ((1, 0), (1, 1))),
    ])
    assert len(chains) == 1
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence

from .circuit.models import RoutePoint, ViaRoutePoint, WireRoutePoint
from .exceptions import IterationLimitExceededError

if TYPE_CHECKING:
    from .convert.segments import RoutingTable, Segment, ViaRecord

logger = logging.getLogger(__name__)

TOLERANCE = 0.001

# Extra iterations allowed on top of two steps per segment
BASE_ITERATION_BUDGET = 1000

Coord = tuple[float, float]
TerminalTest = Callable[[float, float, str], bool]

_NEIGHBOURS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1)]


def points_match(a: Coord, b: Coord, tolerance: float = TOLERANCE) -> bool:
    """True if the points differ by less than ``tolerance`` on both axes."""
    return abs(a[0] - b[0]) < tolerance and abs(a[1] - b[1]) < tolerance


class PointIndex:
    """Maps tolerance buckets to items; lookups also scan neighbouring buckets."""

    def __init__(self, tolerance: float = TOLERANCE):
        self.tolerance = tolerance
        self._buckets: dict[tuple[int, int], list] = {}

    def _cell(self, point: Coord) -> tuple[int, int]:
        return (round(point[0] / self.tolerance), round(point[1] / self.tolerance))

    def add(self, point: Coord, item) -> None:
        self._buckets.setdefault(self._cell(point), []).append((point, item))

    def near(self, point: Coord) -> list:
        """Items whose point matches ``point``, in insertion order per bucket."""
        cx, cy = self._cell(point)
        found = []
        for dx, dy in _NEIGHBOURS:
            for other, item in self._buckets.get((cx + dx, cy + dy), ()):
                if points_match(point, other, self.tolerance):
                    found.append(item)
        return found

    def __len__(self) -> int:
        return sum(len(items) for items in self._buckets.values())


def route_length(route: Sequence[RoutePoint]) -> float:
    """Sum of distances between consecutive points; via points carry no length."""
    total = 0.0
    for p1, p2 in zip(route, route[1:]):
        if p2.route_type == "via":
            continue
        total += math.hypot(p2.x - p1.x, p2.y - p1.y)
    return total


def segment_route(segment: Segment) -> list[RoutePoint]:
    """Wire points for a raw segment."""
    return [
        WireRoutePoint(x=x, y=y, width=segment.width, layer=segment.layer)
        for x, y in segment.points
    ]


def reverse_route(route: Sequence[RoutePoint]) -> list[RoutePoint]:
    """Walk a route the other way; via points swap their layers."""
    reversed_route: list[RoutePoint] = []
    for point in reversed(route):
        if isinstance(point, ViaRoutePoint):
            point = point.model_copy(update={"from_layer": point.to_layer, "to_layer": point.from_layer})
        elif point.start_pcb_port_id or point.end_pcb_port_id:
            point = point.model_copy(
                update={"start_pcb_port_id": point.end_pcb_port_id, "end_pcb_port_id": point.start_pcb_port_id}
            )
        reversed_route.append(point)
    return reversed_route


def _first_wire(route: Sequence[RoutePoint]) -> WireRoutePoint:
    for point in route:
        if isinstance(point, WireRoutePoint):
            return point
    raise ValueError("Route has no wire points")


def _last_wire(route: Sequence[RoutePoint]) -> WireRoutePoint:
    for point in reversed(route):
        if isinstance(point, WireRoutePoint):
            return point
    raise ValueError("Route has no wire points")


@dataclass
class TraceNode:
    """Working node of the stitch graph: one input route and its ``used`` flag."""

    index: int
    route: list[RoutePoint]
    start: Coord
    end: Coord
    start_layer: str
    end_layer: str
    used: bool = False

    @classmethod
    def from_route(cls, index: int, route: Sequence[RoutePoint]) -> TraceNode:
        first = _first_wire(route)
        last = _last_wire(route)
        return cls(
            index=index,
            route=list(route),
            start=(first.x, first.y),
            end=(last.x, last.y),
            start_layer=first.layer,
            end_layer=last.layer,
        )


@dataclass(frozen=True)
class _Candidate:
    node: TraceNode
    # True when the node's start touches the chain
    joins_at_start: bool

    @property
    def join_layer(self) -> str:
        return self.node.start_layer if self.joins_at_start else self.node.end_layer

    @property
    def far_point(self) -> Coord:
        return self.node.end if self.joins_at_start else self.node.start

    @property
    def far_layer(self) -> str:
        return self.node.end_layer if self.joins_at_start else self.node.start_layer


@dataclass
class StitchedChain:
    """One output trace: a maximal run of joined input routes."""

    net: str
    route: list[RoutePoint]
    # Input indices of the joined routes, in chain order
    members: list[int] = field(default_factory=list)

    @property
    def length(self) -> float:
        return route_length(self.route)

    @property
    def start(self) -> Coord:
        point = _first_wire(self.route)
        return (point.x, point.y)

    @property
    def end(self) -> Coord:
        point = _last_wire(self.route)
        return (point.x, point.y)

    @property
    def start_layer(self) -> str:
        return _first_wire(self.route).layer

    @property
    def end_layer(self) -> str:
        return _last_wire(self.route).layer

    @property
    def layers(self) -> list[str]:
        seen: list[str] = []
        for point in self.route:
            if isinstance(point, WireRoutePoint) and point.layer not in seen:
                seen.append(point.layer)
        return seen

    @property
    def via_count(self) -> int:
        return sum(1 for p in self.route if p.route_type == "via")


class SegmentStitcher:
    """Stitches the routes of one net."""

    def __init__(
        self,
        routes: Sequence[Sequence[RoutePoint]],
        vias: Iterable[ViaRecord] = (),
        net: str = "",
        tolerance: float = TOLERANCE,
        terminal: Optional[TerminalTest] = None,
        max_iterations: Optional[int] = None,
    ):
        self.net = net
        self.tolerance = tolerance
        self.terminal = terminal
        self.nodes = [
            TraceNode.from_route(i, r)
            for i, r in enumerate(routes)
            if any(isinstance(p, WireRoutePoint) for p in r)
        ]
        if max_iterations is None:
            max_iterations = BASE_ITERATION_BUDGET + 2 * len(self.nodes)
        self.max_iterations = max_iterations
        self.iterations = 0

        self.by_start = PointIndex(tolerance)
        self.by_end = PointIndex(tolerance)
        for node in self.nodes:
            self.by_start.add(node.start, node)
            self.by_end.add(node.end, node)

        self.vias = PointIndex(tolerance)
        for via in vias:
            self.vias.add((via.x, via.y), via)

    def _tick(self) -> None:
        self.iterations += 1
        if self.iterations > self.max_iterations:
            raise IterationLimitExceededError(
                "SegmentStitcher",
                self.max_iterations,
                context={"net": self.net, "segments": len(self.nodes)},
            )

    def via_at(self, point: Coord) -> Optional[ViaRecord]:
        found = self.vias.near(point)
        return found[0] if found else None

    def _eligible(
        self, point: Coord, layer: str, forward: bool, exclude: set[int]
    ) -> list[_Candidate]:
        """Unused candidates touching ``point``, direct ones first."""
        if forward:
            lookups = [(self.by_start, True), (self.by_end, False)]
        else:
            lookups = [(self.by_end, False), (self.by_start, True)]

        has_via: Optional[bool] = None
        result: list[_Candidate] = []
        seen: set[int] = set()
        for index, joins_at_start in lookups:
            nodes = sorted(index.near(point), key=lambda n: n.index)
            for node in nodes:
                if node.used or node.index in exclude or node.index in seen:
                    continue
                candidate = _Candidate(node, joins_at_start)
                if candidate.join_layer != layer:
                    if has_via is None:
                        has_via = self.via_at(point) is not None
                    if not has_via:
                        continue
                seen.add(node.index)
                result.append(candidate)
        return result

    def _score(self, candidate: _Candidate, forward: bool, chain: set[int]) -> int:
        """2: reaches a pad, 1: continues into an unused segment, 0: dead end."""
        visited = set(chain)
        visited.add(candidate.node.index)
        far, far_layer = candidate.far_point, candidate.far_layer
        if self.terminal is not None and self.terminal(far[0], far[1], far_layer):
            return 2

        following = self._eligible(far, far_layer, forward, visited)
        if not following:
            return 0
        if self.terminal is None:
            return 1

        stack = list(reversed(following))
        while stack:
            current = stack.pop()
            if current.node.index in visited:
                continue
            visited.add(current.node.index)
            point, layer = current.far_point, current.far_layer
            if self.terminal(point[0], point[1], layer):
                return 2
            stack.extend(reversed(self._eligible(point, layer, forward, visited)))
        return 1

    def _choose(self, candidates: list[_Candidate], forward: bool, chain: set[int]) -> _Candidate:
        if len(candidates) == 1:
            return candidates[0]
        best = candidates[0]
        best_score = -1
        for candidate in candidates:
            score = self._score(candidate, forward, chain)
            if score > best_score:
                best, best_score = candidate, score
        logger.debug(
            "Net %s: branch of %d candidates, took segment %d (score %d)",
            self.net,
            len(candidates),
            best.node.index,
            best_score,
        )
        return best

    def _candidate_route(self, candidate: _Candidate, forward: bool) -> list[RoutePoint]:
        """Candidate's route oriented to continue the chain."""
        reverse = not candidate.joins_at_start if forward else candidate.joins_at_start
        return reverse_route(candidate.node.route) if reverse else list(candidate.node.route)

    def _extend_forward(self, route: list[RoutePoint], members: list[int], chain: set[int]) -> None:
        while True:
            last = _last_wire(route)
            candidates = self._eligible((last.x, last.y), last.layer, True, chain)
            if not candidates:
                return
            self._tick()
            candidate = self._choose(candidates, True, chain)
            candidate.node.used = True
            chain.add(candidate.node.index)
            members.append(candidate.node.index)

            extension = self._candidate_route(candidate, True)
            first = _first_wire(extension)
            if first.layer == last.layer:
                route.extend(extension[1:])
            else:
                route.append(ViaRoutePoint(x=first.x, y=first.y, from_layer=last.layer, to_layer=first.layer))
                route.extend(extension)

    def _extend_backward(self, route: list[RoutePoint], members: list[int], chain: set[int]) -> None:
        while True:
            first = _first_wire(route)
            candidates = self._eligible((first.x, first.y), first.layer, False, chain)
            if not candidates:
                return
            self._tick()
            candidate = self._choose(candidates, False, chain)
            candidate.node.used = True
            chain.add(candidate.node.index)
            members.insert(0, candidate.node.index)

            extension = self._candidate_route(candidate, False)
            last = _last_wire(extension)
            if last.layer == first.layer:
                route[:0] = extension[:-1]
            else:
                via = ViaRoutePoint(x=first.x, y=first.y, from_layer=last.layer, to_layer=first.layer)
                route[:0] = extension + [via]

    def run(self) -> list[StitchedChain]:
        chains: list[StitchedChain] = []
        for node in self.nodes:
            if node.used:
                continue
            self._tick()
            node.used = True
            route = list(node.route)
            members = [node.index]
            chain = {node.index}
            self._extend_forward(route, members, chain)
            self._extend_backward(route, members, chain)
            chains.append(StitchedChain(self.net, route, members))

        logger.debug(
            "Net %s: stitched %d segments into %d chains",
            self.net,
            len(self.nodes),
            len(chains),
        )
        return chains


def stitch_net(
    segments: Sequence[Segment],
    vias: Iterable[ViaRecord] = (),
    tolerance: float = TOLERANCE,
    terminal: Optional[TerminalTest] = None,
    max_iterations: Optional[int] = None,
    net: Optional[str] = None,
) -> list[StitchedChain]:
    """
    Stitch the segments of one net.

    Args:
        segments: Segments of a single net, in input order
        vias: Via records of the same net
        tolerance: Endpoint matching tolerance in mm
        terminal: ``(x, y, layer) -> bool``, True where a point lies on a pad.
            Used only to rank branches.
        max_iterations: Step cap (default ``1000 + 2 * len(segments)``)
        net: Net name for chains and error context (default: the first
            segment's net)

    Returns:
        Chains in the order they were started

    Raises:
        IterationLimitExceededError: If the step cap is exceeded
    """
    if net is None:
        net = segments[0].net if segments else ""
    stitcher = SegmentStitcher(
        [segment_route(s) for s in segments],
        vias,
        net=net,
        tolerance=tolerance,
        terminal=terminal,
        max_iterations=max_iterations,
    )
    return stitcher.run()


def stitch_routes(
    table: RoutingTable,
    tolerance: float = TOLERANCE,
    terminal: Optional[TerminalTest] = None,
    max_iterations: Optional[int] = None,
) -> dict[str, list[StitchedChain]]:
    """Stitch every net of a routing table. Nets never share state."""
    result: dict[str, list[StitchedChain]] = {}
    for net, segments in table.segments_by_net.items():
        if not segments:
            continue
        result[net] = stitch_net(
            segments,
            table.vias_by_net.get(net, ()),
            tolerance=tolerance,
            terminal=terminal,
            max_iterations=max_iterations,
            net=net,
        )
    return result


def stitch_traces(
    routes: Sequence[Sequence[RoutePoint]],
    tolerance: float = TOLERANCE,
    max_iterations: Optional[int] = None,
    net: str = "",
) -> list[StitchedChain]:
    """
    Re-stitch already built trace routes.

    Only same-layer joins are made; routes keep any via points they already
    contain. ``members`` of the result index into ``routes``.
    """
    stitcher = SegmentStitcher(routes, (), net=net, tolerance=tolerance, max_iterations=max_iterations)
    return stitcher.run()
