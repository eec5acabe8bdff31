"""Tests for trace segment stitching."""

import pytest

from specctra_tools.circuit.models import ViaRoutePoint, WireRoutePoint
from specctra_tools.convert.segments import RoutingTable, Segment, ViaRecord
from specctra_tools.exceptions import IterationLimitExceededError
from specctra_tools.stitch import (
    PointIndex,
    SegmentStitcher,
    points_match,
    reverse_route,
    route_length,
    segment_route,
    stitch_net,
    stitch_routes,
    stitch_traces,
)


def seg(*points, layer="top", net="N", width=0.2):
    return Segment(net, layer, width, tuple(points))


def wire_points(chain):
    return [(p.x, p.y) for p in chain.route if isinstance(p, WireRoutePoint)]


class TestPointMatching:
    """Test tolerance-based point equality."""

    def test_points_match(self):
        """Points within tolerance on both axes match."""
        assert points_match((1.0, 1.0), (1.0009, 0.9991))
        assert not points_match((1.0, 1.0), (1.01, 1.0))

    def test_index_matches_across_bucket_boundary(self):
        """Points on either side of a rounding boundary still match."""
        index = PointIndex(0.001)
        index.add((0.0004, 0.0), "a")
        assert index._cell((0.0004, 0.0)) != index._cell((0.0006, 0.0))
        assert index.near((0.0006, 0.0)) == ["a"]

    def test_index_rejects_far_points(self):
        """Neighbouring buckets are filtered by the tolerance window."""
        index = PointIndex(0.001)
        index.add((0.0, 0.0), "a")
        assert index.near((0.0015, 0.0)) == []
        assert len(index) == 1


class TestRoutes:
    """Test route helpers."""

    def test_route_length_skips_vias(self):
        """Via points add no length."""
        route = [
            WireRoutePoint(x=0, y=0, width=0.2, layer="top"),
            WireRoutePoint(x=3, y=0, width=0.2, layer="top"),
            ViaRoutePoint(x=3, y=0),
            WireRoutePoint(x=3, y=0, width=0.2, layer="bottom"),
            WireRoutePoint(x=3, y=4, width=0.2, layer="bottom"),
        ]
        assert route_length(route) == pytest.approx(7.0)

    def test_reverse_route_swaps_via_layers(self):
        """Reversing swaps via layers and port tags."""
        route = [
            WireRoutePoint(x=0, y=0, width=0.2, layer="top", start_pcb_port_id="p1"),
            ViaRoutePoint(x=0, y=0, from_layer="top", to_layer="bottom"),
            WireRoutePoint(x=0, y=0, width=0.2, layer="bottom"),
        ]
        reversed_route = reverse_route(route)
        assert reversed_route[1].from_layer == "bottom"
        assert reversed_route[1].to_layer == "top"
        assert reversed_route[2].end_pcb_port_id == "p1"
        assert reversed_route[2].start_pcb_port_id is None

    def test_segment_route(self):
        """Segments become wire points with their width and layer."""
        route = segment_route(seg((0, 0), (1, 0), layer="bottom", width=0.3))
        assert [(p.x, p.y, p.layer, p.width) for p in route] == [
            (0, 0, "bottom", 0.3),
            (1, 0, "bottom", 0.3),
        ]


class TestStitchNet:
    """Test stitching of one net."""

    def test_shared_endpoint_joins(self):
        """Two pieces sharing an endpoint become one chain."""
        chains = stitch_net([seg((0, 0), (1, 0)), seg((1, 0), (1, 1))])
        assert len(chains) == 1
        assert wire_points(chains[0]) == [(0, 0), (1, 0), (1, 1)]
        assert chains[0].members == [0, 1]

    def test_length_preserved(self):
        """A chain is as long as its members."""
        segments = [seg((0, 0), (2, 0)), seg((2, 0), (2, 3)), seg((2, 3), (5, 3), (5, 7))]
        chains = stitch_net(segments)
        assert sum(c.length for c in chains) == pytest.approx(sum(s.length for s in segments))

    def test_reversed_continuation(self):
        """Pieces pointing the other way are reversed."""
        chains = stitch_net([seg((0, 0), (1, 0)), seg((2, 0), (1, 0))])
        assert wire_points(chains[0]) == [(0, 0), (1, 0), (2, 0)]

    def test_backward_extension(self):
        """Chains also grow from their start."""
        chains = stitch_net([seg((1, 0), (2, 0)), seg((0, 0), (1, 0))])
        assert len(chains) == 1
        assert wire_points(chains[0]) == [(0, 0), (1, 0), (2, 0)]
        assert chains[0].members == [1, 0]

    def test_within_tolerance_merges(self):
        """A 0.0009 mm gap is within the default tolerance."""
        chains = stitch_net([seg((0, 0), (1, 0)), seg((1.0009, 0), (2, 0))])
        assert len(chains) == 1

    def test_beyond_tolerance_separate(self):
        """A 0.01 mm gap is not."""
        chains = stitch_net([seg((0, 0), (1, 0)), seg((1.01, 0), (2, 0))])
        assert len(chains) == 2

    def test_custom_tolerance(self):
        """The tolerance is configurable."""
        chains = stitch_net([seg((0, 0), (1, 0)), seg((1.01, 0), (2, 0))], tolerance=0.05)
        assert len(chains) == 1

    def test_layer_change_needs_via(self):
        """Pieces on different layers only join through a via."""
        segments = [seg((0, 0), (1, 0), layer="top"), seg((1, 0), (2, 0), layer="bottom")]
        assert len(stitch_net(segments)) == 2

        chains = stitch_net(segments, [ViaRecord("N", 1.0, 0.0)])
        assert len(chains) == 1
        chain = chains[0]
        assert chain.via_count == 1
        assert chain.layers == ["top", "bottom"]
        via = [p for p in chain.route if isinstance(p, ViaRoutePoint)][0]
        assert (via.x, via.y, via.from_layer, via.to_layer) == (1, 0, "top", "bottom")
        assert chain.length == pytest.approx(2.0)

    def test_backward_layer_change(self):
        """Backward joins across a via insert the via before the chain."""
        segments = [seg((1, 0), (2, 0), layer="bottom"), seg((0, 0), (1, 0), layer="top")]
        chains = stitch_net(segments, [ViaRecord("N", 1.0, 0.0)])
        assert len(chains) == 1
        assert chains[0].start_layer == "top"
        assert chains[0].end_layer == "bottom"
        assert chains[0].route[2].route_type == "via"

    def test_branch_tie_takes_first(self):
        """At a Y junction with no better branch, the first candidate wins."""
        segments = [seg((0, 0), (1, 0)), seg((1, 0), (2, 0)), seg((1, 0), (1, 1))]
        chains = stitch_net(segments)
        assert [c.members for c in chains] == [[0, 1], [2]]

    def test_branch_deterministic(self):
        """The same input always stitches the same way."""
        segments = [seg((0, 0), (1, 0)), seg((1, 0), (2, 0)), seg((1, 0), (1, 1))]
        first = [wire_points(c) for c in stitch_net(segments)]
        second = [wire_points(c) for c in stitch_net(segments)]
        assert first == second

    def test_branch_prefers_continuation(self):
        """A branch that continues beats a dead end."""
        segments = [
            seg((0, 0), (1, 0)),
            seg((1, 0), (2, 0)),
            seg((1, 0), (1, 1)),
            seg((1, 1), (1, 2)),
        ]
        chains = stitch_net(segments)
        assert chains[0].members == [0, 2, 3]

    def test_branch_prefers_pad(self):
        """A branch reaching a pad beats one that only continues."""
        segments = [
            seg((0, 0), (1, 0)),
            seg((1, 0), (2, 0)),
            seg((2, 0), (3, 0)),
            seg((1, 0), (1, 1)),
        ]

        def on_pad(x, y, layer):
            return points_match((x, y), (1, 1))

        chains = stitch_net(segments, terminal=on_pad)
        assert chains[0].members == [0, 3]
        assert sorted(m for c in chains for m in c.members) == [0, 1, 2, 3]

    def test_branch_from_pad_stem_listed_last(self):
        """A Y whose stem leaves a pad keeps the stem, wherever it is listed."""
        segments = [
            seg((1, 0), (2, 0)),
            seg((1, 1), (1, 0)),
            seg((0, 0), (1, 0)),
        ]

        def on_pad(x, y, layer):
            return points_match((x, y), (0, 0))

        first = stitch_net(segments, terminal=on_pad)
        assert len(first) == 2
        assert [c.members for c in first] == [[2, 0], [1]]
        assert wire_points(first[0]) == [(0, 0), (1, 0), (2, 0)]

        second = stitch_net(segments, terminal=on_pad)
        assert [wire_points(c) for c in second] == [wire_points(c) for c in first]

        # Without the pad test the first listed branch wins the tie
        assert [c.members for c in stitch_net(segments)][0] == [1, 0]

    def test_every_segment_in_exactly_one_chain(self):
        """Chains partition the input."""
        segments = [
            seg((0, 0), (1, 0)),
            seg((5, 5), (6, 5)),
            seg((1, 0), (1, 1)),
            seg((1, 0), (2, 0)),
            seg((6, 5), (7, 5)),
        ]
        members = [m for c in stitch_net(segments) for m in c.members]
        assert sorted(members) == list(range(len(segments)))

    def test_restitching_is_stable(self):
        """Stitching the output again changes nothing."""
        segments = [seg((0, 0), (1, 0)), seg((1, 0), (1, 1)), seg((3, 3), (4, 4))]
        chains = stitch_net(segments)
        again = stitch_traces([c.route for c in chains])
        assert len(again) == len(chains)
        assert [c.length for c in again] == pytest.approx([c.length for c in chains])

    def test_closed_loop(self):
        """A loop stitches into one chain."""
        square = [
            seg((0, 0), (1, 0)),
            seg((1, 0), (1, 1)),
            seg((1, 1), (0, 1)),
            seg((0, 1), (0, 0)),
        ]
        chains = stitch_net(square)
        assert len(chains) == 1
        assert chains[0].length == pytest.approx(4.0)

    def test_empty(self):
        """No segments, no chains."""
        assert stitch_net([]) == []

    def test_net_name_from_segments(self):
        """Chains take the net of their segments."""
        assert stitch_net([seg((0, 0), (1, 0), net="GND")])[0].net == "GND"

    def test_iteration_limit(self):
        """Exceeding the step cap is fatal."""
        segments = [seg((0, 0), (1, 0)), seg((5, 0), (6, 0)), seg((9, 0), (10, 0))]
        with pytest.raises(IterationLimitExceededError) as exc_info:
            stitch_net(segments, max_iterations=1)
        assert exc_info.value.stage == "SegmentStitcher"
        assert exc_info.value.context["net"] == "N"

    def test_default_budget(self):
        """The default cap grows with the segment count."""
        stitcher = SegmentStitcher([segment_route(seg((0, 0), (1, 0)))] * 3)
        assert stitcher.max_iterations == 1006


class TestStitchRoutes:
    """Test stitching a whole routing table."""

    def test_nets_are_independent(self):
        """Coincident pieces of different nets never join."""
        table = RoutingTable()
        table.add_segment(seg((0, 0), (1, 0), net="A"))
        table.add_segment(seg((1, 0), (2, 0), net="B"))
        table.add_segment(seg((1, 0), (1, 1), net="A"))
        result = stitch_routes(table)
        assert len(result["A"]) == 1
        assert len(result["B"]) == 1
        assert result["B"][0].net == "B"

    def test_vias_only_for_own_net(self):
        """A via of another net does not allow a layer change."""
        table = RoutingTable()
        table.add_segment(seg((0, 0), (1, 0), layer="top", net="A"))
        table.add_segment(seg((1, 0), (2, 0), layer="bottom", net="A"))
        table.add_via(ViaRecord("B", 1.0, 0.0))
        assert len(stitch_routes(table)["A"]) == 2


class TestStitchTraces:
    """Test re-stitching of built traces."""

    def test_same_layer_traces_merge(self):
        """Traces sharing an endpoint merge."""
        routes = [segment_route(seg((0, 0), (1, 0))), segment_route(seg((1, 0), (2, 0)))]
        chains = stitch_traces(routes, net="N")
        assert len(chains) == 1
        assert chains[0].members == [0, 1]

    def test_existing_vias_kept(self):
        """Via points inside a trace survive."""
        route = [
            WireRoutePoint(x=0, y=0, width=0.2, layer="top"),
            WireRoutePoint(x=1, y=0, width=0.2, layer="top"),
            ViaRoutePoint(x=1, y=0),
            WireRoutePoint(x=1, y=0, width=0.2, layer="bottom"),
            WireRoutePoint(x=2, y=0, width=0.2, layer="bottom"),
        ]
        tail = segment_route(seg((2, 0), (3, 0), layer="bottom"))
        chains = stitch_traces([route, tail])
        assert len(chains) == 1
        assert chains[0].via_count == 1
        assert chains[0].length == pytest.approx(3.0)
