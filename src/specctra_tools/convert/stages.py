"""
Conversion stages.

A converter is a fixed sequence of stages sharing one ``ConverterContext``.
Each stage is stepped until it reports ``finished``; a stage that never
finishes is stopped after ``MAX_ITERATIONS`` steps.

DSN pipeline::

    InitializeDsnContextStage -> CollectBoardInfoStage -> CollectComponentsStage
    -> CollectPadsStage -> CollectNetsStage -> CollectTracesStage

SES pipeline::

    InitializeSesContextStage -> CollectSesRoutesStage
    -> GroupWiresIntoTracesStage -> PcbStitchTraceStage -> PadTraceReconcileStage
"""

from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Optional

from ..circuit.models import Point, WireRoutePoint
from ..exceptions import IterationLimitExceededError
from ..reconcile import PortLocator, port_locations_from_board, reconcile_chains
from ..stitch import (
    StitchedChain,
    TerminalTest,
    route_length,
    segment_route,
    stitch_net,
    stitch_routes,
    stitch_traces,
)
from .context import ConverterContext, ConvertOptions
from .footprints import CirclePad, FootprintCatalog, PillPad, PolygonPad, RectPad
from .nets import build_net_table
from .placement import ResolvedPad, resolve_pad, resolve_placements
from .report import WarningKind
from .segments import (
    RoutingTable,
    extract_dsn_wiring,
    extract_ses_routes,
    session_via_catalog,
    via_catalog_from_library,
)
from .transform import resolve_dsn_transform, resolve_overlay_transform, resolve_ses_transform

logger = logging.getLogger(__name__)

# Default board when the design has no structure section
DEFAULT_BOARD_SIZE = 100.0
BOARD_THICKNESS = 1.4

# Drill estimate for plated pads, as a fraction of the copper size
PLATED_HOLE_RATIO = 0.5

_PIN_NUMBER_RE = re.compile(r"(\d+)")


def parse_pin_number(pin_id: str) -> Optional[int]:
    """
    First run of digits in a pin id.

    >>> parse_pin_number("A12")
    12
    >>> parse_pin_number("GND") is None
    True
    """
    match = _PIN_NUMBER_RE.search(pin_id or "")
    return int(match.group(1)) if match else None


class ConverterStage(ABC):
    """One step of a conversion pipeline."""

    MAX_ITERATIONS = 1000

    def __init__(self, ctx: ConverterContext):
        self.ctx = ctx
        self.iteration = 0
        self.finished = False

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def step(self) -> bool:
        """Do one unit of work. Returns True while more work remains."""

    def run_until_finished(self) -> None:
        while not self.finished:
            self.iteration += 1
            if self.iteration > self.MAX_ITERATIONS:
                raise IterationLimitExceededError(self.name, self.MAX_ITERATIONS)
            self.step()

    def done(self) -> bool:
        self.finished = True
        self.ctx.completed_stages.append(self.name)
        logger.debug("%s finished", self.name)
        return False


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _record_skipped(ctx: ConverterContext, routing: RoutingTable) -> None:
    for skipped in routing.skipped:
        ctx.warn(
            WarningKind.MALFORMED_PRIMITIVE,
            f"Net '{skipped.net}': {skipped.kind} {skipped.reason}",
            net=skipped.net,
            primitive=skipped.kind,
        )


def _insert_vias(ctx: ConverterContext, routing: RoutingTable) -> None:
    for net, vias in routing.vias_by_net.items():
        for via in vias:
            ctx.db.pcb_via.insert(
                x=via.x,
                y=via.y,
                outer_diameter=via.outer_diameter,
                hole_diameter=via.hole_diameter,
                layers=[via.from_layer, via.to_layer],
                net_name=net or None,
            )


def _insert_chain(ctx: ConverterContext, chain: StitchedChain, source_trace_id: Optional[str] = None):
    if source_trace_id is None:
        source_trace_id = ctx.net_name_to_source_trace_id.get(chain.net)
    return ctx.db.pcb_trace.insert(
        source_trace_id=source_trace_id,
        net_name=chain.net or None,
        route=chain.route,
        trace_length=chain.length,
    )


def _port_locator(ctx: ConverterContext) -> PortLocator:
    options = ctx.options
    return PortLocator(
        port_locations_from_board(ctx.db),
        slack=options.port_match_tolerance,
        tolerance=options.tolerance,
        refine_shapes=options.refine_pad_shapes,
    )


def terminal_test(options: ConvertOptions, locator: PortLocator) -> Optional[TerminalTest]:
    """Pad test for branch scoring, None when disabled or there are no pads."""
    if not options.prefer_port_branches or not len(locator):
        return None
    return locator.is_terminal


def _pad_record(pad: ResolvedPad) -> tuple[str, dict]:
    """Element type and fields for a placed pad."""
    shape = pad.shape
    minx, miny, maxx, maxy = pad.bounds()
    width, height = maxx - minx, maxy - miny

    if pad.plated:
        fields = {"x": pad.x, "y": pad.y, "layers": pad.layers}
        if isinstance(shape, PillPad):
            fields.update(
                shape="pill",
                outer_width=width,
                outer_height=height,
                hole_width=width * PLATED_HOLE_RATIO,
                hole_height=height * PLATED_HOLE_RATIO,
            )
        else:
            outer = shape.diameter if isinstance(shape, CirclePad) else min(width, height)
            fields.update(shape="circle", outer_diameter=outer, hole_diameter=outer * PLATED_HOLE_RATIO)
        return "pcb_plated_hole", fields

    fields = {"x": pad.x, "y": pad.y, "layer": pad.layer}
    if isinstance(shape, CirclePad):
        fields.update(shape="circle", radius=shape.diameter / 2)
    elif isinstance(shape, RectPad):
        quarter = pad.rotation % 180
        if math.isclose(quarter, 0.0, abs_tol=1e-9) or math.isclose(quarter, 180.0, abs_tol=1e-9):
            fields.update(shape="rect", width=shape.width, height=shape.height)
        elif math.isclose(quarter, 90.0, abs_tol=1e-9):
            fields.update(shape="rect", width=shape.height, height=shape.width)
        else:
            fields.update(
                shape="rotated_rect", width=shape.width, height=shape.height, ccw_rotation=pad.rotation
            )
    elif isinstance(shape, PillPad):
        angle = 180.0 - shape.angle if pad.mirrored else shape.angle
        angle = (pad.rotation + angle) % 180
        fields.update(shape="pill", width=shape.height, height=shape.width)
        if angle:
            fields["ccw_rotation"] = angle
    elif isinstance(shape, PolygonPad):
        geom = pad.to_geometry()
        if geom.geom_type != "Polygon":
            geom = max(geom.geoms, key=lambda g: g.area)
        fields.update(
            shape="polygon",
            points=[Point(x=x, y=y) for x, y in list(geom.exterior.coords)[:-1]],
        )
    return "pcb_smtpad", fields


# ---------------------------------------------------------------------------
# DSN stages
# ---------------------------------------------------------------------------


class InitializeDsnContextStage(ConverterStage):
    """Coordinate transform, footprint catalog and via sizes for a design."""

    def step(self) -> bool:
        ctx = self.ctx
        design = ctx.design
        options = ctx.options

        ctx.transform = resolve_dsn_transform(
            design, center=options.center_board, default=options.dsn_default_resolution
        )
        ctx.catalog = FootprintCatalog.from_library(design.library, options.fallback_pad_diameter)
        ctx.via_catalog = via_catalog_from_library(design.library)

        for image_id, pin_id, padstack_id in ctx.catalog.unresolved_pins:
            ctx.warn(
                WarningKind.UNRESOLVED_REFERENCE,
                f"Pin {pin_id} of image '{image_id}' references unknown padstack '{padstack_id}'",
                image=image_id,
                pin=pin_id,
                padstack=padstack_id,
            )
        for padstack_id in ctx.catalog.fallback_padstacks:
            ctx.warn(
                WarningKind.FALLBACK_SHAPE,
                f"Padstack '{padstack_id}' has no usable shape, using a fallback circle",
                padstack=padstack_id,
            )
        return self.done()


class CollectBoardInfoStage(ConverterStage):
    """Creates the ``pcb_board`` from the structure section."""

    def step(self) -> bool:
        ctx = self.ctx
        transform = ctx.require_transform(self.name)
        structure = ctx.design.structure

        if structure is None:
            ctx.db.pcb_board.insert(
                center=Point(x=0, y=0), width=DEFAULT_BOARD_SIZE, height=DEFAULT_BOARD_SIZE
            )
            return self.done()

        outline: list[tuple[float, float]] = []
        boundary = structure.boundary
        if boundary is not None:
            for path in boundary.paths:
                coords = path.coordinates
                for i in range(0, len(coords) - 1, 2):
                    outline.append(transform.apply(coords[i], coords[i + 1]))
            for rect in boundary.rects:
                corners = [
                    (rect.x1, rect.y1),
                    (rect.x2, rect.y1),
                    (rect.x2, rect.y2),
                    (rect.x1, rect.y2),
                    (rect.x1, rect.y1),
                ]
                outline.extend(transform.apply(x, y) for x, y in corners)

        num_layers = len(structure.layers) or 2
        if not outline:
            ctx.db.pcb_board.insert(
                center=Point(x=0, y=0),
                width=DEFAULT_BOARD_SIZE,
                height=DEFAULT_BOARD_SIZE,
                thickness=BOARD_THICKNESS,
                num_layers=num_layers,
            )
            return self.done()

        xs = [p[0] for p in outline]
        ys = [p[1] for p in outline]
        ctx.db.pcb_board.insert(
            center=Point(x=(min(xs) + max(xs)) / 2, y=(min(ys) + max(ys)) / 2),
            width=max(xs) - min(xs),
            height=max(ys) - min(ys),
            thickness=BOARD_THICKNESS,
            num_layers=num_layers,
            outline=[Point(x=x, y=y) for x, y in outline],
        )
        return self.done()


class CollectComponentsStage(ConverterStage):
    """Creates a ``source_component`` and ``pcb_component`` per placed instance."""

    def step(self) -> bool:
        ctx = self.ctx
        transform = ctx.require_transform(self.name)
        ctx.placements = resolve_placements(ctx.design.placement, transform)

        for ref in ctx.placements.duplicate_refs:
            ctx.warn(WarningKind.DUPLICATE_PLACEMENT, f"Duplicate placement of '{ref}' ignored", ref=ref)

        for pose in ctx.placements.poses:
            source = ctx.db.source_component.insert(name=pose.ref, footprint=pose.image_id)
            ctx.ref_to_source_component_id[pose.ref] = source.source_component_id
            ctx.db.pcb_component.insert(
                pcb_component_id=pose.component_id,
                source_component_id=source.source_component_id,
                center=Point(x=pose.x, y=pose.y),
                layer=pose.layer,
                rotation=pose.rotation,
            )
        return self.done()


class CollectPadsStage(ConverterStage):
    """Creates ports and pads for every pin of every placed component."""

    def step(self) -> bool:
        ctx = self.ctx
        transform = ctx.require_transform(self.name)
        catalog = ctx.catalog or FootprintCatalog()
        db = ctx.db

        for pose in ctx.placements.poses:
            footprint = catalog.footprint(pose.image_id)
            if footprint is None:
                ctx.warn(
                    WarningKind.UNRESOLVED_REFERENCE,
                    f"Component '{pose.ref}' uses unknown image '{pose.image_id}'",
                    ref=pose.ref,
                    image=pose.image_id,
                )
                continue

            bounds: list[tuple[float, float, float, float]] = []
            for pin in footprint.pins:
                pad = resolve_pad(pose, pin, catalog.padstack(pin.padstack_id), transform)
                ctx.pads.append(pad)
                bounds.append(pad.bounds())

                pin_ref = f"{pose.ref}-{pin.pin_id}"
                source_port = db.source_port.insert(
                    source_component_id=ctx.ref_to_source_component_id.get(pose.ref),
                    name=pin_ref,
                    pin_number=parse_pin_number(pin.pin_id),
                    port_hints=[pin.pin_id],
                )
                port = db.pcb_port.insert(
                    pcb_component_id=pose.component_id,
                    source_port_id=source_port.source_port_id,
                    x=pad.x,
                    y=pad.y,
                    layers=pad.layers,
                )
                element_type, fields = _pad_record(pad)
                db.table(element_type).insert(
                    pcb_component_id=pose.component_id,
                    pcb_port_id=port.pcb_port_id,
                    port_hints=[pin.pin_id],
                    **fields,
                )
                ctx.pin_ref_to_port_id[pin_ref] = port.pcb_port_id
                ctx.port_id_to_source_port_id[port.pcb_port_id] = source_port.source_port_id

            if bounds:
                db.pcb_component.update(
                    pose.component_id,
                    width=max(b[2] for b in bounds) - min(b[0] for b in bounds),
                    height=max(b[3] for b in bounds) - min(b[1] for b in bounds),
                )

        logger.debug("Created %d pads", len(ctx.pads))
        return self.done()


class CollectNetsStage(ConverterStage):
    """Creates ``source_net`` records and a ``source_trace`` per connected net."""

    def step(self) -> bool:
        ctx = self.ctx
        table = build_net_table(ctx.design.network, ctx.pin_ref_to_port_id)
        ctx.net_table = table

        for net_name, pin_ref in table.unresolved:
            ctx.warn(
                WarningKind.UNRESOLVED_REFERENCE,
                f"Net '{net_name}' references unknown pin '{pin_ref}'",
                net=net_name,
                pin=pin_ref,
            )

        for net_name, net_id in table.net_name_to_id.items():
            ctx.db.source_net.insert(source_net_id=net_id, name=net_name)

        for net_id, port_ids in table.connections.items():
            trace = ctx.db.source_trace.insert(
                connected_source_port_ids=[ctx.port_id_to_source_port_id[p] for p in port_ids],
                connected_source_net_ids=[net_id],
            )
            ctx.net_name_to_source_trace_id[table.net_name(net_id)] = trace.source_trace_id
        return self.done()


class CollectTracesStage(ConverterStage):
    """Stitches the design's pre-routed wiring into traces attached to pads."""

    def step(self) -> bool:
        ctx = self.ctx
        transform = ctx.require_transform(self.name)
        options = ctx.options

        routing = extract_dsn_wiring(ctx.design, transform, ctx.via_catalog, options.default_via_size)
        ctx.routing = routing
        if not routing.segment_count and not routing.via_count and not routing.skipped:
            return self.done()

        _record_skipped(ctx, routing)
        _insert_vias(ctx, routing)

        locator = _port_locator(ctx)
        ctx.chains = stitch_routes(
            routing,
            tolerance=options.tolerance,
            terminal=terminal_test(ctx.options, locator),
            max_iterations=options.max_iterations,
        )
        chains = [chain for net_chains in ctx.chains.values() for chain in net_chains]
        ctx.reconciled = reconcile_chains(chains, locator)
        for chain in chains:
            _insert_chain(ctx, chain)
        return self.done()


# ---------------------------------------------------------------------------
# SES stages
# ---------------------------------------------------------------------------


class InitializeSesContextStage(ConverterStage):
    """
    Coordinate transform and via sizes for a session.

    With a converted board in the context the routes are overlaid in the
    board's coordinate space; otherwise they are only scaled to mm.
    """

    def step(self) -> bool:
        ctx = self.ctx
        session = ctx.session
        default = ctx.options.ses_default_resolution

        if ctx.board_transform is not None:
            ctx.transform = resolve_overlay_transform(session, ctx.board_transform, default)
        else:
            ctx.transform = resolve_ses_transform(session, default)

        ctx.via_catalog = session_via_catalog(session, ctx.design)
        return self.done()


class CollectSesRoutesStage(ConverterStage):
    """Inserts the session's vias and one raw ``pcb_trace`` per wire."""

    def step(self) -> bool:
        ctx = self.ctx
        transform = ctx.require_transform(self.name)

        routing = extract_ses_routes(
            ctx.session, transform, ctx.via_catalog, ctx.options.default_via_size
        )
        ctx.routing = routing
        _record_skipped(ctx, routing)
        _insert_vias(ctx, routing)

        for net, segments in routing.segments_by_net.items():
            ids = ctx.raw_trace_ids_by_net.setdefault(net, [])
            for segment in segments:
                route = segment_route(segment)
                trace = ctx.db.pcb_trace.insert(
                    net_name=net or None, route=route, trace_length=route_length(route)
                )
                ids.append(trace.pcb_trace_id)

        logger.debug(
            "Collected %d wires and %d vias from %d nets",
            routing.segment_count,
            routing.via_count,
            len(routing.nets()),
        )
        return self.done()


class GroupWiresIntoTracesStage(ConverterStage):
    """Replaces each net's raw wire traces with stitched traces."""

    def step(self) -> bool:
        ctx = self.ctx
        routing = ctx.routing
        if routing is None:
            return self.done()
        options = ctx.options
        locator = _port_locator(ctx)
        terminal = terminal_test(ctx.options, locator)

        for net, segments in routing.segments_by_net.items():
            for trace_id in ctx.raw_trace_ids_by_net.pop(net, []):
                ctx.db.pcb_trace.delete(trace_id)
            chains = stitch_net(
                segments,
                routing.vias_by_net.get(net, ()),
                tolerance=options.tolerance,
                terminal=terminal,
                max_iterations=options.max_iterations,
                net=net,
            )
            ctx.chains[net] = chains
            for chain in chains:
                _insert_chain(ctx, chain)
        return self.done()


class PcbStitchTraceStage(ConverterStage):
    """
    Merges ``pcb_trace`` records of a net that still share endpoints.

    Only same-layer joins are made. A net's traces are replaced only when
    stitching reduces their number.
    """

    def step(self) -> bool:
        ctx = self.ctx
        db = ctx.db
        by_net: dict[str, list] = {}
        for trace in db.pcb_trace:
            by_net.setdefault(trace.net_name or "", []).append(trace)

        for net, traces in by_net.items():
            if len(traces) < 2:
                continue
            chains = stitch_traces(
                [t.route for t in traces],
                tolerance=ctx.options.tolerance,
                max_iterations=ctx.options.max_iterations,
                net=net,
            )
            if len(chains) >= len(traces):
                continue
            for trace in traces:
                db.pcb_trace.delete(trace.pcb_trace_id)
            for chain in chains:
                _insert_chain(ctx, chain, traces[chain.members[0]].source_trace_id)
            logger.debug("Net %s: merged %d traces into %d", net, len(traces), len(chains))
        return self.done()


class PadTraceReconcileStage(ConverterStage):
    """Tags trace ends with the ports of the pads they land on."""

    def step(self) -> bool:
        ctx = self.ctx
        locator = _port_locator(ctx)
        if not len(locator):
            return self.done()

        traces = [
            t for t in ctx.db.pcb_trace if any(isinstance(p, WireRoutePoint) for p in t.route)
        ]
        chains = [StitchedChain(t.net_name or "", list(t.route)) for t in traces]
        ctx.reconciled = reconcile_chains(chains, locator)
        for trace, chain in zip(traces, chains):
            ctx.db.pcb_trace.update(trace.pcb_trace_id, route=chain.route)

        logger.debug(
            "Reconciled %d traces, %d hanging",
            len(ctx.reconciled),
            len(ctx.reconciled.hanging),
        )
        return self.done()


DSN_STAGES: list[type[ConverterStage]] = [
    InitializeDsnContextStage,
    CollectBoardInfoStage,
    CollectComponentsStage,
    CollectPadsStage,
    CollectNetsStage,
    CollectTracesStage,
]

SES_STAGES: list[type[ConverterStage]] = [
    InitializeSesContextStage,
    CollectSesRoutesStage,
    GroupWiresIntoTracesStage,
    PcbStitchTraceStage,
    PadTraceReconcileStage,
]
