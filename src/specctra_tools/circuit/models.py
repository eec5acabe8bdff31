"""Circuit JSON element models using Pydantic.

Every element is a flat record with a ``type`` discriminator and an id field
named ``<type>_id``. Coordinates are millimeters; layers are ``top`` or
``bottom``.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

LayerRef = Literal["top", "bottom"]


class Point(BaseModel):
    """A 2D point in millimeters."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class CircuitElement(BaseModel):
    """Base class for all circuit elements."""

    model_config = ConfigDict(validate_assignment=True)

    type: str

    @property
    def element_id(self) -> str:
        return getattr(self, f"{self.type}_id")

    def to_dict(self) -> dict:
        """Serialize for circuit JSON output."""
        return self.model_dump(mode="json", exclude_none=True)


class PcbBoard(CircuitElement):
    type: Literal["pcb_board"] = "pcb_board"
    pcb_board_id: str = ""
    center: Point
    width: float
    height: float
    thickness: float = 1.4
    num_layers: int = 2
    outline: list[Point] | None = None


class SourceComponent(CircuitElement):
    type: Literal["source_component"] = "source_component"
    source_component_id: str = ""
    name: str
    ftype: str = "simple_chip"
    footprint: str | None = None


class PcbComponent(CircuitElement):
    type: Literal["pcb_component"] = "pcb_component"
    pcb_component_id: str = ""
    source_component_id: str | None = None
    center: Point
    layer: LayerRef = "top"
    rotation: float = 0.0
    width: float = 0.0
    height: float = 0.0


class SourcePort(CircuitElement):
    type: Literal["source_port"] = "source_port"
    source_port_id: str = ""
    source_component_id: str | None = None
    name: str
    pin_number: int | None = None
    port_hints: list[str] = Field(default_factory=list)


class PcbPort(CircuitElement):
    type: Literal["pcb_port"] = "pcb_port"
    pcb_port_id: str = ""
    pcb_component_id: str | None = None
    source_port_id: str | None = None
    x: float
    y: float
    layers: list[LayerRef] = Field(default_factory=lambda: ["top"])


class PcbSmtPad(CircuitElement):
    """Surface mount pad.

    ``shape`` selects which size fields are meaningful: ``radius`` for circles,
    ``width``/``height`` (plus ``ccw_rotation``) for rects and pills,
    ``points`` for polygons.
    """

    type: Literal["pcb_smtpad"] = "pcb_smtpad"
    pcb_smtpad_id: str = ""
    pcb_component_id: str | None = None
    pcb_port_id: str | None = None
    shape: Literal["circle", "rect", "rotated_rect", "pill", "polygon"]
    x: float | None = None
    y: float | None = None
    radius: float | None = None
    width: float | None = None
    height: float | None = None
    ccw_rotation: float | None = None
    points: list[Point] | None = None
    layer: LayerRef = "top"
    port_hints: list[str] = Field(default_factory=list)


class PcbPlatedHole(CircuitElement):
    type: Literal["pcb_plated_hole"] = "pcb_plated_hole"
    pcb_plated_hole_id: str = ""
    pcb_component_id: str | None = None
    pcb_port_id: str | None = None
    shape: Literal["circle", "pill"] = "circle"
    x: float
    y: float
    outer_diameter: float | None = None
    hole_diameter: float | None = None
    outer_width: float | None = None
    outer_height: float | None = None
    hole_width: float | None = None
    hole_height: float | None = None
    layers: list[LayerRef] = Field(default_factory=lambda: ["top", "bottom"])
    port_hints: list[str] = Field(default_factory=list)


class SourceNet(CircuitElement):
    type: Literal["source_net"] = "source_net"
    source_net_id: str = ""
    name: str
    member_source_group_ids: list[str] = Field(default_factory=list)


class SourceTrace(CircuitElement):
    type: Literal["source_trace"] = "source_trace"
    source_trace_id: str = ""
    connected_source_port_ids: list[str] = Field(default_factory=list)
    connected_source_net_ids: list[str] = Field(default_factory=list)


class WireRoutePoint(BaseModel):
    """A point on a copper wire; consecutive wire points form straight pieces."""

    model_config = ConfigDict(frozen=True)

    route_type: Literal["wire"] = "wire"
    x: float
    y: float
    width: float
    layer: LayerRef
    start_pcb_port_id: str | None = None
    end_pcb_port_id: str | None = None


class ViaRoutePoint(BaseModel):
    """An instantaneous layer change at a fixed location."""

    model_config = ConfigDict(frozen=True)

    route_type: Literal["via"] = "via"
    x: float
    y: float
    from_layer: LayerRef = "top"
    to_layer: LayerRef = "bottom"


RoutePoint = Annotated[Union[WireRoutePoint, ViaRoutePoint], Field(discriminator="route_type")]


class PcbTrace(CircuitElement):
    type: Literal["pcb_trace"] = "pcb_trace"
    pcb_trace_id: str = ""
    source_trace_id: str | None = None
    net_name: str | None = None
    route: list[RoutePoint] = Field(default_factory=list)
    trace_length: float | None = None


class PcbVia(CircuitElement):
    type: Literal["pcb_via"] = "pcb_via"
    pcb_via_id: str = ""
    x: float
    y: float
    outer_diameter: float = 0.6
    hole_diameter: float = 0.3
    layers: list[LayerRef] = Field(default_factory=lambda: ["top", "bottom"])
    net_name: str | None = None


ELEMENT_TYPES: dict[str, type[CircuitElement]] = {
    "pcb_board": PcbBoard,
    "source_component": SourceComponent,
    "pcb_component": PcbComponent,
    "source_port": SourcePort,
    "pcb_port": PcbPort,
    "pcb_smtpad": PcbSmtPad,
    "pcb_plated_hole": PcbPlatedHole,
    "source_net": SourceNet,
    "source_trace": SourceTrace,
    "pcb_trace": PcbTrace,
    "pcb_via": PcbVia,
}
