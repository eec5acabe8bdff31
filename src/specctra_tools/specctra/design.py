"""Specctra DSN data models.

Typed views over the parsed S-expression tree of a design file::

    (pcb <name>
      (parser ...)
      (resolution um 10)
      (structure (layer F.Cu ...) (boundary (path pcb 0 x y ...)) ...)
      (placement (component <image> (place <ref> <x> <y> <side> <rot>) ...))
      (library (image <id> (pin <padstack> <pin_id> <x> <y>) ...) (padstack <id> (shape ...)))
      (network (net <name> (pins R1-1 C1-2)) (class ...))
      (wiring (wire (path F.Cu 250 x y x y) (net GND) (type route)) (via ...))
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..sexp import SExp
from ..units import Resolution


def _numbers_after(sexp: SExp, skip: int) -> list[float]:
    """Numeric atoms of ``sexp`` following the first ``skip`` atoms."""
    atoms = sexp.atom_nodes()[skip:]
    return [float(a.value) for a in atoms if isinstance(a.value, (int, float))]


def resolution_from_sexp(sexp: Optional[SExp]) -> Optional[Resolution]:
    """Read ``(resolution <unit> <value>)``; None if absent or incomplete."""
    if sexp is None:
        return None
    unit = sexp.get_string(0)
    value = sexp.get_float(1)
    if unit is None or value is None:
        return None
    return Resolution(unit=unit, value=value)


@dataclass
class BoundaryPath:
    """``(path <layer> <width> x y x y ...)`` in a boundary."""

    layer: str
    width: float
    coordinates: List[float] = field(default_factory=list)

    @classmethod
    def from_sexp(cls, sexp: SExp) -> BoundaryPath:
        return cls(
            layer=sexp.get_string(0) or "",
            width=sexp.get_float(1) or 0.0,
            coordinates=_numbers_after(sexp, 2),
        )


@dataclass
class BoundaryRect:
    """``(rect <layer> x1 y1 x2 y2)`` in a boundary."""

    layer: str
    x1: float
    y1: float
    x2: float
    y2: float

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Optional[BoundaryRect]:
        values = _numbers_after(sexp, 1)
        if len(values) < 4:
            return None
        return cls(sexp.get_string(0) or "", *values[:4])


@dataclass
class Boundary:
    """Board outline: any mix of paths and rects."""

    paths: List[BoundaryPath] = field(default_factory=list)
    rects: List[BoundaryRect] = field(default_factory=list)

    def extend_from_sexp(self, sexp: SExp) -> None:
        for child in sexp.children_named("path"):
            self.paths.append(BoundaryPath.from_sexp(child))
        for child in sexp.children_named("rect"):
            if rect := BoundaryRect.from_sexp(child):
                self.rects.append(rect)

    @property
    def is_empty(self) -> bool:
        return not self.paths and not self.rects

    def points(self) -> list[tuple[float, float]]:
        """All outline vertices in design units (rect corners included)."""
        pts: list[tuple[float, float]] = []
        for path in self.paths:
            coords = path.coordinates
            for i in range(0, len(coords) - 1, 2):
                pts.append((coords[i], coords[i + 1]))
        for rect in self.rects:
            pts.append((rect.x1, rect.y1))
            pts.append((rect.x2, rect.y2))
        return pts


@dataclass
class Layer:
    """``(layer <name> (type signal) (property (index 0)))``."""

    name: str
    type: str = "signal"
    index: Optional[int] = None

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Layer:
        layer = cls(name=sexp.get_string(0) or "")
        if type_ := sexp.get("type"):
            layer.type = type_.get_string(0) or "signal"
        if prop := sexp.get("property"):
            if index := prop.get("index"):
                value = index.get_float(0)
                layer.index = int(value) if value is not None else None
        return layer


@dataclass
class Structure:
    """Board structure: copper layers and outline."""

    layers: List[Layer] = field(default_factory=list)
    boundary: Optional[Boundary] = None

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Structure:
        structure = cls(layers=[Layer.from_sexp(c) for c in sexp.children_named("layer")])
        boundaries = sexp.children_named("boundary")
        if boundaries:
            structure.boundary = Boundary()
            for child in boundaries:
                structure.boundary.extend_from_sexp(child)
        return structure


@dataclass
class Place:
    """``(place <ref> <x> <y> <side> <rotation>)``."""

    ref: str
    x: Optional[float] = None
    y: Optional[float] = None
    side: str = "front"
    rotation: float = 0.0

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Place:
        place = cls(ref=sexp.get_string(0) or "")
        place.x = sexp.get_float(1)
        place.y = sexp.get_float(2)
        place.side = sexp.get_string(3) or "front"
        place.rotation = sexp.get_float(4) or 0.0
        return place


@dataclass
class PlacementGroup:
    """``(component <image_id> (place ...) ...)``: every instance of one footprint."""

    image_id: str
    places: List[Place] = field(default_factory=list)

    @classmethod
    def from_sexp(cls, sexp: SExp) -> PlacementGroup:
        return cls(
            image_id=sexp.get_string(0) or "",
            places=[Place.from_sexp(c) for c in sexp.children_named("place")],
        )


@dataclass
class Placement:
    """The placement section (DSN or SES)."""

    groups: List[PlacementGroup] = field(default_factory=list)
    resolution: Optional[Resolution] = None

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Placement:
        return cls(
            groups=[PlacementGroup.from_sexp(c) for c in sexp.children_named("component")],
            resolution=resolution_from_sexp(sexp.get("resolution")),
        )


@dataclass
class Pin:
    """``(pin <padstack_id> [(rotate r)] <pin_id> <x> <y>)``."""

    padstack_id: str
    pin_id: str
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Pin:
        pin = cls(
            padstack_id=sexp.get_string(0) or "",
            pin_id=sexp.get_string(1) or "",
            x=sexp.get_float(2) or 0.0,
            y=sexp.get_float(3) or 0.0,
        )
        if rotate := sexp.get("rotate"):
            pin.rotation = rotate.get_float(0) or 0.0
        return pin


@dataclass
class Image:
    """``(image <id> (pin ...) ...)``: a footprint definition."""

    image_id: str
    pins: List[Pin] = field(default_factory=list)

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Image:
        return cls(
            image_id=sexp.get_string(0) or "",
            pins=[Pin.from_sexp(c) for c in sexp.children_named("pin")],
        )


@dataclass
class ShapePrimitive:
    """One shape child of a padstack ``(shape ...)``.

    ``kind`` is the primitive keyword (circle, circ, rect, polygon, path, ...).
    ``values`` holds every numeric atom after the layer name, e.g. the
    diameter of a circle or the four corners of a rect.
    """

    kind: str
    layer: str
    values: List[float] = field(default_factory=list)

    @classmethod
    def from_sexp(cls, sexp: SExp) -> ShapePrimitive:
        return cls(
            kind=sexp.name or "",
            layer=sexp.get_string(0) or "",
            values=_numbers_after(sexp, 1),
        )


@dataclass
class Padstack:
    """``(padstack <id> (shape (circle F.Cu 600)) ... (attach off))``."""

    padstack_id: str
    shapes: List[ShapePrimitive] = field(default_factory=list)

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Padstack:
        padstack = cls(padstack_id=sexp.get_string(0) or "")
        for shape in sexp.children_named("shape"):
            for child in shape.children:
                if child.name:
                    padstack.shapes.append(ShapePrimitive.from_sexp(child))
        return padstack

    @property
    def layers(self) -> list[str]:
        return [s.layer for s in self.shapes]


@dataclass
class Library:
    """Footprint images and padstacks (``library`` or SES ``library_out``)."""

    images: List[Image] = field(default_factory=list)
    padstacks: List[Padstack] = field(default_factory=list)

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Library:
        return cls(
            images=[Image.from_sexp(c) for c in sexp.children_named("image")],
            padstacks=[Padstack.from_sexp(c) for c in sexp.children_named("padstack")],
        )

    def padstack(self, padstack_id: str) -> Optional[Padstack]:
        for padstack in self.padstacks:
            if padstack.padstack_id == padstack_id:
                return padstack
        return None


@dataclass
class Net:
    """``(net <name> (pins R1-1 C1-2 ...))``."""

    name: str
    pins: List[str] = field(default_factory=list)

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Net:
        net = cls(name=sexp.get_string(0) or "")
        for pins in sexp.children_named("pins"):
            net.pins.extend(a.text for a in pins.atom_nodes())
        return net


@dataclass
class NetClass:
    """``(class <name> <net> ... (circuit (use_via ...)) (rule (width w)))``."""

    name: str
    nets: List[str] = field(default_factory=list)
    via_padstack: Optional[str] = None
    width: Optional[float] = None

    @classmethod
    def from_sexp(cls, sexp: SExp) -> NetClass:
        atoms = [a.text for a in sexp.atom_nodes()]
        net_class = cls(name=atoms[0] if atoms else "", nets=[a for a in atoms[1:] if a])
        if circuit := sexp.get("circuit"):
            if use_via := circuit.get("use_via"):
                net_class.via_padstack = use_via.get_string(0)
        if rule := sexp.get("rule"):
            if width := rule.get("width"):
                net_class.width = width.get_float(0)
        return net_class


@dataclass
class Network:
    """Logical nets and net classes."""

    nets: List[Net] = field(default_factory=list)
    classes: List[NetClass] = field(default_factory=list)

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Network:
        return cls(
            nets=[Net.from_sexp(c) for c in sexp.children_named("net")],
            classes=[NetClass.from_sexp(c) for c in sexp.children_named("class")],
        )


@dataclass
class Wire:
    """A routed wire primitive.

    ``kind`` is ``path`` (flat ``x y`` pairs) or ``polyline_path`` (line
    pieces of four values each). ``net`` and ``wire_type`` are only present in
    DSN ``wiring``; SES wires inherit the net of their enclosing ``(net ...)``.
    """

    layer: str
    width: float
    coordinates: List[float] = field(default_factory=list)
    kind: str = "path"
    net: Optional[str] = None
    wire_type: Optional[str] = None

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Optional[Wire]:
        shape = None
        for child in sexp.children:
            if child.name in ("path", "polyline_path"):
                shape = child
                break
        if shape is None:
            return None

        wire = cls(
            layer=shape.get_string(0) or "",
            width=shape.get_float(1) or 0.0,
            coordinates=_numbers_after(shape, 2),
            kind=shape.name or "path",
        )
        if net := sexp.get("net"):
            wire.net = net.get_string(0)
        if type_ := sexp.get("type"):
            wire.wire_type = type_.get_string(0)
        return wire


@dataclass
class Via:
    """``(via <padstack_id> <x> <y> [(net N)] [(type ...)])``."""

    padstack_id: str
    x: float
    y: float
    net: Optional[str] = None
    via_type: Optional[str] = None

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Optional[Via]:
        x = sexp.get_float(1)
        y = sexp.get_float(2)
        if x is None or y is None:
            return None
        via = cls(padstack_id=sexp.get_string(0) or "", x=x, y=y)
        if net := sexp.get("net"):
            via.net = net.get_string(0)
        if type_ := sexp.get("type"):
            via.via_type = type_.get_string(0)
        return via


@dataclass
class Wiring:
    """Pre-routed wiring of a design file."""

    wires: List[Wire] = field(default_factory=list)
    vias: List[Via] = field(default_factory=list)
    # Count of via entries without usable coordinates
    malformed_vias: int = 0

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Wiring:
        wiring = cls()
        for child in sexp.children_named("wire"):
            if wire := Wire.from_sexp(child):
                wiring.wires.append(wire)
        for child in sexp.children_named("via"):
            if via := Via.from_sexp(child):
                wiring.vias.append(via)
            else:
                wiring.malformed_vias += 1
        return wiring


@dataclass
class SpecctraDesign:
    """A parsed DSN design file."""

    name: str = ""
    resolution: Optional[Resolution] = None
    structure: Optional[Structure] = None
    placement: Optional[Placement] = None
    library: Optional[Library] = None
    network: Optional[Network] = None
    wiring: Optional[Wiring] = None

    @classmethod
    def from_sexp(cls, sexp: SExp) -> SpecctraDesign:
        design = cls(name=sexp.get_string(0) or "")
        design.resolution = resolution_from_sexp(sexp.get("resolution"))
        if structure := sexp.get("structure"):
            design.structure = Structure.from_sexp(structure)
        if placement := sexp.get("placement"):
            design.placement = Placement.from_sexp(placement)
        if library := sexp.get("library"):
            design.library = Library.from_sexp(library)
        if network := sexp.get("network"):
            design.network = Network.from_sexp(network)
        if wiring := sexp.get("wiring"):
            design.wiring = Wiring.from_sexp(wiring)
        return design

    @property
    def boundary(self) -> Optional[Boundary]:
        if self.structure is None:
            return None
        return self.structure.boundary
