"""
Footprint and padstack catalog.

Each padstack is reduced to one pad shape, taken from the first recognized
shape primitive in declaration order:

    (circle <layer> <diameter> [x y])          -> CirclePad
    (rect <layer> <x1> <y1> <x2> <y2>)         -> RectPad
    (polygon <layer> <aperture> x y x y ...)   -> PolygonPad
    (path <layer> <width> x1 y1 x2 y2)         -> PillPad (oval pads)

Shapes are kept in design units; ``scaled()`` converts them to mm. Geometry
for containment tests is built with shapely.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from shapely import affinity
from shapely.geometry import LineString, Polygon, box
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry.base import BaseGeometry

from ..specctra import Library, Padstack, ShapePrimitive

logger = logging.getLogger(__name__)

# Pad diameter in design units for padstacks without a usable shape
FALLBACK_PAD_DIAMETER = 1000.0

Bounds = tuple[float, float, float, float]


def rotate_point(x: float, y: float, degrees: float) -> tuple[float, float]:
    """Rotate (x, y) counter-clockwise about the origin."""
    if not degrees:
        return (x, y)
    theta = math.radians(degrees)
    c, s = math.cos(theta), math.sin(theta)
    return (x * c - y * s, x * s + y * c)


def _rotated_bounds(points: list[tuple[float, float]], rotation: float, pad: float = 0.0) -> Bounds:
    rotated = [rotate_point(x, y, rotation) for x, y in points]
    xs = [p[0] for p in rotated]
    ys = [p[1] for p in rotated]
    return (min(xs) - pad, min(ys) - pad, max(xs) + pad, max(ys) + pad)


def _place(geom: BaseGeometry, cx: float, cy: float, rotation: float, mirror: bool) -> BaseGeometry:
    if mirror:
        geom = affinity.scale(geom, xfact=-1.0, yfact=1.0, origin=(0, 0))
    if rotation:
        geom = affinity.rotate(geom, rotation, origin=(0, 0))
    return affinity.translate(geom, cx, cy)


@dataclass(frozen=True)
class CirclePad:
    diameter: float
    kind: str = field(default="circle", init=False)

    def bounds(self, rotation: float = 0.0) -> Bounds:
        r = self.diameter / 2
        return (-r, -r, r, r)

    def to_geometry(self, cx: float = 0.0, cy: float = 0.0, rotation: float = 0.0, mirror: bool = False) -> BaseGeometry:
        return ShapelyPoint(cx, cy).buffer(self.diameter / 2)

    def scaled(self, factor: float) -> CirclePad:
        return CirclePad(self.diameter * factor)


@dataclass(frozen=True)
class RectPad:
    width: float
    height: float
    kind: str = field(default="rect", init=False)

    def _corners(self) -> list[tuple[float, float]]:
        hw, hh = self.width / 2, self.height / 2
        return [(-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh)]

    def bounds(self, rotation: float = 0.0) -> Bounds:
        return _rotated_bounds(self._corners(), rotation)

    def to_geometry(self, cx: float = 0.0, cy: float = 0.0, rotation: float = 0.0, mirror: bool = False) -> BaseGeometry:
        geom = box(-self.width / 2, -self.height / 2, self.width / 2, self.height / 2)
        return _place(geom, cx, cy, rotation, mirror)

    def scaled(self, factor: float) -> RectPad:
        return RectPad(self.width * factor, self.height * factor)


@dataclass(frozen=True)
class PolygonPad:
    points: tuple[tuple[float, float], ...]
    kind: str = field(default="polygon", init=False)

    def bounds(self, rotation: float = 0.0) -> Bounds:
        return _rotated_bounds(list(self.points), rotation)

    def to_geometry(self, cx: float = 0.0, cy: float = 0.0, rotation: float = 0.0, mirror: bool = False) -> BaseGeometry:
        geom = Polygon(self.points)
        if not geom.is_valid:
            geom = geom.buffer(0)
        return _place(geom, cx, cy, rotation, mirror)

    def scaled(self, factor: float) -> PolygonPad:
        return PolygonPad(tuple((x * factor, y * factor) for x, y in self.points))


@dataclass(frozen=True)
class PillPad:
    """Oval pad: a path of ``width`` swept between two local endpoints.

    ``height`` is the overall length along the path (endpoint distance plus
    the rounded caps).
    """

    width: float
    height: float
    points: tuple[tuple[float, float], ...]
    kind: str = field(default="pill", init=False)

    @property
    def angle(self) -> float:
        """Direction of the pill's long axis in degrees (0 = along X)."""
        (x1, y1), (x2, y2) = self.points[0], self.points[-1]
        if x1 == x2 and y1 == y2:
            return 0.0
        return math.degrees(math.atan2(y2 - y1, x2 - x1))

    def bounds(self, rotation: float = 0.0) -> Bounds:
        return _rotated_bounds(list(self.points), rotation, pad=self.width / 2)

    def to_geometry(self, cx: float = 0.0, cy: float = 0.0, rotation: float = 0.0, mirror: bool = False) -> BaseGeometry:
        if len(set(self.points)) < 2:
            geom = ShapelyPoint(self.points[0]).buffer(self.width / 2)
        else:
            geom = LineString(self.points).buffer(self.width / 2)
        return _place(geom, cx, cy, rotation, mirror)

    def scaled(self, factor: float) -> PillPad:
        return PillPad(
            self.width * factor,
            self.height * factor,
            tuple((x * factor, y * factor) for x, y in self.points),
        )


PadShape = Union[CirclePad, RectPad, PolygonPad, PillPad]


def _pairs(values: list[float]) -> tuple[tuple[float, float], ...]:
    return tuple((values[i], values[i + 1]) for i in range(0, len(values) - 1, 2))


def shape_from_primitive(primitive: ShapePrimitive) -> Optional[PadShape]:
    """Pad shape for one primitive, None if it is not a usable pad shape."""
    kind = primitive.kind
    values = primitive.values

    if kind in ("circle", "circ"):
        if values and values[0] > 0:
            return CirclePad(values[0])
        return None

    if kind == "rect":
        if len(values) >= 4:
            x1, y1, x2, y2 = values[:4]
            width, height = abs(x2 - x1), abs(y2 - y1)
            if width > 0 and height > 0:
                return RectPad(width, height)
        return None

    if kind == "polygon":
        # First value is the aperture width
        points = _pairs(values[1:])
        if len(points) >= 3:
            return PolygonPad(points)
        return None

    if kind == "path":
        if len(values) >= 5:
            width = values[0]
            points = _pairs(values[1:])
            (x1, y1), (x2, y2) = points[0], points[-1]
            length = math.hypot(x2 - x1, y2 - y1)
            if width > 0:
                return PillPad(width, length + width, (points[0], points[-1]))
        return None

    return None


def shape_from_padstack(
    padstack: Padstack,
    fallback_diameter: float = FALLBACK_PAD_DIAMETER,
    on_fallback: Optional[Callable[[str], None]] = None,
) -> PadShape:
    """
    First recognized shape of a padstack, in declaration order.

    Args:
        padstack: Padstack definition
        fallback_diameter: Circle diameter (design units) used when no shape
            primitive is usable
        on_fallback: Called with a message when the fallback is applied

    Returns:
        Pad shape in design units
    """
    for primitive in padstack.shapes:
        shape = shape_from_primitive(primitive)
        if shape is not None:
            return shape

    message = (
        f"Padstack '{padstack.padstack_id}' has no usable shape, "
        f"using a {fallback_diameter:g} unit circle"
    )
    logger.warning(message)
    if on_fallback is not None:
        on_fallback(message)
    return CirclePad(fallback_diameter)


def layer_side(layer: Optional[str]) -> str:
    """``bottom`` for back-copper layer names, ``top`` otherwise."""
    if not layer:
        return "top"
    lowered = layer.lower()
    if "b.cu" in lowered or "bottom" in lowered or "back" in lowered:
        return "bottom"
    return "top"


def is_plated_padstack(padstack: Padstack) -> bool:
    """Through-hole padstacks: copper on both outer layers, or named as a hole."""
    name = padstack.padstack_id.lower()
    if "hole" in name or "through" in name:
        return True
    layers = {s.layer for s in padstack.shapes}
    if any(layer.startswith("*") for layer in layers):
        return True
    sides = {layer_side(layer) for layer in layers}
    return len(layers) > 1 and sides == {"top", "bottom"}


@dataclass(frozen=True)
class PadstackInfo:
    """Resolved padstack: shape in design units, copper side and plating."""

    padstack_id: str
    shape: PadShape
    layer: str = "top"
    plated: bool = False


@dataclass(frozen=True)
class FootprintPin:
    pin_id: str
    padstack_id: str
    x: float
    y: float
    rotation: float = 0.0


@dataclass
class Footprint:
    image_id: str
    pins: list[FootprintPin] = field(default_factory=list)


@dataclass
class FootprintCatalog:
    """Footprints by image id and padstacks by padstack id."""

    footprints: dict[str, Footprint] = field(default_factory=dict)
    padstacks: dict[str, PadstackInfo] = field(default_factory=dict)
    # (image_id, pin_id, padstack_id) for pins whose padstack is unknown
    unresolved_pins: list[tuple[str, str, str]] = field(default_factory=list)
    fallback_padstacks: list[str] = field(default_factory=list)

    @classmethod
    def from_library(
        cls,
        library: Optional[Library],
        fallback_diameter: float = FALLBACK_PAD_DIAMETER,
    ) -> FootprintCatalog:
        """
        Index a library section.

        Pins that reference an unknown padstack are left out of their
        footprint and listed in ``unresolved_pins``.
        """
        catalog = cls()
        if library is None:
            return catalog

        for padstack in library.padstacks:
            if not padstack.padstack_id or padstack.padstack_id in catalog.padstacks:
                continue
            fallbacks: list[str] = []
            shape = shape_from_padstack(padstack, fallback_diameter, fallbacks.append)
            if fallbacks:
                catalog.fallback_padstacks.append(padstack.padstack_id)
            first_layer = padstack.shapes[0].layer if padstack.shapes else None
            catalog.padstacks[padstack.padstack_id] = PadstackInfo(
                padstack_id=padstack.padstack_id,
                shape=shape,
                layer=layer_side(first_layer),
                plated=is_plated_padstack(padstack),
            )

        for image in library.images:
            if not image.image_id or image.image_id in catalog.footprints:
                continue
            footprint = Footprint(image.image_id)
            for pin in image.pins:
                if pin.padstack_id not in catalog.padstacks:
                    logger.warning(
                        "Unknown padstack %s for pin %s of %s",
                        pin.padstack_id,
                        pin.pin_id,
                        image.image_id,
                    )
                    catalog.unresolved_pins.append((image.image_id, pin.pin_id, pin.padstack_id))
                    continue
                footprint.pins.append(
                    FootprintPin(pin.pin_id, pin.padstack_id, pin.x, pin.y, pin.rotation)
                )
            catalog.footprints[image.image_id] = footprint

        logger.debug(
            "Footprint catalog: %d images, %d padstacks",
            len(catalog.footprints),
            len(catalog.padstacks),
        )
        return catalog

    def footprint(self, image_id: str) -> Optional[Footprint]:
        return self.footprints.get(image_id)

    def padstack(self, padstack_id: str) -> Optional[PadstackInfo]:
        return self.padstacks.get(padstack_id)
