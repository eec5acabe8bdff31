"""
Placement resolution: component poses and absolute pad positions.

A placed pad's world position is::

    center + rotate(mirror(pin_offset), component_rotation)

where ``mirror`` negates the local X offset for components on the back side.
The pad shape is rotated by the component rotation plus the pin's own
``(rotate r)``; on the back side the pin rotation is mirrored too.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..specctra import Placement
from .footprints import FootprintPin, PadShape, PadstackInfo, rotate_point
from .transform import AffineTransform

logger = logging.getLogger(__name__)


def side_to_layer(side: Optional[str]) -> str:
    """``back`` -> ``bottom``, anything else -> ``top``."""
    return "bottom" if (side or "").lower() == "back" else "top"


@dataclass(frozen=True)
class ComponentPose:
    """A placed component instance in mm."""

    component_id: str
    ref: str
    image_id: str
    x: float
    y: float
    rotation: float = 0.0
    layer: str = "top"

    @property
    def mirrored(self) -> bool:
        return self.layer == "bottom"


@dataclass
class PlacementTable:
    poses: list[ComponentPose] = field(default_factory=list)
    ref_to_component_id: dict[str, str] = field(default_factory=dict)
    image_to_component_ids: dict[str, list[str]] = field(default_factory=dict)
    duplicate_refs: list[str] = field(default_factory=list)


def resolve_placements(
    placement: Optional[Placement],
    transform: AffineTransform,
    id_prefix: str = "pcb_component",
) -> PlacementTable:
    """
    Assign every placed instance a pose and a stable id.

    Ids are ``<id_prefix>_<n>`` in placement order. The first placement of
    a duplicated reference wins; later ones are listed in ``duplicate_refs``.
    """
    table = PlacementTable()
    if placement is None:
        return table

    for group in placement.groups:
        if not group.image_id:
            continue
        component_ids = table.image_to_component_ids.setdefault(group.image_id, [])
        for place in group.places:
            if not place.ref:
                continue
            if place.ref in table.ref_to_component_id:
                logger.warning("Duplicate placement of %s ignored", place.ref)
                table.duplicate_refs.append(place.ref)
                continue

            x, y = transform.apply(place.x or 0.0, place.y or 0.0)
            component_id = f"{id_prefix}_{len(table.poses)}"
            pose = ComponentPose(
                component_id=component_id,
                ref=place.ref,
                image_id=group.image_id,
                x=x,
                y=y,
                rotation=place.rotation,
                layer=side_to_layer(place.side),
            )
            table.poses.append(pose)
            table.ref_to_component_id[place.ref] = component_id
            component_ids.append(component_id)

    logger.debug("Resolved %d component placements", len(table.poses))
    return table


@dataclass(frozen=True)
class ResolvedPad:
    """An absolute pad: position, orientation and shape in mm."""

    component_id: str
    pin_id: str
    x: float
    y: float
    rotation: float
    layer: str
    shape: PadShape
    plated: bool = False
    mirrored: bool = False

    @property
    def layers(self) -> list[str]:
        return ["top", "bottom"] if self.plated else [self.layer]

    def bounds(self) -> tuple[float, float, float, float]:
        """Absolute axis-aligned bounds of the pad outline."""
        if self.mirrored:
            minx, miny, maxx, maxy = self.to_geometry().bounds
            return (minx, miny, maxx, maxy)
        minx, miny, maxx, maxy = self.shape.bounds(self.rotation)
        return (self.x + minx, self.y + miny, self.x + maxx, self.y + maxy)

    def to_geometry(self):
        return self.shape.to_geometry(self.x, self.y, self.rotation, self.mirrored)


def resolve_pad(
    pose: ComponentPose,
    pin: FootprintPin,
    padstack: PadstackInfo,
    transform: AffineTransform,
) -> ResolvedPad:
    """Place one footprint pin of a component instance."""
    dx = transform.scale_length(pin.x)
    dy = transform.scale_length(pin.y)
    if pose.mirrored:
        dx = -dx
    rx, ry = rotate_point(dx, dy, pose.rotation)

    pin_rotation = -pin.rotation if pose.mirrored else pin.rotation
    layer = padstack.layer
    if pose.mirrored:
        layer = "top" if layer == "bottom" else "bottom"

    return ResolvedPad(
        component_id=pose.component_id,
        pin_id=pin.pin_id,
        x=pose.x + rx,
        y=pose.y + ry,
        rotation=(pose.rotation + pin_rotation) % 360,
        layer=layer,
        shape=padstack.shape.scaled(transform.scale),
        plated=padstack.plated,
        mirrored=pose.mirrored,
    )
