"""
Design-unit to millimeter transforms.

A Specctra file stores integer design units; the circuit graph is in mm.
The map is a uniform scale plus an optional translation that centers the
board outline on the origin::

    x_mm = x * scale + tx
    y_mm = y * scale + ty

DSN files get both parts. A SES file converted on its own is only scaled.
When SES routes overlay a DSN board, they use the SES scale with the DSN
translation, so the two coordinate spaces line up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..specctra import SpecctraDesign, SpecctraSession
from ..units import Resolution, unit_scale

logger = logging.getLogger(__name__)

DSN_DEFAULT_RESOLUTION = Resolution("um", 1.0)
SES_DEFAULT_RESOLUTION = Resolution("mil", 1000.0)


@dataclass(frozen=True)
class AffineTransform:
    """Uniform scale followed by a translation in mm space."""

    scale: float
    tx: float = 0.0
    ty: float = 0.0

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (x * self.scale + self.tx, y * self.scale + self.ty)

    def scale_length(self, value: float) -> float:
        """Scale a length (width, diameter); translation does not apply."""
        return value * self.scale

    def with_scale(self, scale: float) -> AffineTransform:
        """Same mm-space translation, different unit scale."""
        return AffineTransform(scale, self.tx, self.ty)


def bounding_center(points: Sequence[tuple[float, float]]) -> Optional[tuple[float, float]]:
    """Center of the axis-aligned bounding box, None for no points."""
    if not points:
        return None
    arr = np.asarray(points, dtype=float)
    lo = arr.min(axis=0)
    hi = arr.max(axis=0)
    return (float((lo[0] + hi[0]) / 2), float((lo[1] + hi[1]) / 2))


def _placement_points(design: SpecctraDesign) -> list[tuple[float, float]]:
    points = []
    if design.placement is None:
        return points
    for group in design.placement.groups:
        for place in group.places:
            if place.x is not None and place.y is not None:
                points.append((place.x, place.y))
    return points


def resolve_dsn_transform(
    design: SpecctraDesign,
    center: bool = True,
    default: Resolution = DSN_DEFAULT_RESOLUTION,
) -> AffineTransform:
    """
    Build the DSN design-unit to mm transform.

    Args:
        design: Parsed design file
        center: Translate the board's bounding box center to the origin.
            The box comes from the boundary outline, or from the placement
            coordinates when there is no boundary.
        default: Resolution used when the file declares none

    Returns:
        The transform
    """
    resolution = design.resolution
    if resolution is None:
        logger.debug("DSN has no resolution, assuming %s %g", default.unit, default.value)
        resolution = default
    scale = unit_scale(resolution.unit, resolution.value)

    if not center:
        return AffineTransform(scale)

    boundary = design.boundary
    points = boundary.points() if boundary is not None else []
    if not points:
        points = _placement_points(design)
    board_center = bounding_center(points)
    if board_center is None:
        return AffineTransform(scale)

    cx, cy = board_center
    return AffineTransform(scale, -cx * scale, -cy * scale)


def session_resolution(
    session: SpecctraSession, default: Resolution = SES_DEFAULT_RESOLUTION
) -> Resolution:
    """Route resolution, then placement resolution, then ``default``."""
    resolution = session.resolution
    if resolution is None:
        logger.debug("SES has no resolution, assuming %s %g", default.unit, default.value)
        return default
    return resolution


def resolve_ses_transform(
    session: SpecctraSession, default: Resolution = SES_DEFAULT_RESOLUTION
) -> AffineTransform:
    """Scale-only transform for a session file converted on its own."""
    resolution = session_resolution(session, default)
    return AffineTransform(unit_scale(resolution.unit, resolution.value))


def resolve_overlay_transform(
    session: SpecctraSession,
    board_transform: AffineTransform,
    default: Resolution = SES_DEFAULT_RESOLUTION,
) -> AffineTransform:
    """
    Transform for SES routes drawn on top of an already converted DSN board.

    Uses the session's own scale (its resolution may differ from the
    design's) and the board's mm-space translation.
    """
    resolution = session_resolution(session, default)
    return board_transform.with_scale(unit_scale(resolution.unit, resolution.value))
