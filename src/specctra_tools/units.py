"""
Resolution units for Specctra files.

A Specctra ``(resolution <unit> <value>)`` declaration means "value design
units per one declared unit". Every coordinate in the file is an integer (or
float) count of design units, so the scale to millimeters is::

    scale = UNIT_TO_MM[unit] / value

Also provides the formatter that `stitch-report` uses to print lengths in
mm or mils.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "ResolutionUnit",
    "Resolution",
    "UnitSystem",
    "UnitFormatter",
    "MM_PER_MIL",
    "UNIT_TO_MM",
    "unit_scale",
]

logger = logging.getLogger(__name__)

MM_PER_MIL = 0.0254

UNIT_TO_MM: dict[str, float] = {
    "um": 0.001,
    "mil": MM_PER_MIL,
    "in": 25.4,
    "inch": 25.4,
    "mm": 1.0,
}


class ResolutionUnit(Enum):
    """Unit named in a ``(resolution ...)`` or ``(unit ...)`` declaration."""

    UM = "um"
    MIL = "mil"
    INCH = "in"
    MM = "mm"

    @classmethod
    def from_string(cls, value: str | None) -> ResolutionUnit | None:
        """Parse a unit name, returning None when it is not recognized."""
        if value is None:
            return None
        value = str(value).lower().strip()
        if value in ("um", "micron", "microns"):
            return cls.UM
        if value in ("mil", "mils", "thou"):
            return cls.MIL
        if value in ("in", "inch", "inches"):
            return cls.INCH
        if value in ("mm", "millimeter", "millimeters"):
            return cls.MM
        return None

    @property
    def mm(self) -> float:
        """Millimeters per one unit."""
        return UNIT_TO_MM[self.value]


@dataclass(frozen=True)
class Resolution:
    """A resolved ``(resolution unit value)`` pair."""

    unit: str
    value: float

    @property
    def scale(self) -> float:
        """Millimeters per design unit."""
        return unit_scale(self.unit, self.value)


def unit_scale(unit: str | None, resolution_value: float | None) -> float:
    """
    Millimeters per design unit for a resolution declaration.

    Unknown units are treated as mils, which is what autorouters assume when
    the unit is missing. A missing or zero resolution value counts as 1.

    Examples:
        >>> unit_scale("um", 1)
        0.001
        >>> unit_scale("mm", 1)
        1.0
    """
    parsed = ResolutionUnit.from_string(unit)
    if parsed is None:
        logger.warning("Unknown resolution unit %r, assuming mil", unit)
        parsed = ResolutionUnit.MIL
    if not resolution_value:
        resolution_value = 1
    return parsed.mm / float(resolution_value)


class UnitSystem(Enum):
    """Unit system for report output."""

    MM = "mm"
    MILS = "mils"

    @classmethod
    def from_string(cls, value: str | None) -> UnitSystem | None:
        if value is None:
            return None
        value = value.lower().strip()
        if value in ("mm", "millimeters", "millimeter"):
            return cls.MM
        if value in ("mils", "mil", "thou"):
            return cls.MILS
        return None


@dataclass
class UnitFormatter:
    """Formatter for mm lengths in the configured unit system.

    Examples:
        >>> UnitFormatter(UnitSystem.MM).format(0.254)
        '0.254 mm'
        >>> UnitFormatter(UnitSystem.MILS).format(0.254)
        '10.0 mils'
    """

    system: UnitSystem = UnitSystem.MM
    precision_mm: int = 3
    precision_mils: int = 1

    def format(self, value_mm: float, include_unit: bool = True) -> str:
        if self.system == UnitSystem.MILS:
            value = value_mm / MM_PER_MIL
            text = f"{value:.{self.precision_mils}f}"
            return f"{text} mils" if include_unit else text

        text = f"{value_mm:.{self.precision_mm}f}"
        return f"{text} mm" if include_unit else text
