"""
Shared state of a conversion run.

Stages read their inputs from and write their outputs to a
``ConverterContext``; only stages touch the circuit store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, Optional

from ..circuit import CircuitDb
from ..exceptions import (
    MalformedPrimitiveError,
    MissingTransformError,
    UnresolvedReferenceError,
)
from ..units import Resolution
from .report import ConversionReport, ConversionWarning, WarningKind

if TYPE_CHECKING:
    from ..config import Config
    from ..reconcile import ReconciledTraces
    from ..specctra import SpecctraDesign, SpecctraSession
    from ..stitch import StitchedChain
    from .footprints import FootprintCatalog
    from .nets import NetTable
    from .placement import PlacementTable, ResolvedPad
    from .segments import RoutingTable
    from .transform import AffineTransform

logger = logging.getLogger(__name__)

_STRICT_ERRORS = {
    WarningKind.UNRESOLVED_REFERENCE: UnresolvedReferenceError,
    WarningKind.MALFORMED_PRIMITIVE: MalformedPrimitiveError,
}


@dataclass
class ConvertOptions:
    """Tunable behavior of the converters (see ``[stitch]``/``[convert]`` config)."""

    tolerance: float = 0.001
    port_match_tolerance: float = 0.01
    max_iterations: Optional[int] = None
    prefer_port_branches: bool = True
    refine_pad_shapes: bool = False
    dsn_default_resolution: Resolution = field(default_factory=lambda: Resolution("um", 1.0))
    ses_default_resolution: Resolution = field(default_factory=lambda: Resolution("mil", 1000.0))
    center_board: bool = True
    fallback_pad_diameter: float = 1000.0
    via_outer_diameter: float = 0.6
    via_hole_diameter: float = 0.3
    strict: bool = False

    @classmethod
    def from_config(cls, config: Config, **overrides: Any) -> ConvertOptions:
        """Options from a loaded config; keyword overrides win."""
        options = cls(
            tolerance=config.stitch.tolerance,
            port_match_tolerance=config.stitch.port_match_tolerance,
            max_iterations=config.stitch.max_iterations,
            prefer_port_branches=config.stitch.prefer_port_branches,
            refine_pad_shapes=config.stitch.refine_pad_shapes,
            dsn_default_resolution=Resolution(
                config.convert.dsn_default_unit, config.convert.dsn_default_resolution
            ),
            ses_default_resolution=Resolution(
                config.convert.ses_default_unit, config.convert.ses_default_resolution
            ),
            center_board=config.convert.center_board,
            fallback_pad_diameter=config.convert.fallback_pad_diameter,
            via_outer_diameter=config.convert.via_outer_diameter,
            via_hole_diameter=config.convert.via_hole_diameter,
            strict=config.convert.strict,
        )
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise TypeError(f"Unknown option(s) for {cls.__name__}: {', '.join(unknown)}")
        for key, value in overrides.items():
            if value is not None:
                setattr(options, key, value)
        return options

    @property
    def default_via_size(self) -> tuple[float, float]:
        return (self.via_outer_diameter, self.via_hole_diameter)


@dataclass
class ConverterContext:
    """Everything the stages of one conversion share."""

    db: CircuitDb = field(default_factory=CircuitDb)
    options: ConvertOptions = field(default_factory=ConvertOptions)
    design: Optional[SpecctraDesign] = None
    session: Optional[SpecctraSession] = None

    transform: Optional[AffineTransform] = None
    # DSN board transform the SES routes must overlay, if any
    board_transform: Optional[AffineTransform] = None

    catalog: Optional[FootprintCatalog] = None
    via_catalog: dict[str, float] = field(default_factory=dict)
    placements: Optional[PlacementTable] = None
    pads: list[ResolvedPad] = field(default_factory=list)
    ref_to_source_component_id: dict[str, str] = field(default_factory=dict)
    pin_ref_to_port_id: dict[str, str] = field(default_factory=dict)
    port_id_to_source_port_id: dict[str, str] = field(default_factory=dict)
    net_table: Optional[NetTable] = None
    net_name_to_source_trace_id: dict[str, str] = field(default_factory=dict)

    routing: Optional[RoutingTable] = None
    raw_trace_ids_by_net: dict[str, list[str]] = field(default_factory=dict)
    chains: dict[str, list[StitchedChain]] = field(default_factory=dict)
    reconciled: Optional[ReconciledTraces] = None

    warnings: list[ConversionWarning] = field(default_factory=list)
    completed_stages: list[str] = field(default_factory=list)

    def require_transform(self, stage: str) -> AffineTransform:
        """The coordinate transform, or a fatal error naming the stage."""
        if self.transform is None:
            raise MissingTransformError(
                "Transform matrix not initialized",
                context={"stage": stage},
                suggestions=["Run the context initialization stage first"],
            )
        return self.transform

    def warn(self, kind: WarningKind, message: str, **context: Any) -> None:
        """
        Record a recovered problem.

        In strict mode unresolved references and malformed primitives are
        raised instead.
        """
        if self.options.strict and kind in _STRICT_ERRORS:
            raise _STRICT_ERRORS[kind](message, context=context)
        logger.warning(message)
        self.warnings.append(ConversionWarning(kind=kind, message=message, context=context))

    def build_report(self) -> ConversionReport:
        report = ConversionReport(
            counts=self.db.counts(),
            warnings=list(self.warnings),
            stages=list(self.completed_stages),
        )
        if self.reconciled is not None:
            report.pad_attached_traces = len(self.reconciled.pad_attached)
            report.hanging_traces = len(self.reconciled.hanging)
        return report
