"""
Specctra to circuit JSON converters.

Usage:
    from specctra_tools.convert import convert_dsn_and_ses

    elements = convert_dsn_and_ses(dsn_text, ses_text)

    # Or step by step
    converter = DsnToCircuitJsonConverter(dsn_text)
    converter.run_until_finished()
    elements = converter.get_output()
    report = converter.report()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Union

from ..circuit import CircuitDb
from ..specctra import SpecctraDesign, SpecctraSession, load_dsn, load_ses, parse_dsn, parse_ses
from .context import ConverterContext, ConvertOptions
from .report import ConversionReport
from .stages import (
    DSN_STAGES,
    SES_STAGES,
    CollectTracesStage,
    ConverterStage,
)

logger = logging.getLogger(__name__)

DesignInput = Union[str, SpecctraDesign]
SessionInput = Union[str, SpecctraSession]


def _as_design(dsn: DesignInput) -> SpecctraDesign:
    return dsn if isinstance(dsn, SpecctraDesign) else parse_dsn(dsn)


def _as_session(ses: SessionInput) -> SpecctraSession:
    return ses if isinstance(ses, SpecctraSession) else parse_ses(ses)


class StagedConverter:
    """Runs a list of stages over one context."""

    stage_classes: list[type[ConverterStage]] = []

    def __init__(self, ctx: ConverterContext, stage_classes: Optional[list[type[ConverterStage]]] = None):
        self.ctx = ctx
        self.pipeline: list[ConverterStage] = [cls(ctx) for cls in (stage_classes or self.stage_classes)]
        self.current_stage_index = 0

    @property
    def current_stage(self) -> Optional[ConverterStage]:
        if self.current_stage_index < len(self.pipeline):
            return self.pipeline[self.current_stage_index]
        return None

    @property
    def finished(self) -> bool:
        return self.current_stage is None

    def step(self) -> bool:
        """Run the current stage to completion. Returns True while stages remain."""
        stage = self.current_stage
        if stage is None:
            return False
        stage.run_until_finished()
        self.current_stage_index += 1
        return not self.finished

    def run_until_finished(self) -> None:
        while self.step():
            pass

    @property
    def db(self) -> CircuitDb:
        return self.ctx.db

    def get_output(self) -> list[dict[str, Any]]:
        """Circuit JSON elements; runs any remaining stages first."""
        self.run_until_finished()
        return self.ctx.db.to_json()

    def get_output_string(self, indent: Optional[int] = 2) -> str:
        self.run_until_finished()
        return self.ctx.db.dumps(indent=indent)

    def report(self) -> ConversionReport:
        return self.ctx.build_report()


class DsnToCircuitJsonConverter(StagedConverter):
    """
    Converts a DSN design: board, components, pads, nets and any pre-routed
    wiring.

    Args:
        dsn: DSN text or a parsed design
        options: Conversion options (default: ``ConvertOptions()``)
        include_wiring: Stitch the design's ``wiring`` section into traces
    """

    stage_classes = DSN_STAGES

    def __init__(
        self,
        dsn: DesignInput,
        options: Optional[ConvertOptions] = None,
        include_wiring: bool = True,
    ):
        ctx = ConverterContext(options=options or ConvertOptions(), design=_as_design(dsn))
        stages = DSN_STAGES if include_wiring else [s for s in DSN_STAGES if s is not CollectTracesStage]
        super().__init__(ctx, stages)


class SesToCircuitJsonConverter(StagedConverter):
    """
    Converts the routes of an SES session into vias and stitched traces.

    On its own the session is only scaled to mm. Given ``board``, the context
    of an already run DSN conversion, the routes are written into that
    board's store in its coordinate space and their ends are attached to its
    pads.
    """

    stage_classes = SES_STAGES

    def __init__(
        self,
        ses: SessionInput,
        options: Optional[ConvertOptions] = None,
        board: Optional[ConverterContext] = None,
    ):
        session = _as_session(ses)
        if board is None:
            ctx = ConverterContext(options=options or ConvertOptions(), session=session)
        else:
            ctx = ConverterContext(
                db=board.db,
                options=options or board.options,
                design=board.design,
                session=session,
                board_transform=board.transform,
                catalog=board.catalog,
                placements=board.placements,
                pads=board.pads,
                ref_to_source_component_id=board.ref_to_source_component_id,
                pin_ref_to_port_id=board.pin_ref_to_port_id,
                port_id_to_source_port_id=board.port_id_to_source_port_id,
                net_table=board.net_table,
                net_name_to_source_trace_id=board.net_name_to_source_trace_id,
                warnings=board.warnings,
                completed_stages=board.completed_stages,
            )
        super().__init__(ctx)


class DsnSesConverter:
    """
    Converts a design and its routed session into one board.

    The DSN supplies the board, components, pads and nets. The SES supplies
    the routing, overlaid in the DSN coordinate space, with trace ends tagged
    by DSN port ids. The design's own ``wiring`` is superseded by the session.
    """

    def __init__(
        self,
        dsn: DesignInput,
        ses: SessionInput,
        options: Optional[ConvertOptions] = None,
    ):
        self.options = options or ConvertOptions()
        self.dsn_converter = DsnToCircuitJsonConverter(dsn, self.options, include_wiring=False)
        self._ses = ses
        self.ses_converter: Optional[SesToCircuitJsonConverter] = None

    @property
    def ctx(self) -> ConverterContext:
        return self.ses_converter.ctx if self.ses_converter else self.dsn_converter.ctx

    @property
    def finished(self) -> bool:
        return self.ses_converter is not None and self.ses_converter.finished

    def step(self) -> bool:
        if not self.dsn_converter.finished:
            self.dsn_converter.step()
            return True
        if self.ses_converter is None:
            self.ses_converter = SesToCircuitJsonConverter(
                self._ses, self.options, board=self.dsn_converter.ctx
            )
        return self.ses_converter.step()

    def run_until_finished(self) -> None:
        while self.step():
            pass

    @property
    def db(self) -> CircuitDb:
        return self.ctx.db

    def get_output(self) -> list[dict[str, Any]]:
        self.run_until_finished()
        return self.ctx.db.to_json()

    def get_output_string(self, indent: Optional[int] = 2) -> str:
        self.run_until_finished()
        return self.ctx.db.dumps(indent=indent)

    def report(self) -> ConversionReport:
        return self.ctx.build_report()


def convert_dsn_to_circuit_json(
    dsn: DesignInput, options: Optional[ConvertOptions] = None, **kwargs: Any
) -> list[dict[str, Any]]:
    """Convert DSN text (or a parsed design) to a circuit JSON element list."""
    return DsnToCircuitJsonConverter(dsn, options, **kwargs).get_output()


def convert_ses_to_circuit_json(
    ses: SessionInput, options: Optional[ConvertOptions] = None
) -> list[dict[str, Any]]:
    """Convert SES text (or a parsed session) to vias and traces in mm."""
    return SesToCircuitJsonConverter(ses, options).get_output()


def convert_dsn_and_ses(
    dsn: DesignInput, ses: SessionInput, options: Optional[ConvertOptions] = None
) -> list[dict[str, Any]]:
    """Convert a design and its session into one circuit JSON board."""
    return DsnSesConverter(dsn, ses, options).get_output()


def convert_files(
    dsn_path: Optional[Union[str, Path]] = None,
    ses_path: Optional[Union[str, Path]] = None,
    options: Optional[ConvertOptions] = None,
) -> StagedConverter | DsnSesConverter:
    """
    Build and run the converter matching the given files.

    Returns:
        The finished converter (for ``get_output()`` and ``report()``)

    Raises:
        ValueError: If neither path is given
    """
    if dsn_path is None and ses_path is None:
        raise ValueError("At least one of a DSN or SES file is required")

    design = load_dsn(dsn_path) if dsn_path else None
    session = load_ses(ses_path) if ses_path else None

    converter: StagedConverter | DsnSesConverter
    if design is not None and session is not None:
        converter = DsnSesConverter(design, session, options)
    elif design is not None:
        converter = DsnToCircuitJsonConverter(design, options)
    else:
        converter = SesToCircuitJsonConverter(session, options)

    logger.info("Converting %s", ", ".join(str(p) for p in (dsn_path, ses_path) if p))
    converter.run_until_finished()
    return converter
