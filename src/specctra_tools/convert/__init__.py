"""
Specctra DSN/SES to circuit JSON conversion.

Usage:
    from specctra_tools.convert import convert_dsn_and_ses, DsnToCircuitJsonConverter

    elements = convert_dsn_and_ses(dsn_text, ses_text)
"""

from .board import (
    DsnSesConverter,
    DsnToCircuitJsonConverter,
    SesToCircuitJsonConverter,
    StagedConverter,
    convert_dsn_and_ses,
    convert_dsn_to_circuit_json,
    convert_files,
    convert_ses_to_circuit_json,
)
from .context import ConverterContext, ConvertOptions
from .footprints import (
    CirclePad,
    Footprint,
    FootprintCatalog,
    FootprintPin,
    PadShape,
    PadstackInfo,
    PillPad,
    PolygonPad,
    RectPad,
    shape_from_padstack,
    shape_from_primitive,
)
from .nets import NetTable, build_net_table, resolve_pin_ref
from .placement import ComponentPose, PlacementTable, ResolvedPad, resolve_pad, resolve_placements
from .report import ConversionReport, ConversionWarning, WarningKind
from .segments import (
    RoutingTable,
    Segment,
    SkippedPrimitive,
    ViaRecord,
    extract_dsn_wiring,
    extract_ses_routes,
    normalize_layer,
    resolve_via_size,
)
from .stages import (
    CollectBoardInfoStage,
    CollectComponentsStage,
    CollectNetsStage,
    CollectPadsStage,
    CollectSesRoutesStage,
    CollectTracesStage,
    ConverterStage,
    GroupWiresIntoTracesStage,
    InitializeDsnContextStage,
    InitializeSesContextStage,
    PadTraceReconcileStage,
    PcbStitchTraceStage,
)
from .transform import (
    AffineTransform,
    resolve_dsn_transform,
    resolve_overlay_transform,
    resolve_ses_transform,
)

__all__ = [
    # Converters
    "DsnSesConverter",
    "DsnToCircuitJsonConverter",
    "SesToCircuitJsonConverter",
    "StagedConverter",
    "convert_dsn_and_ses",
    "convert_dsn_to_circuit_json",
    "convert_files",
    "convert_ses_to_circuit_json",
    # Context and report
    "ConverterContext",
    "ConvertOptions",
    "ConversionReport",
    "ConversionWarning",
    "WarningKind",
    # Stages
    "ConverterStage",
    "InitializeDsnContextStage",
    "CollectBoardInfoStage",
    "CollectComponentsStage",
    "CollectPadsStage",
    "CollectNetsStage",
    "CollectTracesStage",
    "InitializeSesContextStage",
    "CollectSesRoutesStage",
    "GroupWiresIntoTracesStage",
    "PcbStitchTraceStage",
    "PadTraceReconcileStage",
    # Building blocks
    "AffineTransform",
    "resolve_dsn_transform",
    "resolve_ses_transform",
    "resolve_overlay_transform",
    "CirclePad",
    "RectPad",
    "PolygonPad",
    "PillPad",
    "PadShape",
    "PadstackInfo",
    "Footprint",
    "FootprintPin",
    "FootprintCatalog",
    "shape_from_padstack",
    "shape_from_primitive",
    "ComponentPose",
    "PlacementTable",
    "ResolvedPad",
    "resolve_placements",
    "resolve_pad",
    "NetTable",
    "build_net_table",
    "resolve_pin_ref",
    "RoutingTable",
    "Segment",
    "SkippedPrimitive",
    "ViaRecord",
    "extract_ses_routes",
    "extract_dsn_wiring",
    "normalize_layer",
    "resolve_via_size",
]
