"""
specctra-tools: Specctra DSN/SES to circuit JSON conversion.

Reads autorouter design (``.dsn``) and session (``.ses``) files and builds
a flat circuit JSON board: components, pads, ports, nets, vias and traces.
The routing is stitched from the many small wire pieces an autorouter
emits into continuous traces, and trace ends are attached to the pads they
land on.

Modules:
    sexp: S-expression parsing
    specctra: Typed DSN/SES models and readers
    circuit: Circuit JSON element models and store
    convert: Staged converters
    stitch: Trace segment stitching
    reconcile: Attaching trace ends to pads

Quick Start::

    from specctra_tools import convert_dsn_and_ses, load_dsn

    elements = convert_dsn_and_ses(dsn_text, ses_text)

    design = load_dsn("board.dsn")
    converter = DsnToCircuitJsonConverter(design)
    converter.run_until_finished()
    print(converter.report().counts)
"""

__version__ = "0.3.0"

from specctra_tools.circuit import CircuitDb
from specctra_tools.config import Config
from specctra_tools.convert import (
    ConversionReport,
    ConvertOptions,
    DsnSesConverter,
    DsnToCircuitJsonConverter,
    SesToCircuitJsonConverter,
    convert_dsn_and_ses,
    convert_dsn_to_circuit_json,
    convert_ses_to_circuit_json,
)
from specctra_tools.exceptions import (
    ConfigurationError,
    ConversionError,
    FileFormatError,
    IterationLimitExceededError,
    MalformedPrimitiveError,
    MissingTransformError,
    ParseError,
    SpecctraToolsError,
    UnresolvedReferenceError,
)
from specctra_tools.reconcile import PortLocator, reconcile_chains
from specctra_tools.specctra import (
    SpecctraDesign,
    SpecctraSession,
    load_dsn,
    load_ses,
    parse_dsn,
    parse_ses,
)
from specctra_tools.stitch import SegmentStitcher, StitchedChain, stitch_net, stitch_routes

__all__ = [
    "__version__",
    # Readers
    "SpecctraDesign",
    "SpecctraSession",
    "load_dsn",
    "load_ses",
    "parse_dsn",
    "parse_ses",
    # Conversion
    "CircuitDb",
    "Config",
    "ConvertOptions",
    "ConversionReport",
    "DsnToCircuitJsonConverter",
    "SesToCircuitJsonConverter",
    "DsnSesConverter",
    "convert_dsn_to_circuit_json",
    "convert_ses_to_circuit_json",
    "convert_dsn_and_ses",
    # Stitching
    "SegmentStitcher",
    "StitchedChain",
    "stitch_net",
    "stitch_routes",
    "PortLocator",
    "reconcile_chains",
    # Exceptions
    "SpecctraToolsError",
    "ParseError",
    "FileFormatError",
    "ConfigurationError",
    "ConversionError",
    "MissingTransformError",
    "IterationLimitExceededError",
    "UnresolvedReferenceError",
    "MalformedPrimitiveError",
]
