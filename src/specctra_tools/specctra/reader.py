"""
Load Specctra DSN and SES files into typed models.

Usage:
    from specctra_tools.specctra import load_dsn, parse_ses

    design = load_dsn("board.dsn")
    session = parse_ses(ses_text)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from ..exceptions import FileFormatError
from ..sexp import SExp, parse_file, parse_string
from .design import SpecctraDesign
from .session import SpecctraSession

logger = logging.getLogger(__name__)

DSN_ROOTS = ("pcb", "PCB")
SES_ROOTS = ("session", "SESSION")


def _check_root(doc: SExp, expected: tuple[str, ...], kind: str, source: str) -> None:
    if doc.name not in expected:
        raise FileFormatError(
            f"Not a Specctra {kind} file: root element is '{doc.name}'",
            context={"source": source, "expected": expected[0]},
            suggestions=[
                "DSN files start with (pcb ...), SES files with (session ...)",
            ],
        )


def design_from_sexp(doc: SExp, source: str = "<string>") -> SpecctraDesign:
    """Build a design model from an already parsed tree."""
    _check_root(doc, DSN_ROOTS, "DSN", source)
    design = SpecctraDesign.from_sexp(doc)
    logger.debug(
        "Loaded DSN %s: %d placement groups, %d nets",
        design.name or source,
        len(design.placement.groups) if design.placement else 0,
        len(design.network.nets) if design.network else 0,
    )
    return design


def session_from_sexp(doc: SExp, source: str = "<string>") -> SpecctraSession:
    """Build a session model from an already parsed tree."""
    _check_root(doc, SES_ROOTS, "SES", source)
    session = SpecctraSession.from_sexp(doc)
    logger.debug(
        "Loaded SES %s: %d routed nets",
        session.name or source,
        len(session.routes.nets) if session.routes else 0,
    )
    return session


def parse_dsn(text: str) -> SpecctraDesign:
    """Parse DSN text."""
    return design_from_sexp(parse_string(text))


def parse_ses(text: str) -> SpecctraSession:
    """Parse SES text."""
    return session_from_sexp(parse_string(text))


def load_dsn(path: Union[str, Path]) -> SpecctraDesign:
    """Load a DSN file from disk."""
    return design_from_sexp(parse_file(path), str(path))


def load_ses(path: Union[str, Path]) -> SpecctraSession:
    """Load a SES file from disk."""
    return session_from_sexp(parse_file(path), str(path))
