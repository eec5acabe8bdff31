"""
S-expression parser for Specctra files.

Usage:
    from specctra_tools.sexp import SExp, parse_string, parse_file

    doc = parse_string(text)
    doc.find("resolution").get_atoms()
"""

from .parser import Parser, SExp, parse_file, parse_string

__all__ = [
    "SExp",
    "Parser",
    "parse_string",
    "parse_file",
]
