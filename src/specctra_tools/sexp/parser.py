"""
Specctra S-expression parser.

A small recursive-descent reader for Specctra DSN and SES files that supports:
- The ``(string_quote <char>)`` directive, which changes the quote character
  for the rest of the file (KiCad writes ``(string_quote ")`` unquoted)
- Numeric atoms that remember their source text (pin ids such as ``01``)
- XPath-like queries for finding elements

Usage:
    from specctra_tools.sexp import parse_string

    doc = parse_string(text)
    resolution = doc.find("resolution")
    unit, value = resolution.get_atoms()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from ..exceptions import ParseError

Atom = Union[str, int, float]


@dataclass
class SExp:
    """
    S-expression node representing a Specctra element.

    Can be either:
    - An atom (string, number, or symbol)
    - A list starting with a keyword followed by children

    Examples:
        (place R1 1000 2000 front 90)
        -> SExp(name="place", children=[R1, 1000, 2000, front, 90])

        "Via[0-1]_600:300_um"
        -> SExp(name=None, value="Via[0-1]_600:300_um")
    """

    name: Optional[str] = None
    children: list[SExp] = field(default_factory=list)
    value: Optional[Atom] = None

    # Source text of numeric atoms
    _original_str: Optional[str] = None

    def __post_init__(self):
        if self.name is not None and self.value is not None:
            raise ValueError("SExp cannot have both name and value")

    @property
    def is_atom(self) -> bool:
        """True if this is a leaf node (string, number, symbol)."""
        return self.name is None and not self.children

    @property
    def is_list(self) -> bool:
        """True if this is a list node."""
        return self.name is not None or bool(self.children)

    @property
    def text(self) -> str:
        """Atom value as it appeared in the source."""
        if self._original_str is not None:
            return self._original_str
        if self.value is None:
            return ""
        return str(self.value)

    def __getitem__(self, key: Union[str, int]) -> SExp:
        """
        Access children by name or index.

        Examples:
            node["resolution"]   # First child named "resolution"
            node[0]              # First child
        """
        if isinstance(key, int):
            return self.children[key]

        for child in self.children:
            if child.name == key:
                return child

        child_names = sorted({c.name for c in self.children if c.name})
        available = f"Available: {', '.join(child_names)}" if child_names else "No named children"
        node_desc = f"'{self.name}'" if self.name else "root"
        raise KeyError(f"No child named '{key}' in {node_desc}. {available}")

    def get(self, key: str, default: Any = None) -> Optional[SExp]:
        """Get direct child by name, returning default if not found."""
        try:
            return self[key]
        except KeyError:
            return default

    def children_named(self, name: str) -> list[SExp]:
        """All direct children with the given keyword, in source order."""
        return [c for c in self.children if c.name == name]

    def find(self, name: str) -> Optional[SExp]:
        """Find first descendant (depth-first, self excluded) with the keyword."""
        for node in self.iter_all():
            if node is not self and node.name == name:
                return node
        return None

    def find_all(self, name: str) -> list[SExp]:
        """Find all descendants with the keyword."""
        return [node for node in self.iter_all() if node is not self and node.name == name]

    def iter_all(self) -> Iterator[SExp]:
        """Iterate over this node and all descendants."""
        yield self
        for child in self.children:
            yield from child.iter_all()

    def get_atoms(self) -> list[Atom]:
        """Get all atom values from direct children."""
        return [c.value for c in self.children if c.is_atom and c.value is not None]

    def atom_nodes(self) -> list[SExp]:
        """Direct atom children (keeps source text available)."""
        return [c for c in self.children if c.is_atom and c.value is not None]

    def get_first_atom(self) -> Optional[Atom]:
        """Get the first atom value from children."""
        for c in self.children:
            if c.is_atom:
                return c.value
        return None

    def get_string(self, index: int) -> Optional[str]:
        """Source text of the atom at ``index`` (atoms only are counted)."""
        atoms = self.atom_nodes()
        if index < len(atoms):
            return atoms[index].text
        return None

    def get_float(self, index: int) -> Optional[float]:
        """Numeric value of the atom at ``index``, None if absent or not numeric."""
        atoms = self.atom_nodes()
        if index < len(atoms):
            value = atoms[index].value
            if isinstance(value, (int, float)):
                return float(value)
        return None

    def numbers(self) -> list[float]:
        """All numeric atoms among direct children, in order."""
        return [float(v) for v in self.get_atoms() if isinstance(v, (int, float))]

    def __repr__(self) -> str:
        if self.is_atom:
            return f"SExp(value={self.value!r})"
        if self.name:
            return f"SExp(name={self.name!r}, children=[{len(self.children)} items])"
        return f"SExp(children=[{len(self.children)} items])"


def _is_keyword(s: str) -> bool:
    """Check if an unquoted token can head a list."""
    if not s:
        return False
    if s[0].isdigit() or s[0] in "-+.":
        return False
    return not any(c in s for c in " \t\n\r()")


class Parser:
    """S-expression parser for Specctra files."""

    def __init__(self, text: str, file_path: Optional[Union[str, Path]] = None):
        self.text = text
        self.pos = 0
        self.length = len(text)
        self.file_path = file_path
        self.quote_char = '"'

    def parse(self) -> SExp:
        """Parse the entire document."""
        self._skip_whitespace()
        result = self._parse_expr()
        self._skip_whitespace()
        if self.pos < self.length:
            self._error("Unexpected content after document end")
        return result

    def _error(self, message: str) -> None:
        line = self.text.count("\n", 0, self.pos) + 1
        column = self.pos - (self.text.rfind("\n", 0, self.pos) + 1) + 1
        raise ParseError(message, line=line, column=column, file_path=self.file_path)

    def _parse_expr(self) -> SExp:
        """Parse a single S-expression."""
        self._skip_whitespace()

        if self.pos >= self.length:
            self._error("Unexpected end of input")

        char = self.text[self.pos]

        if char == "(":
            return self._parse_list()
        if char == ")":
            self._error("Unexpected ')'")
        if char == self.quote_char:
            return SExp(value=self._parse_string())
        return self._parse_atom()

    def _parse_list(self) -> SExp:
        """Parse a list (keyword children...)."""
        self.pos += 1
        self._skip_whitespace()

        if self.pos >= self.length:
            self._error("Unexpected end of input in list")

        if self.text[self.pos] == ")":
            self.pos += 1
            return SExp()

        first = self._parse_expr()

        if first.is_atom and isinstance(first.value, str) and _is_keyword(first.text):
            node = SExp(name=first.value)
        else:
            node = SExp()
            node.children.append(first)

        if node.name == "string_quote":
            # The directive's argument is the bare quote character itself
            self._skip_whitespace()
            start = self.pos
            while self.pos < self.length and self.text[self.pos] not in " \t\n\r)":
                self.pos += 1
            quote = self.text[start : self.pos]
            if quote:
                self.quote_char = quote[0]
                node.children.append(SExp(value=quote))

        while True:
            self._skip_whitespace()

            if self.pos >= self.length:
                self._error("Unexpected end of input, expected ')'")

            if self.text[self.pos] == ")":
                self.pos += 1
                break

            node.children.append(self._parse_expr())

        return node

    def _parse_string(self) -> str:
        """Parse a quoted string."""
        quote = self.quote_char
        self.pos += 1

        result = []
        while self.pos < self.length:
            char = self.text[self.pos]

            if char == quote:
                self.pos += 1
                return "".join(result)
            if char == "\\" and self.pos + 1 < self.length and self.text[self.pos + 1] == quote:
                result.append(quote)
                self.pos += 2
                continue
            result.append(char)
            self.pos += 1

        self._error("Unterminated string")
        return ""

    def _parse_atom(self) -> SExp:
        """Parse an unquoted atom (symbol or number)."""
        start = self.pos

        while self.pos < self.length:
            char = self.text[self.pos]
            if char in " \t\n\r()":
                break
            self.pos += 1

        token = self.text[start : self.pos]

        try:
            if "." in token or "e" in token.lower():
                return SExp(value=float(token), _original_str=token)
            return SExp(value=int(token), _original_str=token)
        except ValueError:
            return SExp(value=token)

    def _skip_whitespace(self):
        """Skip whitespace."""
        while self.pos < self.length and self.text[self.pos] in " \t\n\r":
            self.pos += 1


def parse_string(text: str) -> SExp:
    """Parse an S-expression string."""
    return Parser(text).parse()


def parse_file(path: Union[str, Path]) -> SExp:
    """Parse an S-expression file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    return Parser(text, file_path=path).parse()
