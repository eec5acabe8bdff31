"""
In-memory circuit element store.

Elements are kept in insertion order across all types so ``to_json()``
reproduces the order in which converters produced them. Ids are
``<type>_<n>`` with a per-type counter that is never reused, so deleting and
reinserting traces yields fresh ids.

Usage:
    db = CircuitDb()
    port = db.pcb_port.insert(x=1.0, y=2.0, layers=["top"])
    db.pcb_port.get(port.pcb_port_id)
    db.to_json()
"""

from __future__ import annotations

import json
from typing import Any, Generic, Iterator, Optional, TypeVar

from .models import (
    ELEMENT_TYPES,
    CircuitElement,
    PcbBoard,
    PcbComponent,
    PcbPlatedHole,
    PcbPort,
    PcbSmtPad,
    PcbTrace,
    PcbVia,
    SourceComponent,
    SourceNet,
    SourcePort,
    SourceTrace,
)

E = TypeVar("E", bound=CircuitElement)


class ElementTable(Generic[E]):
    """All elements of one type."""

    def __init__(self, db: CircuitDb, element_type: str, model: type[E]):
        self._db = db
        self.element_type = element_type
        self.model = model
        self.id_field = f"{element_type}_id"
        self._records: dict[str, E] = {}
        self._counter = 0

    def _next_id(self) -> str:
        while True:
            element_id = f"{self.element_type}_{self._counter}"
            self._counter += 1
            if element_id not in self._records:
                return element_id

    def insert(self, **fields: Any) -> E:
        """
        Create an element and append it to the store.

        The id is assigned from the per-type counter unless the caller passes
        one explicitly (it must not be in use).
        """
        element_id = fields.get(self.id_field) or self._next_id()
        if element_id in self._records:
            raise ValueError(f"Duplicate {self.id_field}: {element_id}")
        fields[self.id_field] = element_id
        record = self.model(**fields)
        self._records[element_id] = record
        self._db._elements[element_id] = record
        return record

    def get(self, element_id: str) -> Optional[E]:
        return self._records.get(element_id)

    def list(self) -> list[E]:
        return list(self._records.values())

    def delete(self, element_id: str) -> bool:
        """Remove an element. Returns False if it did not exist."""
        if element_id not in self._records:
            return False
        del self._records[element_id]
        del self._db._elements[element_id]
        return True

    def update(self, element_id: str, **changes: Any) -> E:
        """Replace fields of an existing element in place."""
        record = self._records[element_id]
        for key, value in changes.items():
            setattr(record, key, value)
        return record

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[E]:
        return iter(list(self._records.values()))


class CircuitDb:
    """Typed tables over one flat list of circuit elements."""

    pcb_board: ElementTable[PcbBoard]
    source_component: ElementTable[SourceComponent]
    pcb_component: ElementTable[PcbComponent]
    source_port: ElementTable[SourcePort]
    pcb_port: ElementTable[PcbPort]
    pcb_smtpad: ElementTable[PcbSmtPad]
    pcb_plated_hole: ElementTable[PcbPlatedHole]
    source_net: ElementTable[SourceNet]
    source_trace: ElementTable[SourceTrace]
    pcb_trace: ElementTable[PcbTrace]
    pcb_via: ElementTable[PcbVia]

    def __init__(self):
        self._elements: dict[str, CircuitElement] = {}
        self._tables: dict[str, ElementTable] = {}
        for element_type, model in ELEMENT_TYPES.items():
            table = ElementTable(self, element_type, model)
            self._tables[element_type] = table
            setattr(self, element_type, table)

    def table(self, element_type: str) -> ElementTable:
        try:
            return self._tables[element_type]
        except KeyError:
            raise KeyError(f"Unknown circuit element type: {element_type}") from None

    def __len__(self) -> int:
        return len(self._elements)

    def elements(self) -> list[CircuitElement]:
        return list(self._elements.values())

    def counts(self) -> dict[str, int]:
        """Number of elements per type (types without elements omitted)."""
        return {name: len(table) for name, table in self._tables.items() if len(table)}

    def to_json(self) -> list[dict[str, Any]]:
        """The flat circuit JSON list."""
        return [element.to_dict() for element in self._elements.values()]

    def dumps(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_json(), indent=indent)
