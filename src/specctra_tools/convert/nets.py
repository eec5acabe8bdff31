"""
Net and connectivity table.

Pin references in a DSN network look like ``<component ref>-<pin id>``. They
are matched against the port table built from placed pads; a reference that
does not match verbatim is retried with its first ``-`` replaced by ``_``.
Unmatched references are collected, never fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..specctra import Network

logger = logging.getLogger(__name__)


def resolve_pin_ref(pin_ref: str, pin_ref_to_port_id: Mapping[str, str]) -> Optional[str]:
    """Port id for a pin reference, trying the ``_`` separated form second."""
    port_id = pin_ref_to_port_id.get(pin_ref)
    if port_id is None and "-" in pin_ref:
        port_id = pin_ref_to_port_id.get(pin_ref.replace("-", "_", 1))
    return port_id


@dataclass
class NetTable:
    net_name_to_id: dict[str, str] = field(default_factory=dict)
    # Only nets with at least two resolved pins
    connections: dict[str, list[str]] = field(default_factory=dict)
    # (net name, pin reference) pairs that matched no port
    unresolved: list[tuple[str, str]] = field(default_factory=list)

    @property
    def unresolved_count(self) -> int:
        return len(self.unresolved)

    def net_name(self, net_id: str) -> Optional[str]:
        for name, nid in self.net_name_to_id.items():
            if nid == net_id:
                return name
        return None


def build_net_table(
    network: Optional[Network],
    pin_ref_to_port_id: Mapping[str, str],
    id_prefix: str = "source_net",
) -> NetTable:
    """
    Build net ids and the per-net port groups.

    Args:
        network: Network section of the design (None gives an empty table)
        pin_ref_to_port_id: ``"R1-1"`` style references to port ids
        id_prefix: Net ids are ``<id_prefix>_<n>`` in declaration order

    Returns:
        The net table
    """
    table = NetTable()
    if network is None:
        return table

    for net in network.nets:
        if not net.name or net.name in table.net_name_to_id:
            continue
        net_id = f"{id_prefix}_{len(table.net_name_to_id)}"
        table.net_name_to_id[net.name] = net_id

        port_ids: list[str] = []
        for pin_ref in net.pins:
            port_id = resolve_pin_ref(pin_ref, pin_ref_to_port_id)
            if port_id is None:
                table.unresolved.append((net.name, pin_ref))
                continue
            if port_id not in port_ids:
                port_ids.append(port_id)

        if len(port_ids) >= 2:
            table.connections[net_id] = port_ids

    if table.unresolved:
        logger.warning("%d pin references did not resolve to a port", len(table.unresolved))
    logger.debug(
        "Net table: %d nets, %d with connectivity",
        len(table.net_name_to_id),
        len(table.connections),
    )
    return table
