"""Specctra SES data models.

A session file is the autorouter's answer to a design file::

    (session <name>
      (base_design <name>)
      (placement (resolution um 10) (component <image> (place ...)))
      (was_is)
      (routes
        (resolution um 10)
        (parser ...)
        (library_out (padstack "Via[0-1]_600:300_um" (shape (circle F.Cu 6000 0 0)) ...))
        (network_out
          (net GND
            (wire (path F.Cu 2500 x y x y ...))
            (via "Via[0-1]_600:300_um" x y)))))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..sexp import SExp
from ..units import Resolution
from .design import Library, Placement, Via, Wire, resolution_from_sexp


@dataclass
class RouteNet:
    """Wires and vias of one net in ``network_out``."""

    name: str
    wires: List[Wire] = field(default_factory=list)
    vias: List[Via] = field(default_factory=list)
    malformed_vias: int = 0

    @classmethod
    def from_sexp(cls, sexp: SExp) -> RouteNet:
        net = cls(name=sexp.get_string(0) or "")
        for child in sexp.children_named("wire"):
            if wire := Wire.from_sexp(child):
                net.wires.append(wire)
        for child in sexp.children_named("via"):
            if via := Via.from_sexp(child):
                net.vias.append(via)
            else:
                net.malformed_vias += 1
        return net


@dataclass
class Routes:
    """The ``routes`` section."""

    resolution: Optional[Resolution] = None
    library_out: Optional[Library] = None
    nets: List[RouteNet] = field(default_factory=list)

    @classmethod
    def from_sexp(cls, sexp: SExp) -> Routes:
        routes = cls(resolution=resolution_from_sexp(sexp.get("resolution")))
        if library_out := sexp.get("library_out"):
            routes.library_out = Library.from_sexp(library_out)
        for network_out in sexp.children_named("network_out"):
            routes.nets.extend(RouteNet.from_sexp(c) for c in network_out.children_named("net"))
        return routes


@dataclass
class SpecctraSession:
    """A parsed SES session file."""

    name: str = ""
    base_design: Optional[str] = None
    placement: Optional[Placement] = None
    routes: Optional[Routes] = None

    @classmethod
    def from_sexp(cls, sexp: SExp) -> SpecctraSession:
        session = cls(name=sexp.get_string(0) or "")
        if base := sexp.get("base_design"):
            session.base_design = base.get_string(0)
        if placement := sexp.get("placement"):
            session.placement = Placement.from_sexp(placement)
        if routes := sexp.get("routes"):
            session.routes = Routes.from_sexp(routes)
        return session

    @property
    def resolution(self) -> Optional[Resolution]:
        """Route resolution, falling back to the placement resolution."""
        if self.routes is not None and self.routes.resolution is not None:
            return self.routes.resolution
        if self.placement is not None:
            return self.placement.resolution
        return None
