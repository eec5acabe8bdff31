"""Specctra DSN/SES models and readers."""

from .design import (
    Boundary,
    BoundaryPath,
    BoundaryRect,
    Image,
    Layer,
    Library,
    Net,
    NetClass,
    Network,
    Padstack,
    Pin,
    Place,
    Placement,
    PlacementGroup,
    ShapePrimitive,
    SpecctraDesign,
    Structure,
    Via,
    Wire,
    Wiring,
)
from .reader import load_dsn, load_ses, parse_dsn, parse_ses
from .session import RouteNet, Routes, SpecctraSession

__all__ = [
    "Boundary",
    "BoundaryPath",
    "BoundaryRect",
    "Image",
    "Layer",
    "Library",
    "Net",
    "NetClass",
    "Network",
    "Padstack",
    "Pin",
    "Place",
    "Placement",
    "PlacementGroup",
    "RouteNet",
    "Routes",
    "ShapePrimitive",
    "SpecctraDesign",
    "SpecctraSession",
    "Structure",
    "Via",
    "Wire",
    "Wiring",
    "load_dsn",
    "load_ses",
    "parse_dsn",
    "parse_ses",
]
