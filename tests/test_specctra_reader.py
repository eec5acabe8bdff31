"""Tests for DSN/SES models and readers."""

import pytest

from specctra_tools.exceptions import FileFormatError
from specctra_tools.sexp import parse_string
from specctra_tools.specctra import (
    Padstack,
    Pin,
    Via,
    Wire,
    load_dsn,
    load_ses,
    parse_dsn,
    parse_ses,
)


class TestDesign:
    """Test DSN design parsing."""

    def test_resolution(self, minimal_dsn_text):
        """Resolution unit and value."""
        design = parse_dsn(minimal_dsn_text)
        assert design.name == "test_board.dsn"
        assert design.resolution.unit == "um"
        assert design.resolution.value == 10.0

    def test_structure(self, minimal_dsn_text):
        """Layers and boundary path."""
        structure = parse_dsn(minimal_dsn_text).structure
        assert [layer.name for layer in structure.layers] == ["F.Cu", "B.Cu"]
        assert structure.layers[1].index == 1
        path = structure.boundary.paths[0]
        assert path.layer == "pcb"
        assert len(path.coordinates) == 10

    def test_boundary_rect(self, tht_dsn_text):
        """Rect boundaries are read too."""
        boundary = parse_dsn(tht_dsn_text).boundary
        assert not boundary.is_empty
        rect = boundary.rects[0]
        assert (rect.x1, rect.y1, rect.x2, rect.y2) == (0, 0, 100000, -100000)
        assert boundary.points() == [(0, 0), (100000, -100000)]

    def test_placement(self, minimal_dsn_text):
        """Component groups and places."""
        placement = parse_dsn(minimal_dsn_text).placement
        group = placement.groups[0]
        assert group.image_id == "Resistor_SMD:R_0603"
        assert [p.ref for p in group.places] == ["R1", "R2"]
        r1 = group.places[0]
        assert (r1.x, r1.y, r1.side, r1.rotation) == (50000, -50000, "front", 0)

    def test_library(self, minimal_dsn_text):
        """Images, pins and padstacks."""
        library = parse_dsn(minimal_dsn_text).library
        image = library.images[0]
        assert [p.pin_id for p in image.pins] == ["1", "2"]
        assert image.pins[0].padstack_id == "Rect[T]Pad_1000x1000_um"
        assert image.pins[0].x == -7500

        padstack = library.padstack("Rect[T]Pad_1000x1000_um")
        assert padstack.shapes[0].kind == "rect"
        assert padstack.shapes[0].layer == "F.Cu"
        assert padstack.shapes[0].values == [-5000, -5000, 5000, 5000]
        assert library.padstack("missing") is None

    def test_network(self, minimal_dsn_text):
        """Nets and net classes."""
        network = parse_dsn(minimal_dsn_text).network
        assert [(n.name, n.pins) for n in network.nets] == [
            ("SIG", ["R1-2", "R2-1"]),
            ("GND", ["R1-1", "R2-2"]),
        ]
        net_class = network.classes[0]
        assert net_class.name == "kicad_default"
        assert net_class.nets == ["GND", "SIG"]
        assert net_class.via_padstack == "Via[0-1]_600:300_um"
        assert net_class.width == 2000

    def test_empty_wiring(self, minimal_dsn_text):
        """An empty wiring section has no wires."""
        wiring = parse_dsn(minimal_dsn_text).wiring
        assert wiring.wires == []
        assert wiring.vias == []

    def test_wiring(self, routed_dsn_text):
        """Wiring wires carry net and type."""
        wires = parse_dsn(routed_dsn_text).wiring.wires
        assert len(wires) == 3
        assert wires[0].net == "SIG"
        assert wires[0].wire_type == "route"
        assert wires[2].wire_type == "shove_fixed"

    def test_not_a_design(self, minimal_ses_text):
        """A session passed as a design is rejected."""
        with pytest.raises(FileFormatError, match="Not a Specctra DSN file"):
            parse_dsn(minimal_ses_text)


class TestPrimitives:
    """Test individual primitive models."""

    def test_pin_with_rotation(self):
        """(rotate r) may sit between padstack and pin id."""
        pin = Pin.from_sexp(parse_string("(pin Oval (rotate 90) A3 100 -200)"))
        assert (pin.padstack_id, pin.pin_id, pin.x, pin.y, pin.rotation) == (
            "Oval",
            "A3",
            100,
            -200,
            90,
        )

    def test_padstack_shapes(self):
        """Every primitive of every shape is collected."""
        padstack = Padstack.from_sexp(
            parse_string("(padstack P (shape (circle F.Cu 600)) (shape (circle B.Cu 600)) (attach off))")
        )
        assert padstack.layers == ["F.Cu", "B.Cu"]
        assert padstack.shapes[0].values == [600]

    def test_polyline_wire(self):
        """polyline_path wires keep their kind."""
        wire = Wire.from_sexp(parse_string("(wire (polyline_path F.Cu 100 0 0 10 0 10 0 10 10))"))
        assert wire.kind == "polyline_path"
        assert wire.coordinates == [0, 0, 10, 0, 10, 0, 10, 10]

    def test_wire_without_path(self):
        """A wire with no path is skipped."""
        assert Wire.from_sexp(parse_string("(wire (net GND))")) is None

    def test_via_missing_coordinates(self):
        """Vias need both coordinates."""
        assert Via.from_sexp(parse_string("(via V 100)")) is None
        via = Via.from_sexp(parse_string("(via V 100 200 (net GND))"))
        assert (via.x, via.y, via.net) == (100, 200, "GND")


class TestSession:
    """Test SES session parsing."""

    def test_routes(self, minimal_ses_text):
        """Route nets with wires and vias."""
        session = parse_ses(minimal_ses_text)
        assert session.base_design == "test_board.dsn"
        assert session.resolution.unit == "um"
        nets = {net.name: net for net in session.routes.nets}
        assert len(nets["SIG"].wires) == 2
        assert len(nets["GND"].wires) == 3
        assert [v.padstack_id for v in nets["GND"].vias] == ["Via[0-1]_600:300_um"] * 2

    def test_library_out(self, minimal_ses_text):
        """Via padstacks from library_out."""
        library = parse_ses(minimal_ses_text).routes.library_out
        assert library.padstacks[0].padstack_id == "Via[0-1]_600:300_um"

    def test_resolution_falls_back_to_placement(self):
        """Without a routes resolution, the placement one is used."""
        session = parse_ses("(session s (placement (resolution mil 10)) (routes (network_out)))")
        assert session.resolution.unit == "mil"

    def test_malformed_via_counted(self):
        """Vias without coordinates are counted, not kept."""
        session = parse_ses("(session s (routes (network_out (net A (via V 1)))))")
        net = session.routes.nets[0]
        assert net.vias == []
        assert net.malformed_vias == 1

    def test_not_a_session(self, minimal_dsn_text):
        """A design passed as a session is rejected."""
        with pytest.raises(FileFormatError):
            parse_ses(minimal_dsn_text)


class TestLoadFiles:
    """Test loading from disk."""

    def test_load_dsn(self, minimal_dsn):
        """load_dsn reads a file path."""
        assert load_dsn(minimal_dsn).network is not None

    def test_load_ses(self, minimal_ses):
        """load_ses accepts str paths too."""
        assert load_ses(str(minimal_ses)).routes is not None

    def test_file_format_error_names_source(self, minimal_dsn):
        """The source file appears in the error context."""
        with pytest.raises(FileFormatError) as exc_info:
            load_ses(minimal_dsn)
        assert exc_info.value.context["source"] == str(minimal_dsn)
