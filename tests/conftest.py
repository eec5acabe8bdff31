"""Pytest fixtures for specctra-tools tests."""

import pytest

# Two 0603 resistors on a 20 x 10 mm board, unrouted.
# resolution um 10: one design unit is 0.1 um, the board center (100000, -50000)
# becomes the origin, so R1 sits at (-5, 0) mm and R2 at (5, 0) mm.
MINIMAL_DSN = """(pcb "test_board.dsn"
  (parser
    (string_quote ")
    (space_in_quoted_tokens on)
    (host_cad "KiCad's Pcbnew")
    (host_version "9.0")
  )
  (resolution um 10)
  (unit um)
  (structure
    (layer F.Cu (type signal) (property (index 0)))
    (layer B.Cu (type signal) (property (index 1)))
    (boundary
      (path pcb 0  0 0  200000 0  200000 -100000  0 -100000  0 0)
    )
    (via "Via[0-1]_600:300_um")
    (rule (width 2000) (clearance 2000))
  )
  (placement
    (component "Resistor_SMD:R_0603"
      (place R1 50000 -50000 front 0 (PN 10k))
      (place R2 150000 -50000 front 0 (PN 10k))
    )
  )
  (library
    (image "Resistor_SMD:R_0603"
      (outline (path signal 1200 -15000 -8000 15000 -8000))
      (pin Rect[T]Pad_1000x1000_um 1 -7500 0)
      (pin Rect[T]Pad_1000x1000_um 2 7500 0)
    )
    (padstack Rect[T]Pad_1000x1000_um
      (shape (rect F.Cu -5000 -5000 5000 5000))
      (attach off)
    )
    (padstack "Via[0-1]_600:300_um"
      (shape (circle F.Cu 6000 0 0))
      (shape (circle B.Cu 6000 0 0))
      (attach off)
    )
  )
  (network
    (net SIG (pins R1-2 R2-1))
    (net GND (pins R1-1 R2-2))
    (class kicad_default "" GND SIG
      (circuit (use_via Via[0-1]_600:300_um))
      (rule (width 2000) (clearance 2000))
    )
  )
  (wiring)
)
"""

# The same board with SIG pre-routed in two pieces, plus a shove artifact
ROUTED_DSN = MINIMAL_DSN.replace(
    "  (wiring)\n",
    """  (wiring
    (wire (path F.Cu 2000 57500 -50000 100000 -50000) (net SIG) (type route))
    (wire (path F.Cu 2000 100000 -50000 142500 -50000) (net SIG) (type route))
    (wire (path F.Cu 2000 0 0 1000 0) (net SIG) (type shove_fixed))
  )
""",
)

# Routing for MINIMAL_DSN: SIG straight on top in two pieces, GND dropping to
# the bottom layer through two vias.
MINIMAL_SES = """(session "test_board.ses"
  (base_design "test_board.dsn")
  (placement
    (resolution um 10)
    (component "Resistor_SMD:R_0603"
      (place R1 50000 -50000 front 0)
      (place R2 150000 -50000 front 0)
    )
  )
  (was_is)
  (routes
    (resolution um 10)
    (parser
      (host_cad "KiCad's Pcbnew")
      (host_version "9.0")
    )
    (library_out
      (padstack "Via[0-1]_600:300_um"
        (shape (circle F.Cu 6000 0 0))
        (shape (circle B.Cu 6000 0 0))
        (attach off)
      )
    )
    (network_out
      (net SIG
        (wire (path F.Cu 2000 57500 -50000 100000 -50000))
        (wire (path F.Cu 2000 100000 -50000 142500 -50000))
      )
      (net GND
        (wire (path F.Cu 2000 42500 -50000 42500 -80000))
        (wire (path B.Cu 2000 42500 -80000 157500 -80000))
        (wire (path F.Cu 2000 157500 -80000 157500 -50000))
        (via "Via[0-1]_600:300_um" 42500 -80000)
        (via "Via[0-1]_600:300_um" 157500 -80000)
      )
    )
  )
)
"""

# Through-hole connector: round and oval plated pads
THT_DSN = """(pcb tht_board
  (resolution um 10)
  (structure
    (layer F.Cu (type signal))
    (layer B.Cu (type signal))
    (boundary (rect pcb 0 0 100000 -100000))
  )
  (placement
    (component Connector:J_1x02
      (place J1 50000 -50000 front 0)
    )
  )
  (library
    (image Connector:J_1x02
      (pin Round[A]Pad_1600_um 1 0 0)
      (pin Oval[A]Pad_1000x2000_um 2 25400 0)
    )
    (padstack Round[A]Pad_1600_um
      (shape (circle F.Cu 16000))
      (shape (circle B.Cu 16000))
      (attach off)
    )
    (padstack Oval[A]Pad_1000x2000_um
      (shape (path F.Cu 10000 0 -5000 0 5000))
      (shape (path B.Cu 10000 0 -5000 0 5000))
      (attach off)
    )
  )
  (network
    (net VCC (pins J1-1 J1-2))
  )
)
"""


@pytest.fixture
def minimal_dsn_text() -> str:
    """Unrouted two-resistor design."""
    return MINIMAL_DSN


@pytest.fixture
def routed_dsn_text() -> str:
    """Two-resistor design with pre-routed wiring."""
    return ROUTED_DSN


@pytest.fixture
def minimal_ses_text() -> str:
    """Session routing the two-resistor design."""
    return MINIMAL_SES


@pytest.fixture
def tht_dsn_text() -> str:
    """Through-hole connector design."""
    return THT_DSN


@pytest.fixture
def minimal_dsn(tmp_path):
    """Write the minimal design to a temporary file."""
    dsn_file = tmp_path / "test_board.dsn"
    dsn_file.write_text(MINIMAL_DSN)
    return dsn_file


@pytest.fixture
def minimal_ses(tmp_path):
    """Write the minimal session to a temporary file."""
    ses_file = tmp_path / "test_board.ses"
    ses_file.write_text(MINIMAL_SES)
    return ses_file


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Run with no user config and the project search stopped at tmp_path."""
    (tmp_path / ".git").mkdir()
    monkeypatch.setattr("specctra_tools.config.USER_CONFIG_PATH", tmp_path / "no-user-config.toml")
    monkeypatch.chdir(tmp_path)
    return tmp_path
