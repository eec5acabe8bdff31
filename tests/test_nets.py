"""Tests for the net and connectivity table."""

from specctra_tools.convert.nets import build_net_table, resolve_pin_ref
from specctra_tools.sexp import parse_string
from specctra_tools.specctra import Network

PORTS = {"R1-1": "pcb_port_0", "R1-2": "pcb_port_1", "R2-1": "pcb_port_2", "U1_3": "pcb_port_3"}


def _network(text: str) -> Network:
    return Network.from_sexp(parse_string(text))


class TestResolvePinRef:
    """Test pin reference lookup."""

    def test_exact(self):
        """Verbatim references resolve."""
        assert resolve_pin_ref("R1-2", PORTS) == "pcb_port_1"

    def test_underscore_retry(self):
        """The first '-' is retried as '_'."""
        assert resolve_pin_ref("U1-3", PORTS) == "pcb_port_3"

    def test_unresolved(self):
        """Unknown references give None."""
        assert resolve_pin_ref("U9-1", PORTS) is None
        assert resolve_pin_ref("nodash", PORTS) is None


class TestBuildNetTable:
    """Test net id assignment and connectivity."""

    def test_ids_in_declaration_order(self):
        """Net ids follow declaration order."""
        table = build_net_table(_network("(network (net B (pins R1-1 R2-1)) (net A (pins R1-2)))"), PORTS)
        assert table.net_name_to_id == {"B": "source_net_0", "A": "source_net_1"}
        assert table.net_name("source_net_1") == "A"
        assert table.net_name("source_net_9") is None

    def test_single_pin_net_has_no_connection(self):
        """Connectivity needs two resolved ports."""
        table = build_net_table(_network("(network (net A (pins R1-1 U9-1)))"), PORTS)
        assert table.connections == {}
        assert table.unresolved == [("A", "U9-1")]
        assert table.unresolved_count == 1

    def test_connection_port_ids(self):
        """Ports are listed once each, in pin order."""
        table = build_net_table(_network("(network (net A (pins R1-2 R1-1 R1-2)))"), PORTS)
        assert table.connections == {"source_net_0": ["pcb_port_1", "pcb_port_0"]}

    def test_duplicate_net_names_ignored(self):
        """A repeated net name keeps its first declaration."""
        table = build_net_table(
            _network("(network (net A (pins R1-1 R1-2)) (net A (pins R2-1 R1-1)))"), PORTS
        )
        assert len(table.net_name_to_id) == 1
        assert table.connections["source_net_0"] == ["pcb_port_0", "pcb_port_1"]

    def test_no_network(self):
        """A missing section gives an empty table."""
        table = build_net_table(None, PORTS)
        assert table.net_name_to_id == {}
        assert table.connections == {}
