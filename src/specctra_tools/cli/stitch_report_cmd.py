"""Stitch report command: how a session's wires stitch into traces.

Usage:
    specctra-tools stitch-report board.ses
    specctra-tools stitch-report board.ses --dsn board.dsn --net GND
    specctra-tools stitch-report board.ses --format json
    specctra-tools stitch-report board.ses --units mils
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field

from rich.console import Console
from rich.table import Table

from specctra_tools.config import Config
from specctra_tools.convert import ConvertOptions, DsnToCircuitJsonConverter, extract_ses_routes
from specctra_tools.convert.segments import session_via_catalog
from specctra_tools.convert.stages import terminal_test
from specctra_tools.convert.transform import resolve_overlay_transform, resolve_ses_transform
from specctra_tools.exceptions import SpecctraToolsError
from specctra_tools.reconcile import PortLocator, port_locations_from_board, reconcile_chains
from specctra_tools.specctra import load_dsn, load_ses
from specctra_tools.stitch import stitch_net
from specctra_tools.units import UnitFormatter, UnitSystem

from .utils import configure_logging, print_error


@dataclass
class NetStitchSummary:
    net: str
    segments: int
    vias: int
    chains: int
    total_length: float
    hanging: int = 0
    lengths: list[float] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "net": self.net,
            "segments": self.segments,
            "vias": self.vias,
            "chains": self.chains,
            "total_length_mm": round(self.total_length, 4),
            "chain_lengths_mm": [round(length, 4) for length in self.lengths],
            "hanging": self.hanging,
        }


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the stitch-report command."""
    parser = argparse.ArgumentParser(
        prog="specctra-tools stitch-report",
        description="Report per-net stitching of a Specctra session",
    )
    parser.add_argument("ses", help="Session file (.ses)")
    parser.add_argument("--dsn", help="Design file; enables pad attachment and hanging counts")
    parser.add_argument(
        "--net",
        "-n",
        action="append",
        dest="nets",
        help="Only report these net(s) (can be used multiple times)",
    )
    parser.add_argument("--format", "-f", choices=["table", "json"], default="table")
    parser.add_argument(
        "--units",
        choices=[u.value for u in UnitSystem],
        help="Length units in the table (default: from config, else mm)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)

    try:
        config = Config.load()
        options = ConvertOptions.from_config(config)
        summaries = build_stitch_report(args.ses, args.dsn, options, args.nets)
    except (SpecctraToolsError, OSError) as e:
        print_error(e, verbose=args.verbose)
        return 1

    if args.format == "json":
        print(json.dumps([s.to_dict() for s in summaries], indent=2))
    else:
        units = UnitSystem.from_string(args.units or config.defaults.units)
        _print_table(summaries, args.ses, UnitFormatter(units), with_pads=args.dsn is not None)

    if not summaries:
        print("No routed nets found", file=sys.stderr)
    return 0


def build_stitch_report(
    ses_path: str,
    dsn_path: str | None = None,
    options: ConvertOptions | None = None,
    nets: list[str] | None = None,
) -> list[NetStitchSummary]:
    """Stitch every net of a session and summarize the result per net."""
    options = options or ConvertOptions()
    session = load_ses(ses_path)

    locator = None
    design = None
    if dsn_path:
        design = load_dsn(dsn_path)
        board = DsnToCircuitJsonConverter(design, options, include_wiring=False)
        board.run_until_finished()
        transform = resolve_overlay_transform(
            session, board.ctx.transform, options.ses_default_resolution
        )
        locator = PortLocator(
            port_locations_from_board(board.db),
            slack=options.port_match_tolerance,
            tolerance=options.tolerance,
            refine_shapes=options.refine_pad_shapes,
        )
    else:
        transform = resolve_ses_transform(session, options.ses_default_resolution)

    via_catalog = session_via_catalog(session, design)
    routing = extract_ses_routes(session, transform, via_catalog, options.default_via_size)

    terminal = terminal_test(options, locator) if locator is not None else None
    summaries = []
    for net, segments in routing.segments_by_net.items():
        if nets and net not in nets:
            continue
        vias = routing.vias_by_net.get(net, [])
        chains = stitch_net(
            segments,
            vias,
            tolerance=options.tolerance,
            terminal=terminal,
            max_iterations=options.max_iterations,
            net=net,
        )
        summary = NetStitchSummary(
            net=net,
            segments=len(segments),
            vias=len(vias),
            chains=len(chains),
            total_length=sum(c.length for c in chains),
            lengths=[c.length for c in chains],
        )
        if locator is not None:
            summary.hanging = len(reconcile_chains(chains, locator).hanging)
        summaries.append(summary)
    return summaries


def _print_table(
    summaries: list[NetStitchSummary], filename: str, formatter: UnitFormatter, with_pads: bool
) -> None:
    console = Console()
    console.print(f"\n[bold]Stitch Report: {filename}[/bold]\n")

    table = Table(title="Nets")
    table.add_column("Net", style="cyan")
    table.add_column("Segments", justify="right")
    table.add_column("Vias", justify="right")
    table.add_column("Traces", justify="right")
    table.add_column("Length", justify="right")
    if with_pads:
        table.add_column("Hanging", justify="right")

    for summary in summaries:
        row = [
            summary.net or "-",
            str(summary.segments),
            str(summary.vias),
            str(summary.chains),
            formatter.format(summary.total_length),
        ]
        if with_pads:
            row.append(f"[red]{summary.hanging}[/red]" if summary.hanging else "0")
        table.add_row(*row)

    console.print(table)
