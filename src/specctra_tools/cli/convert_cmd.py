"""Convert command: Specctra DSN and/or SES files to circuit JSON.

Usage:
    specctra-tools convert --dsn board.dsn --ses board.ses -o board.circuit.json
    specctra-tools convert --ses board.ses
    specctra-tools convert --dsn board.dsn --format summary
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from specctra_tools.config import Config
from specctra_tools.convert import ConversionReport, ConvertOptions, convert_files
from specctra_tools.exceptions import SpecctraToolsError

from .utils import configure_logging, print_error


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the convert command."""
    parser = argparse.ArgumentParser(
        prog="specctra-tools convert",
        description="Convert Specctra DSN/SES files to circuit JSON",
    )
    parser.add_argument("--dsn", help="Design file (.dsn)")
    parser.add_argument("--ses", help="Session file (.ses)")
    parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    parser.add_argument(
        "--format",
        "-f",
        choices=["json", "summary"],
        default=None,
        help="Output format (default: from config, else json)",
    )
    parser.add_argument("--tolerance", type=float, help="Endpoint matching tolerance in mm")
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail on unresolved references and malformed primitives",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print errors")

    args = parser.parse_args(argv)

    if not args.dsn and not args.ses:
        print("Error: at least one of --dsn or --ses is required", file=sys.stderr)
        return 1

    try:
        config = Config.load()
        configure_logging(
            verbose=args.verbose or config.defaults.verbose,
            quiet=args.quiet or config.defaults.quiet,
        )
        options = ConvertOptions.from_config(config, tolerance=args.tolerance, strict=args.strict)
        converter = convert_files(args.dsn, args.ses, options)
    except (SpecctraToolsError, OSError) as e:
        print_error(e, verbose=args.verbose)
        return 1

    output_format = args.format or config.defaults.format
    report = converter.report()

    if output_format == "summary":
        _print_summary(report, Console())
        # With -o the summary also goes to the file, as JSON
        text = json.dumps(report.to_dict(), indent=2)
    else:
        text = converter.get_output_string()

    if not args.output:
        if output_format != "summary":
            print(text)
        return 0

    Path(args.output).write_text(text + "\n", encoding="utf-8")
    if not args.quiet:
        Console(stderr=True).print(
            f"Wrote {sum(report.counts.values())} elements to {args.output}"
            f" ({report.warning_count} warnings)"
        )
    return 0


def _print_summary(report: ConversionReport, console: Console) -> None:
    """Element counts and warnings as tables."""
    counts = Table(title="Circuit Elements")
    counts.add_column("Type", style="cyan")
    counts.add_column("Count", justify="right")
    for element_type, count in report.counts.items():
        counts.add_row(element_type, str(count))
    console.print(counts)

    console.print(
        f"Traces attached to pads: {report.pad_attached_traces}, hanging: {report.hanging_traces}"
    )

    if report.warnings:
        warnings = Table(title=f"Warnings ({report.warning_count})")
        warnings.add_column("Kind", style="yellow")
        warnings.add_column("Message")
        for warning in report.warnings:
            warnings.add_row(warning.kind.value, warning.message)
        console.print(warnings)
