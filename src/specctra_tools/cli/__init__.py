"""
Command-line interface for specctra-tools.

    specctra-tools convert --dsn <dsn> --ses <ses>  - Convert to circuit JSON
    specctra-tools stitch-report <ses>              - Per-net stitching report
    specctra-tools config --show                    - Show effective configuration

Examples:
    specctra-tools convert --dsn board.dsn --ses board.ses -o board.circuit.json
    specctra-tools convert --dsn board.dsn --format summary
    specctra-tools stitch-report board.ses --dsn board.dsn --net GND
    specctra-tools config --init
"""

import argparse
from typing import List, Optional

from specctra_tools import __version__

__all__ = ["main"]


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for specctra-tools CLI."""
    parser = argparse.ArgumentParser(
        prog="specctra-tools",
        description="Specctra DSN/SES to circuit JSON toolkit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"specctra-tools {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Convert subcommand
    convert_parser = subparsers.add_parser("convert", help="Convert DSN/SES to circuit JSON")
    convert_parser.add_argument("--dsn", help="Design file (.dsn)")
    convert_parser.add_argument("--ses", help="Session file (.ses)")
    convert_parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    convert_parser.add_argument("--format", "-f", choices=["json", "summary"])
    convert_parser.add_argument("--tolerance", type=float, help="Endpoint matching tolerance in mm")
    convert_parser.add_argument("--strict", action="store_true")
    convert_parser.add_argument("-v", "--verbose", action="store_true")
    convert_parser.add_argument("-q", "--quiet", action="store_true")

    # Stitch report subcommand
    report_parser = subparsers.add_parser("stitch-report", help="Per-net stitching report")
    report_parser.add_argument("ses", help="Session file (.ses)")
    report_parser.add_argument("--dsn", help="Design file for pad attachment")
    report_parser.add_argument("--net", "-n", action="append", dest="nets")
    report_parser.add_argument("--format", "-f", choices=["table", "json"], default="table")
    report_parser.add_argument("--units", choices=["mm", "mils"])
    report_parser.add_argument("-v", "--verbose", action="store_true")

    # Config subcommand
    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_group = config_parser.add_mutually_exclusive_group()
    config_group.add_argument("--show", action="store_true")
    config_group.add_argument("--init", action="store_true")
    config_group.add_argument("--paths", action="store_true")
    config_parser.add_argument("--user", action="store_true")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "convert":
        from .convert_cmd import main as convert_cmd

        sub_argv = []
        if args.dsn:
            sub_argv.extend(["--dsn", args.dsn])
        if args.ses:
            sub_argv.extend(["--ses", args.ses])
        if args.output:
            sub_argv.extend(["--output", args.output])
        if args.format:
            sub_argv.extend(["--format", args.format])
        if args.tolerance is not None:
            sub_argv.extend(["--tolerance", str(args.tolerance)])
        if args.strict:
            sub_argv.append("--strict")
        if args.verbose:
            sub_argv.append("--verbose")
        if args.quiet:
            sub_argv.append("--quiet")
        return convert_cmd(sub_argv)

    elif args.command == "stitch-report":
        from .stitch_report_cmd import main as stitch_report_cmd

        sub_argv = [args.ses]
        if args.dsn:
            sub_argv.extend(["--dsn", args.dsn])
        for net in args.nets or []:
            sub_argv.extend(["--net", net])
        if args.format != "table":
            sub_argv.extend(["--format", args.format])
        if args.units:
            sub_argv.extend(["--units", args.units])
        if args.verbose:
            sub_argv.append("--verbose")
        return stitch_report_cmd(sub_argv)

    elif args.command == "config":
        from .config_cmd import main as config_cmd

        sub_argv = []
        if args.show:
            sub_argv.append("--show")
        if args.init:
            sub_argv.append("--init")
        if args.paths:
            sub_argv.append("--paths")
        if args.user:
            sub_argv.append("--user")
        return config_cmd(sub_argv)

    return 0
