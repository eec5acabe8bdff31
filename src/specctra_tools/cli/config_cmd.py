"""
Config command for specctra-tools CLI.

Usage:
    specctra-tools config --show     Print the merged settings and where each came from
    specctra-tools config --init     Write a commented starter file
    specctra-tools config --paths    List the files that are read
"""

import argparse
import sys
from pathlib import Path

from specctra_tools.config import (
    CONFIG_FILENAMES,
    SECTIONS,
    USER_CONFIG_PATH,
    Config,
    generate_template,
    get_config_paths,
)
from specctra_tools.exceptions import ConfigurationError


def main(argv: list[str] | None = None) -> int:
    """Main entry point for config command."""
    parser = argparse.ArgumentParser(
        prog="specctra-tools config",
        description="Inspect or create specctra-tools settings files",
    )

    action_group = parser.add_mutually_exclusive_group()
    action_group.add_argument(
        "--show",
        action="store_true",
        help="Print every setting in effect, tagged with its file (the default)",
    )
    action_group.add_argument(
        "--init",
        action="store_true",
        help=f"Write a starter {CONFIG_FILENAMES[0]} here",
    )
    action_group.add_argument(
        "--paths",
        action="store_true",
        help="List the settings files that are looked for",
    )
    parser.add_argument(
        "--user",
        action="store_true",
        help=f"With --init, write {USER_CONFIG_PATH} instead",
    )

    args = parser.parse_args(argv)

    try:
        if args.init:
            target = USER_CONFIG_PATH if args.user else Path.cwd() / CONFIG_FILENAMES[0]
            return _write_template(target)
        if args.paths:
            return _list_paths()
        return _show_settings(Config.load())
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _format_value(value) -> str:
    """TOML spelling of a setting; unset values have none."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def _show_settings(config: Config) -> int:
    print("# specctra-tools settings in effect")
    for section, values in config.as_dict().items():
        print(f"\n[{section}]")
        for key, value in values.items():
            source = config.get_source(f"{section}.{key}")
            origin = source if source == "default" else Path(source).name
            if value is None:
                print(f"# {key} is unset  ({origin})")
            else:
                print(f"{key} = {_format_value(value)}  # {origin}")
    return 0


def _list_paths() -> int:
    paths = get_config_paths()

    user_state = "present" if paths["user"] else "missing"
    print(f"User settings: {USER_CONFIG_PATH} ({user_state})")
    print(f"Project settings, nearest of: {' or '.join(CONFIG_FILENAMES)}")
    print(f"  -> {paths['project'] or 'none found'}")
    print(f"Tables read: {', '.join(f'[{name}]' for name in SECTIONS)}")
    return 0


def _write_template(target: Path) -> int:
    if target.exists():
        print(f"Error: {target} exists, not overwriting", file=sys.stderr)
        return 1

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(generate_template())
    except OSError as e:
        print(f"Error: cannot write {target}: {e}", file=sys.stderr)
        return 1

    print(f"Wrote starter settings to {target}")
    return 0
