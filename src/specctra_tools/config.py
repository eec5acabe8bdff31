"""
Configuration file support for specctra-tools.

Provides hierarchical configuration loading from:
1. Project config: .specctra-tools.toml or specctra-tools.toml in project root
2. User config: ~/.config/specctra-tools/config.toml

Converter keyword arguments override config file values, and project config
overrides user config.
"""

from __future__ import annotations

import sys
import warnings
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .exceptions import ConfigurationError
from .units import UnitSystem

# Config file names to search for in project directories
CONFIG_FILENAMES = [".specctra-tools.toml", "specctra-tools.toml"]

# User-level config path
USER_CONFIG_PATH = Path.home() / ".config" / "specctra-tools" / "config.toml"


@dataclass
class DefaultsConfig:
    """Default options for CLI commands."""

    format: str = "json"
    units: str = "mm"
    verbose: bool = False
    quiet: bool = False


@dataclass
class StitchConfig:
    """Segment stitching and pad matching."""

    tolerance: float = 0.001
    port_match_tolerance: float = 0.01
    max_iterations: int | None = None
    prefer_port_branches: bool = True
    refine_pad_shapes: bool = False


@dataclass
class ConvertConfig:
    """DSN/SES conversion defaults."""

    dsn_default_unit: str = "um"
    dsn_default_resolution: float = 1.0
    ses_default_unit: str = "mil"
    ses_default_resolution: float = 1000.0
    center_board: bool = True
    fallback_pad_diameter: float = 1000.0
    via_outer_diameter: float = 0.6
    via_hole_diameter: float = 0.3
    strict: bool = False


# Section name -> dataclass, in template order
SECTIONS: dict[str, type] = {
    "defaults": DefaultsConfig,
    "stitch": StitchConfig,
    "convert": ConvertConfig,
}

# All known config keys for validation
KNOWN_KEYS = {name: {f.name for f in fields(cls)} for name, cls in SECTIONS.items()}


@dataclass
class Config:
    """Merged configuration from all sources."""

    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    stitch: StitchConfig = field(default_factory=StitchConfig)
    convert: ConvertConfig = field(default_factory=ConvertConfig)

    # Track which file each setting came from (for --show)
    _sources: dict = field(default_factory=dict, repr=False)

    @classmethod
    def load(cls, start_dir: Path | None = None) -> Config:
        """
        Load configuration with precedence: project > user > defaults.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            Merged configuration object

        Raises:
            ConfigurationError: If a config file is unreadable or holds invalid values
        """
        if start_dir is None:
            start_dir = Path.cwd()

        config = cls()
        sources: dict[str, str] = {}

        # Load user config first (lower precedence)
        if USER_CONFIG_PATH.exists():
            user_data = _load_toml_file(USER_CONFIG_PATH)
            _merge_config(config, user_data, str(USER_CONFIG_PATH), sources)

        # Load project config (higher precedence)
        project_config = _find_project_config(start_dir)
        if project_config:
            project_data = _load_toml_file(project_config)
            _merge_config(config, project_data, str(project_config), sources)

        config._sources = sources
        config.validate()
        return config

    def get_source(self, key: str) -> str:
        """Get the source file for a config key."""
        return self._sources.get(key, "default")

    def validate(self) -> None:
        """Reject values the converters cannot work with."""
        if UnitSystem.from_string(self.defaults.units) is None:
            raise ConfigurationError(
                f"defaults.units must be one of: {', '.join(u.value for u in UnitSystem)}",
                context={"units": self.defaults.units, "source": self.get_source("defaults.units")},
            )
        if self.stitch.tolerance <= 0:
            raise ConfigurationError(
                "stitch.tolerance must be positive",
                context={"tolerance": self.stitch.tolerance, "source": self.get_source("stitch.tolerance")},
            )
        if self.stitch.port_match_tolerance < 0:
            raise ConfigurationError(
                "stitch.port_match_tolerance must not be negative",
                context={"port_match_tolerance": self.stitch.port_match_tolerance},
            )
        if self.stitch.max_iterations is not None and self.stitch.max_iterations <= 0:
            raise ConfigurationError(
                "stitch.max_iterations must be positive",
                context={"max_iterations": self.stitch.max_iterations},
            )
        for key in ("dsn_default_resolution", "ses_default_resolution", "fallback_pad_diameter"):
            if getattr(self.convert, key) <= 0:
                raise ConfigurationError(
                    f"convert.{key} must be positive",
                    context={key: getattr(self.convert, key)},
                )

    def as_dict(self) -> dict[str, dict[str, Any]]:
        """Flatten to ``{section: {key: value}}`` for display."""
        return {
            name: {f.name: getattr(getattr(self, name), f.name) for f in fields(cls)}
            for name, cls in SECTIONS.items()
        }


def _find_project_config(start_dir: Path) -> Path | None:
    """
    Find project config by walking up the directory tree.

    Stops at .git directory or filesystem root.
    """
    current = start_dir.resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            config_path = current / filename
            if config_path.is_file():
                return config_path

        # Stop at .git directory (project root)
        if (current / ".git").exists():
            break

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _load_toml_file(path: Path) -> dict[str, Any]:
    """
    Load a TOML file.

    Raises:
        ConfigurationError: If TOML is invalid or the file is unreadable
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}", context={"file": str(path)}) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}", context={"file": str(path)}) from e


def _merge_config(
    config: Config, data: dict[str, Any], source: str, sources: dict[str, str]
) -> None:
    """
    Merge loaded config data into Config object.

    Args:
        config: Config object to update
        data: Raw config data from TOML
        source: Source file path (for tracking)
        sources: Dict to update with source info
    """
    for key in data:
        if key not in KNOWN_KEYS:
            warnings.warn(f"Unknown config key '{key}' in {source}", stacklevel=3)

    for section in SECTIONS:
        if section not in data:
            continue
        section_data = data[section]
        if not isinstance(section_data, dict):
            raise ConfigurationError(
                f"Config section '{section}' must be a table",
                context={"file": source},
            )
        _warn_unknown_keys(section_data, KNOWN_KEYS[section], section, source)

        target = getattr(config, section)
        for key, value in section_data.items():
            if key in KNOWN_KEYS[section]:
                setattr(target, key, value)
                sources[f"{section}.{key}"] = source


def _warn_unknown_keys(data: dict[str, Any], known: set[str], section: str, source: str) -> None:
    """Warn about unknown keys in a config section."""
    for key in data:
        if key not in known:
            warnings.warn(f"Unknown config key '{section}.{key}' in {source}", stacklevel=4)


def generate_template() -> str:
    """
    Generate a template config file with all options documented.

    Returns:
        Template TOML string
    """
    return """# specctra-tools configuration file
# Place as .specctra-tools.toml in project root or ~/.config/specctra-tools/config.toml for user defaults

[defaults]
# Output format for `convert`: json, summary
# format = "json"

# Length units for `stitch-report` tables: mm, mils
# units = "mm"

# Enable verbose output by default
# verbose = false

# Enable quiet mode by default
# quiet = false

[stitch]
# Endpoint matching tolerance in mm
# tolerance = 0.001

# Slack added around pad bounding boxes when attaching traces, in mm
# port_match_tolerance = 0.01

# Iteration cap per net (default: 1000 + 2 * segment count)
# max_iterations = 5000

# At a branch, prefer the continuation that reaches a pad
# prefer_port_branches = true

# Check trace ends against the true pad outline, not just its bounding box
# refine_pad_shapes = false

[convert]
# Resolution assumed when a DSN file declares none
# dsn_default_unit = "um"
# dsn_default_resolution = 1

# Resolution assumed when a SES file declares none
# ses_default_unit = "mil"
# ses_default_resolution = 1000

# Center the board outline on the origin
# center_board = true

# Pad diameter (design units) for padstacks without a usable shape
# fallback_pad_diameter = 1000

# Via sizes in mm when neither the padstack name nor the library gives one
# via_outer_diameter = 0.6
# via_hole_diameter = 0.3

# Raise on unresolved references and malformed primitives instead of warning
# strict = false
"""


def get_config_paths() -> dict[str, Path | None]:
    """
    Get paths to config files that would be loaded.

    Returns:
        Dict with 'user' and 'project' keys
    """
    project_config = _find_project_config(Path.cwd())

    return {
        "user": USER_CONFIG_PATH if USER_CONFIG_PATH.exists() else None,
        "project": project_config,
    }
