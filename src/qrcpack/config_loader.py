"""
Configuration file loader for qrcpack.

Supports loading configuration from:
- qrcpack.toml / .qrcpack.toml
- qrcpack.yml / .qrcpack.yml / qrcpack.yaml / .qrcpack.yaml

CLI flags override config file values.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .config import DEFAULT_OUTPUT_FILE, DEFAULT_REPACK_ENV_VAR, Config
from .errors import InvalidArguments

# Config file search order (first found wins)
CONFIG_FILE_NAMES = [
    "qrcpack.toml",
    ".qrcpack.toml",
    "qrcpack.yml",
    ".qrcpack.yml",
    "qrcpack.yaml",
    ".qrcpack.yaml",
]

# Section name honored when settings are nested
CONFIG_SECTION = "qrcpack"


@dataclass
class ProjectConfig:
    """
    Project-level configuration loaded from config files.

    All fields are optional - CLI flags will override any values set here.
    """

    paths: list[str] | None = None
    output: Path | None = None
    exclude_globs: tuple[str, ...] | None = None
    follow_symlinks: bool | None = None
    env_var: str | None = None

    # Source file path (for debugging)
    _config_file: Path | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary.

        Returns:
            A dict of the values that were set, with sorted keys.
        """
        result: dict[str, Any] = {}

        if self.paths is not None:
            result["paths"] = list(self.paths)
        if self.output is not None:
            result["output"] = str(self.output)
        if self.exclude_globs is not None:
            result["exclude_globs"] = list(self.exclude_globs)
        if self.follow_symlinks is not None:
            result["follow_symlinks"] = self.follow_symlinks
        if self.env_var is not None:
            result["env_var"] = self.env_var
        if self._config_file is not None:
            result["_loaded_from"] = str(self._config_file)

        return dict(sorted(result.items()))


def find_config_file(project_root: Path) -> Path | None:
    """
    Find a configuration file in the project root.

    Args:
        project_root: Directory to search

    Returns:
        Path to the config file, or None if not found
    """
    for name in CONFIG_FILE_NAMES:
        config_path = project_root / name
        if config_path.exists() and config_path.is_file():
            return config_path
    return None


def _unwrap_section(data: Any) -> dict[str, Any]:
    """Return the `[qrcpack]` section if present, else the document itself."""
    if not isinstance(data, dict):
        return {}
    if CONFIG_SECTION in data and isinstance(data[CONFIG_SECTION], dict):
        return dict(data[CONFIG_SECTION])
    return dict(data)


def _parse_toml(path: Path) -> dict[str, Any]:
    """Parse a TOML config file into a dict.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed TOML data, with support for a nested `[qrcpack]` table.
    """
    with open(path, "rb") as f:
        data: dict[str, Any] = tomllib.load(f)
    return _unwrap_section(data)


def _parse_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML config file into a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML data, with support for a nested `qrcpack:` mapping.
    """
    with open(path, encoding="utf-8") as f:
        raw_data = yaml.safe_load(f)
    return _unwrap_section(raw_data)


def _normalize_globs(globs: Any) -> tuple[str, ...] | None:
    """Normalize glob input to a tuple of patterns.

    Args:
        globs: Globs from config/CLI (string, list, or None).

    Returns:
        A tuple of patterns in the order given, or None if unset/invalid.
    """
    if globs is None:
        return None

    if isinstance(globs, str):
        globs = [g.strip() for g in globs.split(",")]

    if not isinstance(globs, (list, tuple)):
        return None

    result: list[str] = []
    for g in globs:
        pattern = str(g).strip()
        if pattern and pattern not in result:
            result.append(pattern)
    return tuple(result) if result else None


def _normalize_paths(paths: Any, config_path: Path) -> list[str]:
    """Validate the `paths` entry of a config file."""
    if isinstance(paths, str):
        paths = [paths]
    if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
        raise InvalidArguments(
            f"invalid config {config_path}: 'paths' must be a list of strings", config_path
        )
    return list(paths)


def load_config(project_root: Path, config_path: Path | None = None) -> ProjectConfig:
    """
    Load configuration from a config file.

    Args:
        project_root: Directory searched when `config_path` is not given
        config_path: Explicit path to config file (optional)

    Returns:
        ProjectConfig with loaded values (unset values remain None).

    Raises:
        InvalidArguments: If an explicit config file is missing, or any config
            file cannot be parsed.
    """
    if config_path is None:
        config_path = find_config_file(project_root)
        if config_path is None:
            return ProjectConfig()
    elif not config_path.is_file():
        raise InvalidArguments(f"config file not found: {config_path}", config_path)

    # Parse based on extension
    suffix = config_path.suffix.lower()
    try:
        if suffix == ".toml":
            data = _parse_toml(config_path)
        elif suffix in (".yml", ".yaml"):
            data = _parse_yaml(config_path)
        else:
            raise InvalidArguments(
                f"unsupported config file type: {config_path}", config_path
            )
    except (OSError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise InvalidArguments(f"cannot load config {config_path}: {e}", config_path) from e

    config = ProjectConfig(_config_file=config_path)

    if "paths" in data:
        config.paths = _normalize_paths(data["paths"], config_path)
    if "output" in data:
        config.output = Path(data["output"])
    config.exclude_globs = _normalize_globs(data.get("exclude_globs") or data.get("exclude"))
    if "follow_symlinks" in data:
        config.follow_symlinks = bool(data["follow_symlinks"])
    if "env_var" in data:
        config.env_var = str(data["env_var"])

    return config


def merge_cli_with_config(
    config: ProjectConfig,
    *,
    # CLI arguments (None means not specified on CLI)
    paths: list[str] | None = None,
    output: Path | None = None,
    exclude_glob: list[str] | None = None,
    follow_symlinks: bool | None = None,
    env_var: str | None = None,
) -> Config:
    """Merge CLI arguments with config file values (CLI wins).

    Args:
        config: Config loaded from file (may have unset values).
        paths: Input paths from the CLI (optional).
        output: CLI override for the generated module path (optional).
        exclude_glob: Exclude patterns from the CLI; each item may be comma-separated.
        follow_symlinks: CLI override for symlinked directory traversal (optional).
        env_var: CLI override for the repack environment variable (optional).

    Returns:
        A validated `Config` for the run.

    Raises:
        InvalidArguments: If no input paths are available from either source.
    """
    # Paths: CLI replaces config entirely
    if paths:
        merged_paths = list(paths)
    elif config.paths:
        merged_paths = list(config.paths)
    else:
        merged_paths = []

    # Exclude globs: CLI overrides config
    cli_globs = _normalize_globs(",".join(exclude_glob)) if exclude_glob else None
    if cli_globs is not None:
        exclude_globs = cli_globs
    elif config.exclude_globs is not None:
        exclude_globs = config.exclude_globs
    else:
        exclude_globs = ()

    if output is not None:
        merged_output = output
    elif config.output is not None:
        merged_output = config.output
    else:
        merged_output = Path(DEFAULT_OUTPUT_FILE)

    if follow_symlinks is not None:
        merged_follow = follow_symlinks
    elif config.follow_symlinks is not None:
        merged_follow = config.follow_symlinks
    else:
        merged_follow = False

    if env_var is not None:
        merged_env_var = env_var
    elif config.env_var is not None:
        merged_env_var = config.env_var
    else:
        merged_env_var = DEFAULT_REPACK_ENV_VAR

    return Config(
        paths=merged_paths,
        output=merged_output,
        exclude_globs=exclude_globs,
        follow_symlinks=merged_follow,
        env_var=merged_env_var,
    )
