"""
Generated module rendering for qrcpack.

Renders the `qrc.py` module that embeds a packed bundle and loads it at import
time, and writes it to disk atomically.
"""

from __future__ import annotations

import os
import shlex
import tempfile
from pathlib import Path
from string import Template
from typing import Optional, Sequence

from . import __version__
from .config import DEFAULT_REPACK_ENV_VAR, ResolveOptions
from .errors import InvalidArguments, OutputWriteFailure

# Bytes per line of the embedded bundle literal
BYTES_PER_LINE = 64

MODULE_TEMPLATE = Template('''\
# Resource bundle generated by qrcpack $version. Do not edit.
#
# Regenerate with:
#
#     $command
#
# Set $env_var=1 to repack resources from the filesystem at import time
# instead of using the embedded bundle.

from qrcpack.config import ResolveOptions
from qrcpack.runtime import StartupConfig, initialize

ENV_VAR = $env_var_literal

RESOURCE_PATHS = $paths_literal

RESOLVE_OPTIONS = $options_literal

RESOURCES_DATA = (
$data_lines
)

resources = initialize(
    StartupConfig.from_env(ENV_VAR),
    RESOURCES_DATA,
    RESOURCE_PATHS,
    RESOLVE_OPTIONS,
)
''')


def format_bytes_literal(data: bytes, indent: str = "    ") -> str:
    """
    Render bytes as a sequence of implicitly concatenated bytes literals.

    Args:
        data: Bytes to embed
        indent: Prefix for every line

    Returns:
        Source lines, one literal per `BYTES_PER_LINE` bytes
    """
    if not data:
        return f"{indent}b''"
    lines = [
        f"{indent}{data[i : i + BYTES_PER_LINE]!r}"
        for i in range(0, len(data), BYTES_PER_LINE)
    ]
    return "\n".join(lines)


def comment_safe(text: str) -> str:
    """Escape characters that would end or corrupt a source comment line."""
    return "".join(c if c.isprintable() else repr(c)[1:-1] for c in text)


def format_command(
    paths: Sequence[str],
    options: ResolveOptions,
    env_var: str,
    output: Optional[Path] = None,
) -> str:
    """Render the `qrcpack generate` command line that reproduces a module."""
    args = ["qrcpack", "generate"]
    for pattern in options.exclude_globs:
        args.extend(["--exclude", pattern])
    if options.follow_symlinks:
        args.append("--follow-symlinks")
    if env_var != DEFAULT_REPACK_ENV_VAR:
        args.extend(["--env-var", env_var])
    if output is not None:
        args.extend(["--output", str(output)])
    args.extend(paths)
    return shlex.join(args)


def render_module(
    data: bytes,
    paths: Sequence[str],
    options: Optional[ResolveOptions] = None,
    env_var: str = DEFAULT_REPACK_ENV_VAR,
    output: Optional[Path] = None,
) -> str:
    """
    Render the source of a generated resource module.

    Args:
        data: Packed bundle to embed
        paths: Original input paths, kept for repack mode
        options: Resolution options, kept for repack mode
        env_var: Environment variable that enables repack mode
        output: Output path, only used in the regeneration hint

    Returns:
        Python source text

    Raises:
        InvalidArguments: If `env_var` is not a valid identifier
    """
    if not env_var.isidentifier():
        raise InvalidArguments(f"invalid environment variable name: {env_var!r}")
    options = options or ResolveOptions()
    paths = [str(p) for p in paths]

    options_literal = (
        f"ResolveOptions(exclude_globs={tuple(options.exclude_globs)!r}, "
        f"follow_symlinks={options.follow_symlinks!r})"
    )

    return MODULE_TEMPLATE.substitute(
        version=__version__,
        command=comment_safe(format_command(paths, options, env_var, output)),
        env_var=env_var,
        env_var_literal=repr(env_var),
        paths_literal=repr(paths),
        options_literal=options_literal,
        data_lines=format_bytes_literal(data),
    )


def write_module(path: Path, source: str) -> Path:
    """
    Write generated source atomically.

    The content goes to a temporary file next to `path` which then replaces it,
    so a failed run never leaves a partial module behind.

    Raises:
        OutputWriteFailure: If the file cannot be written
    """
    path = Path(path)
    tmp_name: Optional[str] = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(source)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise OutputWriteFailure(f"cannot write {path}: {e}", path) from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
    return path
