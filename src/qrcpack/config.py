"""
Configuration models and defaults for qrcpack.

Holds the resource data model shared by the resolver, the packer and the
generated module's startup routine.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .errors import InvalidArguments
from .utils import join_source_path, normalize_label

# Name of the generated module written to the working directory
DEFAULT_OUTPUT_FILE = "qrc.py"

# Environment toggle read by generated modules to enable repack mode
DEFAULT_REPACK_ENV_VAR = "QRC_REPACK"

# Values of the repack toggle that count as "on"
TRUTHY_ENV_VALUES: set[str] = {"1", "true", "yes", "on"}

# Qt module definition files; import definitions are not supported
RESERVED_FILE_NAMES: set[str] = {"qmldir"}

# Build-only metadata that is never useful to packed output
EXCLUDED_EXTENSIONS: set[str] = {".qmltypes"}

# Resource-collection manifests, parsed instead of packed
MANIFEST_EXTENSIONS: set[str] = {".qrc", ".manifest"}


class EntryKind(str, Enum):
    """How the resolver treats a single filesystem entry."""

    DIRECTORY = "directory"
    RESERVED = "reserved"
    EXCLUDED_TYPE = "excluded_type"
    MANIFEST = "manifest"
    FILE = "file"


def classify_entry(path: str | Path, is_dir: bool) -> EntryKind:
    """Classify a filesystem entry by kind, name and extension.

    Args:
        path: Path to the entry (only the base name is inspected).
        is_dir: Whether the entry is a directory.

    Returns:
        The `EntryKind` the resolver dispatches on.
    """
    if is_dir:
        return EntryKind.DIRECTORY

    path = Path(path)
    if path.name in RESERVED_FILE_NAMES:
        return EntryKind.RESERVED

    ext = path.suffix
    if ext in EXCLUDED_EXTENSIONS:
        return EntryKind.EXCLUDED_TYPE
    if ext in MANIFEST_EXTENSIONS:
        return EntryKind.MANIFEST

    return EntryKind.FILE


@dataclass(frozen=True)
class ResourceBinding:
    """A resource label bound to the file its content is read from.

    Attributes:
        label: Slash-separated, relative path clients address the resource by.
        source_path: Real filesystem path to read bytes from.
    """

    label: str
    source_path: str


@dataclass(frozen=True)
class ManifestEntry:
    """A single `<file>` entry of a resource manifest.

    Attributes:
        group_prefix: `prefix` attribute of the enclosing `<qresource>`.
        file_name: File name relative to the manifest's directory.
        alias: Optional label to use instead of `file_name`.
    """

    group_prefix: str
    file_name: str
    alias: str | None = None

    @property
    def label(self) -> str:
        """Return the label this entry is addressed by.

        Returns:
            `group_prefix` joined with the alias (or file name), without a leading slash.
        """
        name = self.alias or self.file_name
        return normalize_label(posixpath.join(self.group_prefix, name))

    def source_path(self, manifest_dir: str) -> str:
        """Return the path of the file this entry refers to.

        Args:
            manifest_dir: Directory containing the manifest.
        """
        return join_source_path(manifest_dir, self.file_name)


@dataclass(frozen=True)
class ResolveOptions:
    """Options that change how input paths are resolved.

    These are embedded in generated modules so that repack mode resolves the
    same way the original build did.

    Attributes:
        exclude_globs: Gitignore-style patterns, matched against paths relative
            to each walked directory.
        follow_symlinks: Whether to descend into symlinked directories.
    """

    exclude_globs: tuple[str, ...] = ()
    follow_symlinks: bool = False


@dataclass
class ResolveStats:
    """Statistics collected during one resolution pass."""

    files_visited: int = 0
    bindings_emitted: int = 0
    files_skipped_reserved: int = 0
    files_skipped_type: int = 0
    files_skipped_glob: int = 0
    symlinks_skipped: int = 0
    manifests_parsed: int = 0
    labels_overridden: int = 0


@dataclass
class Config:
    """Main configuration for a `qrcpack` run.

    Attributes:
        paths: Input paths (files, directories, or manifests), in order.
        output: File the generated module is written to.
        exclude_globs: Patterns excluded from directory walks.
        follow_symlinks: Whether to descend into symlinked directories.
        env_var: Environment variable generated modules check for repack mode.
    """

    paths: list[str] = field(default_factory=list)
    output: Path = field(default_factory=lambda: Path(DEFAULT_OUTPUT_FILE))
    exclude_globs: tuple[str, ...] = ()
    follow_symlinks: bool = False
    env_var: str = DEFAULT_REPACK_ENV_VAR

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Raises:
            InvalidArguments: If no input paths are given or the env var name is not
                a valid identifier.
        """
        if not self.paths:
            raise InvalidArguments("must provide at least one path")
        if not self.env_var.isidentifier():
            raise InvalidArguments(f"invalid environment variable name: {self.env_var!r}")

        self.output = Path(self.output)
        self.exclude_globs = tuple(self.exclude_globs)

    @property
    def resolve_options(self) -> ResolveOptions:
        """Return the subset of this config used for resolution."""
        return ResolveOptions(
            exclude_globs=self.exclude_globs,
            follow_symlinks=self.follow_symlinks,
        )
