"""
Resource resolver module for qrcpack.

Turns input paths (files, directories and resource manifests) into an ordered
list of label bindings, applying manifest prefixes/aliases and the
`qmldir`/`.qmltypes` exclusion rules.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path
from typing import Generator, Optional

import pathspec

from .config import (
    EntryKind,
    ResolveOptions,
    ResolveStats,
    ResourceBinding,
    classify_entry,
)
from .errors import PathNotFound, UnreadableFile
from .manifest import parse_manifest
from .utils import normalize_label, normalize_path


class ExcludeMatcher:
    """
    Matches walk-relative paths against gitignore-style exclude patterns.
    """

    def __init__(self, patterns: Iterable[str]):
        self.patterns = [p.strip() for p in patterns if p and p.strip()]
        self._spec: Optional[pathspec.PathSpec] = None
        if self.patterns:
            self._spec = pathspec.PathSpec.from_lines(
                pathspec.patterns.GitWildMatchPattern,
                self.patterns,
            )

    def is_excluded(self, rel_path: str, is_dir: bool = False) -> bool:
        """
        Check if a path relative to the walk root is excluded.

        Args:
            rel_path: Slash-separated path relative to the walked directory
            is_dir: Whether the path names a directory

        Returns:
            True if the path should be skipped
        """
        if self._spec is None:
            return False
        if self._spec.match_file(rel_path):
            return True
        # Directory patterns like "build/" only match with a trailing slash
        return is_dir and self._spec.match_file(rel_path + "/")


class ManifestResolver:
    """
    Resolves input paths into resource bindings.

    Bindings are collected in resolution order (argument order, then
    lexicographic depth-first walk order, then manifest document order).
    A later binding for an existing label replaces the earlier one.
    """

    def __init__(self, options: Optional[ResolveOptions] = None):
        """
        Initialize the resolver.

        Args:
            options: Resolution options (exclude globs, symlink handling)
        """
        self.options = options or ResolveOptions()
        self._excludes = ExcludeMatcher(self.options.exclude_globs)
        self._bindings: dict[str, ResourceBinding] = {}

        # Statistics tracking
        self.stats = ResolveStats()

    def resolve(self, paths: Iterable[str | Path]) -> list[ResourceBinding]:
        """
        Resolve every input path, in order.

        Args:
            paths: Files, directories or manifests

        Returns:
            Bindings with unique labels, in resolution order

        Raises:
            PathNotFound: If an input path does not exist
            UnreadableFile: If a directory or manifest cannot be read
            MalformedManifest: If a manifest is not valid RCC XML
        """
        self._bindings = {}
        self.stats = ResolveStats()

        for path in paths:
            self._resolve_path(str(path))

        self.stats.bindings_emitted = len(self._bindings)
        return list(self._bindings.values())

    def _resolve_path(self, path: str) -> None:
        """Resolve one input path as given on the command line."""
        if not os.path.lexists(path):
            raise PathNotFound(f"path not found: {path}", path)

        is_dir = os.path.isdir(path)
        kind = classify_entry(path, is_dir)

        if kind is EntryKind.DIRECTORY:
            for file_path, rel_path in self._walk_files(path):
                self._visit_file(file_path, rel_path)
        else:
            self._visit_file(path, None)

    def _visit_file(self, path: str, rel_path: Optional[str]) -> None:
        """
        Dispatch a single file on its kind.

        Args:
            path: Path of the file, rooted at the input path as given
            rel_path: Path relative to the walked directory, or None for direct arguments
        """
        self.stats.files_visited += 1

        # Exclude globs apply to walked entries only
        if rel_path is not None and self._excludes.is_excluded(rel_path):
            self.stats.files_skipped_glob += 1
            return

        kind = classify_entry(path, is_dir=False)

        if kind is EntryKind.RESERVED:
            self.stats.files_skipped_reserved += 1
        elif kind is EntryKind.EXCLUDED_TYPE:
            self.stats.files_skipped_type += 1
        elif kind is EntryKind.MANIFEST:
            self.stats.manifests_parsed += 1
            for binding in parse_manifest(path):
                self._add(binding)
        elif kind is EntryKind.FILE:
            self._add(ResourceBinding(label=normalize_label(path), source_path=path))

    def _add(self, binding: ResourceBinding) -> None:
        """Record a binding; the latest binding for a label wins and moves last."""
        if binding.label in self._bindings:
            self.stats.labels_overridden += 1
            del self._bindings[binding.label]
        self._bindings[binding.label] = binding

    def _walk_files(self, root: str) -> Generator[tuple[str, str], None, None]:
        """
        Walk a directory and yield `(path, relative_path)` for every file.

        Entries are visited depth-first in lexicographic order of their names,
        so a subdirectory's contents appear where the subdirectory sorts.

        Raises:
            UnreadableFile: If a directory cannot be listed
        """
        ancestors: set[str] = set()

        def _walk(current_dir: str, rel_dir: str) -> Generator[tuple[str, str], None, None]:
            try:
                with os.scandir(current_dir) as entries:
                    entries_list = sorted(entries, key=lambda e: e.name)
            except OSError as e:
                raise UnreadableFile(
                    f"cannot read directory {current_dir}: {e}", current_dir
                ) from e

            # A directory already on the current walk path means a symlink cycle
            real_dir = os.path.realpath(current_dir)
            if real_dir in ancestors:
                return
            ancestors.add(real_dir)
            try:
                yield from _walk_entries(entries_list, current_dir, rel_dir)
            finally:
                ancestors.discard(real_dir)

        def _walk_entries(
            entries_list: list[os.DirEntry], current_dir: str, rel_dir: str
        ) -> Generator[tuple[str, str], None, None]:
            for entry in entries_list:
                entry_path = os.path.join(current_dir, entry.name)
                rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name

                try:
                    is_dir = entry.is_dir()
                    is_symlink = entry.is_symlink()
                except OSError as e:
                    raise UnreadableFile(f"cannot stat {entry_path}: {e}", entry_path) from e

                if is_dir:
                    if is_symlink and not self.options.follow_symlinks:
                        self.stats.symlinks_skipped += 1
                        continue
                    if self._excludes.is_excluded(rel_path, is_dir=True):
                        self.stats.files_skipped_glob += 1
                        continue
                    yield from _walk(entry_path, rel_path)
                else:
                    yield entry_path, normalize_path(rel_path)

        yield from _walk(root, "")


def resolve(
    paths: Iterable[str | Path],
    options: Optional[ResolveOptions] = None,
) -> list[ResourceBinding]:
    """
    Convenience function to resolve input paths.

    Returns:
        List of ResourceBinding with unique labels
    """
    resolver = ManifestResolver(options=options)
    return resolver.resolve(paths)
