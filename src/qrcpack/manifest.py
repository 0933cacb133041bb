"""
Resource manifest parsing for qrcpack.

Reads Qt resource-collection documents (`.qrc`) of the form:

    <RCC>
      <qresource prefix="images">
        <file alias="icon.png">assets/a.png</file>
      </qresource>
    </RCC>

Each `<file>` becomes a binding labelled `prefix/alias` (or `prefix/name`) whose
source is the file name resolved against the manifest's directory.
"""

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from pathlib import Path

from .config import ManifestEntry, ResourceBinding
from .errors import MalformedManifest, PathNotFound, UnreadableFile

ROOT_TAG = "RCC"
GROUP_TAG = "qresource"
FILE_TAG = "file"


def read_manifest(path: str | Path) -> list[ManifestEntry]:
    """Parse a manifest file into its entries, in document order.

    Args:
        path: Path to the manifest.

    Returns:
        List of `ManifestEntry` objects.

    Raises:
        PathNotFound: If the manifest does not exist.
        UnreadableFile: If the manifest cannot be read.
        MalformedManifest: If the document is not valid RCC XML.
    """
    path = str(path)
    try:
        with open(path, "rb") as f:
            data = f.read()
    except FileNotFoundError as e:
        raise PathNotFound(f"manifest not found: {path}", path) from e
    except OSError as e:
        raise UnreadableFile(f"cannot read manifest {path}: {e}", path) from e

    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise MalformedManifest(f"malformed manifest {path}: {e}", path) from e

    if root.tag != ROOT_TAG:
        raise MalformedManifest(
            f"malformed manifest {path}: expected <{ROOT_TAG}> root element, got <{root.tag}>",
            path,
        )

    entries: list[ManifestEntry] = []
    for group in root.findall(GROUP_TAG):
        prefix = group.get("prefix", "")
        for file_elem in group.findall(FILE_TAG):
            name = (file_elem.text or "").strip()
            if not name:
                raise MalformedManifest(
                    f"malformed manifest {path}: <{FILE_TAG}> entry without a file name",
                    path,
                )
            alias = file_elem.get("alias") or None
            entries.append(ManifestEntry(group_prefix=prefix, file_name=name, alias=alias))

    return entries


def parse_manifest(path: str | Path) -> list[ResourceBinding]:
    """Resolve a manifest into resource bindings.

    Labels are built from the group prefix only; the directory the manifest
    lives in affects source paths, never labels.

    Args:
        path: Path to the manifest.

    Returns:
        Bindings in document order (duplicates are left for the caller to collapse).
    """
    manifest_dir = os.path.dirname(str(path))
    bindings = []
    for entry in read_manifest(path):
        if not entry.label:
            raise MalformedManifest(
                f"malformed manifest {path}: entry {entry.file_name!r} has an empty label",
                path,
            )
        bindings.append(
            ResourceBinding(label=entry.label, source_path=entry.source_path(manifest_dir))
        )
    return bindings
