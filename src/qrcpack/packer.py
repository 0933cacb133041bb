"""
Bundle packer for qrcpack.

Serializes a `label -> bytes` mapping into a single self-describing byte
stream and parses it back. The layout is little-endian:

    header   magic b"QRCB", u16 version, u16 reserved, u32 entry count
    entry    u32 label length, u64 content length, label (UTF-8, surrogateescape), content

The stream is plain bytes, so `repr()` embeds it losslessly in generated source.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Optional

from .config import ResolveOptions, ResourceBinding
from .errors import BundleFormatError, UnreadableFile
from .resolver import resolve

BUNDLE_MAGIC = b"QRCB"
BUNDLE_VERSION = 1

HEADER_STRUCT = struct.Struct("<4sHHI")
ENTRY_STRUCT = struct.Struct("<IQ")

# Labels from non-UTF-8 file names keep their raw bytes
LABEL_ERRORS = "surrogateescape"


class ResourcesPacker:
    """
    Accumulates resources and packs them into a bundle.

    Entries keep insertion order. Adding an existing label replaces its content
    and moves it to the end, so the final order reflects the last write.
    """

    def __init__(self) -> None:
        self._entries: dict[str, bytes] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, label: str, data: bytes) -> None:
        """
        Add a resource.

        Args:
            label: Slash-separated resource label
            data: Resource content

        Raises:
            ValueError: If the label is empty
        """
        if not label:
            raise ValueError("resource label must not be empty")
        self._entries.pop(label, None)
        self._entries[label] = bytes(data)

    def labels(self) -> list[str]:
        """Return the labels added so far, in pack order."""
        return list(self._entries)

    def pack(self) -> bytes:
        """Serialize all added resources into a bundle."""
        parts = [HEADER_STRUCT.pack(BUNDLE_MAGIC, BUNDLE_VERSION, 0, len(self._entries))]
        for label, data in self._entries.items():
            label_bytes = label.encode("utf-8", LABEL_ERRORS)
            parts.append(ENTRY_STRUCT.pack(len(label_bytes), len(data)))
            parts.append(label_bytes)
            parts.append(data)
        return b"".join(parts)


class Resources(Mapping[str, bytes]):
    """
    Read-only view of a parsed bundle, keyed by label.
    """

    def __init__(self, entries: dict[str, bytes]):
        self._entries = entries

    def __getitem__(self, label: str) -> bytes:
        return self._entries[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Resources({len(self._entries)} entries)"


def pack(bindings: Iterable[ResourceBinding]) -> bytes:
    """
    Read every binding's source file and pack the results.

    Args:
        bindings: Bindings in resolution order

    Returns:
        The packed bundle

    Raises:
        UnreadableFile: If a source file cannot be read
    """
    packer = ResourcesPacker()
    for binding in bindings:
        try:
            with open(binding.source_path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise UnreadableFile(
                f"cannot read resource {binding.label!r} from {binding.source_path}: {e}",
                binding.source_path,
            ) from e
        packer.add(binding.label, data)
    return packer.pack()


def build_bundle(
    paths: Iterable[str | Path],
    options: Optional[ResolveOptions] = None,
) -> bytes:
    """
    Resolve input paths and pack them into a bundle.

    This is the single pipeline shared by the command line tool and the
    repack mode of generated modules.
    """
    return pack(resolve(paths, options))


def parse_resources(data: bytes) -> Resources:
    """
    Parse a bundle produced by `pack`.

    Args:
        data: Bundle bytes

    Returns:
        Resources keyed by label (later duplicates win)

    Raises:
        BundleFormatError: If the data is not a valid bundle
    """
    view = memoryview(data)
    if len(view) < HEADER_STRUCT.size:
        raise BundleFormatError("resource data too short for bundle header")

    magic, version, _reserved, count = HEADER_STRUCT.unpack_from(view, 0)
    if magic != BUNDLE_MAGIC:
        raise BundleFormatError(f"bad bundle magic {bytes(magic)!r}")
    if version != BUNDLE_VERSION:
        raise BundleFormatError(f"unsupported bundle version {version}")

    entries: dict[str, bytes] = {}
    offset = HEADER_STRUCT.size
    for index in range(count):
        if offset + ENTRY_STRUCT.size > len(view):
            raise BundleFormatError(f"truncated header for entry {index}")
        label_len, data_len = ENTRY_STRUCT.unpack_from(view, offset)
        offset += ENTRY_STRUCT.size

        end = offset + label_len + data_len
        if end > len(view):
            raise BundleFormatError(f"truncated data for entry {index}")

        label = bytes(view[offset : offset + label_len]).decode("utf-8", LABEL_ERRORS)

        entries.pop(label, None)
        entries[label] = bytes(view[offset + label_len : end])
        offset = end

    if offset != len(view):
        raise BundleFormatError(f"{len(view) - offset} trailing bytes after last entry")

    return Resources(entries)


def unpack(data: bytes) -> dict[str, bytes]:
    """Parse a bundle into a plain `label -> bytes` dictionary."""
    return dict(parse_resources(data))
