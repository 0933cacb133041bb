"""
Utility functions for qrcpack.

Includes label and path normalization, binary detection and misc helpers for
deterministic processing.
"""

from __future__ import annotations

import hashlib
import os
import posixpath


def normalize_path(path: str) -> str:
    """Normalize a path for consistent cross-platform comparisons.

    Args:
        path: Path string that may contain platform-specific separators.

    Returns:
        Normalized path using forward slashes.
    """
    return path.replace("\\", "/")


def normalize_label(path: str) -> str:
    """Turn a filesystem-ish path into a resource label.

    Labels are slash-separated and relative: `./` segments and duplicate
    separators are collapsed and any leading slash is dropped.

    Args:
        path: Path or manifest-derived name.

    Returns:
        The normalized label (e.g. `images/icon.png`).
    """
    label = posixpath.normpath(normalize_path(path))
    label = label.lstrip("/")
    if label == ".":
        return ""
    return label


def join_source_path(base_dir: str, name: str) -> str:
    """Join a manifest-relative file name onto the manifest's directory.

    Args:
        base_dir: Directory of the manifest (may be empty for the working directory).
        name: File name as written in the manifest.

    Returns:
        Normalized filesystem path to the file.
    """
    return os.path.normpath(os.path.join(base_dir or os.curdir, name))


def is_binary_data(sample: bytes) -> bool:
    """Heuristically determine whether content is binary.

    Uses a fast null-byte check first (strong binary signal), then falls back to a ratio of
    printable ASCII bytes.

    Args:
        sample: Leading bytes of the content.

    Returns:
        True if the content is likely binary, otherwise False.
    """
    sample = sample[:8192]
    if not sample:
        return False

    if b"\x00" in sample:
        return True

    try:
        sample.decode("utf-8")
        return False
    except UnicodeDecodeError:
        pass

    text_chars = set(range(32, 127)) | {9, 10, 13}
    printable_count = sum(1 for byte in sample if byte in text_chars)
    return printable_count / len(sample) < 0.70


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of `data`."""
    return hashlib.sha256(data).hexdigest()


def format_bytes(size: int) -> str:
    """Format a byte count for display.

    Args:
        size: Number of bytes.

    Returns:
        Human-readable size such as `512 B` or `1.5 KiB`.
    """
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in ("KiB", "MiB", "GiB"):
        value /= 1024
        if value < 1024 or unit == "GiB":
            return f"{value:.1f} {unit}"
    return f"{size} B"
