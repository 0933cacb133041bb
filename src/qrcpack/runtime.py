"""
Runtime support for generated resource modules.

A generated `qrc.py` calls `initialize` once at import time. The repack toggle
is read from the environment by `StartupConfig.from_env` at that call site and
passed in explicitly; nothing below looks at the environment.
"""

from __future__ import annotations

import io
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import DEFAULT_REPACK_ENV_VAR, TRUTHY_ENV_VALUES, ResolveOptions
from .errors import BundleFormatError, QrcError, StartupError
from .packer import Resources, build_bundle, parse_resources

URL_SCHEME = "qrc:"


@dataclass(frozen=True)
class StartupConfig:
    """How a generated module obtains its bundle.

    Attributes:
        repack: Rebuild the bundle from the original paths instead of using the
            embedded data.
        env_var: Name of the environment variable the setting came from.
    """

    repack: bool = False
    env_var: str = DEFAULT_REPACK_ENV_VAR

    @classmethod
    def from_env(
        cls,
        env_var: str = DEFAULT_REPACK_ENV_VAR,
        environ: Optional[Mapping[str, str]] = None,
    ) -> StartupConfig:
        """Build a `StartupConfig` from an environment mapping.

        Args:
            env_var: Variable holding the repack toggle.
            environ: Environment to read (defaults to `os.environ`).

        Returns:
            A config with `repack` set when the variable holds a truthy value.
        """
        if environ is None:
            environ = os.environ
        value = environ.get(env_var, "").strip().lower()
        return cls(repack=value in TRUTHY_ENV_VALUES, env_var=env_var)


def label_from_url(name: str) -> str:
    """Map `qrc:///path`, `qrc:/path` or a bare label to a label."""
    if name.startswith(URL_SCHEME):
        name = name[len(URL_SCHEME):]
    return name.lstrip("/")


class ResourceRegistry:
    """
    Process-wide store of loaded resources.

    Bundles loaded later take precedence over earlier ones for the same label.
    """

    def __init__(self) -> None:
        self._resources: dict[str, bytes] = {}

    def load(self, resources: Mapping[str, bytes]) -> None:
        """Make every resource in `resources` available."""
        self._resources.update(resources)

    def exists(self, name: str) -> bool:
        """Return True if a resource with that label or URL is loaded."""
        return label_from_url(name) in self._resources

    def read(self, name: str) -> bytes:
        """
        Return the content of a resource.

        Args:
            name: Label or `qrc:` URL

        Raises:
            KeyError: If no loaded resource has that label
        """
        label = label_from_url(name)
        try:
            return self._resources[label]
        except KeyError:
            raise KeyError(f"resource not found: {name}") from None

    def open(self, name: str) -> io.BytesIO:
        """Return a binary file-like object over a resource."""
        return io.BytesIO(self.read(name))

    def labels(self) -> list[str]:
        """Return the loaded labels, sorted."""
        return sorted(self._resources)

    def clear(self) -> None:
        """Forget every loaded resource."""
        self._resources.clear()


default_registry = ResourceRegistry()


def load_resources(resources: Mapping[str, bytes]) -> None:
    """Load resources into the process-wide registry."""
    default_registry.load(resources)


def read_resource(name: str) -> bytes:
    """Read a resource from the process-wide registry."""
    return default_registry.read(name)


def open_resource(name: str) -> io.BytesIO:
    """Open a resource from the process-wide registry."""
    return default_registry.open(name)


def initialize(
    config: StartupConfig,
    embedded: bytes,
    paths: Iterable[str | Path],
    options: Optional[ResolveOptions] = None,
    registry: Optional[ResourceRegistry] = None,
) -> Resources:
    """
    Load a generated module's resources.

    In repack mode the bundle is rebuilt from `paths`, which must still exist
    relative to the working directory. Otherwise the embedded bundle is used.

    Args:
        config: Startup configuration
        embedded: Bundle embedded in the generated module
        paths: Original input paths, for repack mode
        options: Resolution options used at generation time
        registry: Registry to load into (defaults to the process-wide one)

    Returns:
        The parsed resources

    Raises:
        StartupError: If repacking or parsing fails
    """
    data = embedded
    if config.repack:
        try:
            data = build_bundle(paths, options)
        except QrcError as e:
            raise StartupError(f"cannot repack qrc resources: {e}", e.path) from e

    try:
        resources = parse_resources(data)
    except BundleFormatError as e:
        raise StartupError(f"cannot parse bundled resources data: {e}") from e

    if registry is None:
        registry = default_registry
    registry.load(resources)
    return resources
