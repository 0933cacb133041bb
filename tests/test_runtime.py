"""Tests for the runtime module and generated module startup."""

import importlib.util
import os
import sys

import pytest

from qrcpack import runtime
from qrcpack.codegen import render_module
from qrcpack.config import ResolveOptions
from qrcpack.errors import StartupError
from qrcpack.packer import build_bundle
from qrcpack.runtime import ResourceRegistry, StartupConfig, initialize, label_from_url


@pytest.fixture(autouse=True)
def clean_registry():
    """Keep the process-wide registry empty between tests."""
    runtime.default_registry.clear()
    yield
    runtime.default_registry.clear()


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Create a project with a resource directory and chdir into it."""
    (tmp_path / "assets").mkdir()
    (tmp_path / "assets" / "main.qml").write_text("Item {}\n")
    (tmp_path / "assets" / "notes.tmp").write_text("scratch\n")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def import_generated(path, name="qrc_generated"):
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestStartupConfig:
    """Tests for reading the repack toggle."""

    @pytest.mark.parametrize("value", ["1", "true", "YES", " on "])
    def test_truthy_values(self, value):
        config = StartupConfig.from_env("QRC_REPACK", {"QRC_REPACK": value})

        assert config.repack

    @pytest.mark.parametrize("value", ["", "0", "false", "no", "2"])
    def test_falsy_values(self, value):
        assert not StartupConfig.from_env("QRC_REPACK", {"QRC_REPACK": value}).repack

    def test_unset(self):
        assert StartupConfig.from_env("QRC_REPACK", {}) == StartupConfig(repack=False)

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("OTHER_TOGGLE", "1")

        config = StartupConfig.from_env("OTHER_TOGGLE")

        assert config == StartupConfig(repack=True, env_var="OTHER_TOGGLE")


class TestResourceRegistry:
    """Tests for ResourceRegistry."""

    def test_url_forms(self):
        assert label_from_url("qrc:///images/a.png") == "images/a.png"
        assert label_from_url("qrc:/images/a.png") == "images/a.png"
        assert label_from_url("images/a.png") == "images/a.png"

    def test_read_and_open(self):
        registry = ResourceRegistry()
        registry.load({"images/a.png": b"png"})

        assert registry.exists("qrc:///images/a.png")
        assert registry.read("images/a.png") == b"png"
        assert registry.open("qrc:///images/a.png").read() == b"png"
        assert registry.labels() == ["images/a.png"]

    def test_later_bundle_wins(self):
        registry = ResourceRegistry()
        registry.load({"a": b"1", "b": b"1"})
        registry.load({"a": b"2"})

        assert registry.read("a") == b"2"
        assert registry.read("b") == b"1"

    def test_missing_resource(self):
        with pytest.raises(KeyError):
            ResourceRegistry().read("qrc:///missing")

    def test_clear(self):
        registry = ResourceRegistry()
        registry.load({"a": b"1"})
        registry.clear()

        assert registry.labels() == []
        assert not registry.exists("a")


class TestDefaultRegistry:
    """Tests for the process-wide registry helpers."""

    def test_load_read_and_open(self):
        runtime.load_resources({"a": b"1", "dir/b": b"2"})

        assert runtime.read_resource("qrc:///a") == b"1"
        assert runtime.open_resource("qrc:/dir/b").read() == b"2"
        assert runtime.default_registry.labels() == ["a", "dir/b"]


class TestInitialize:
    """Tests for the startup routine."""

    def test_embedded_mode(self, project):
        embedded = build_bundle(["assets"])
        registry = ResourceRegistry()

        resources = initialize(StartupConfig(repack=False), embedded, ["assets"], registry=registry)

        assert dict(resources) == {
            "assets/main.qml": b"Item {}\n",
            "assets/notes.tmp": b"scratch\n",
        }
        assert registry.read("qrc:///assets/main.qml") == b"Item {}\n"

    def test_repack_mode_reads_filesystem(self, project):
        embedded = build_bundle(["assets"])
        (project / "assets" / "main.qml").write_text("Rectangle {}\n")

        resources = initialize(
            StartupConfig(repack=True),
            embedded,
            ["assets"],
            ResolveOptions(exclude_globs=("*.tmp",)),
        )

        assert dict(resources) == {"assets/main.qml": b"Rectangle {}\n"}
        assert runtime.read_resource("assets/main.qml") == b"Rectangle {}\n"

    def test_repack_failure_is_startup_error(self, project):
        with pytest.raises(StartupError) as exc_info:
            initialize(StartupConfig(repack=True), b"", ["missing"])

        assert "cannot repack" in str(exc_info.value)

    @pytest.mark.skipif(
        not sys.platform.startswith("linux"), reason="needs byte file names"
    )
    def test_repack_with_undecodable_file_name(self, project):
        raw_path = os.path.join(os.fsencode(project / "assets"), b"\xff.txt")
        with open(raw_path, "wb") as f:
            f.write(b"raw")

        resources = initialize(StartupConfig(repack=True), b"", ["assets"])

        assert resources["assets/" + os.fsdecode(b"\xff.txt")] == b"raw"

    def test_corrupt_bundle_is_startup_error(self, project):
        with pytest.raises(StartupError) as exc_info:
            initialize(StartupConfig(repack=False), b"garbage", ["assets"])

        assert "cannot parse" in str(exc_info.value)


class TestGeneratedModule:
    """Tests importing a rendered module end to end."""

    def _write(self, project, options=None):
        paths = ["assets"]
        source = render_module(build_bundle(paths, options), paths, options)
        target = project / "qrc_generated.py"
        target.write_text(source)
        return target

    def test_import_loads_embedded_bundle(self, project, monkeypatch):
        monkeypatch.delenv("QRC_REPACK", raising=False)
        target = self._write(project)
        (project / "assets" / "main.qml").write_text("changed on disk\n")

        module = import_generated(target)

        assert runtime.read_resource("qrc:///assets/main.qml") == b"Item {}\n"
        assert module.resources["assets/notes.tmp"] == b"scratch\n"

    def test_import_repacks_when_toggle_set(self, project, monkeypatch):
        target = self._write(project, ResolveOptions(exclude_globs=("*.tmp",)))
        (project / "assets" / "main.qml").write_text("changed on disk\n")
        monkeypatch.setenv("QRC_REPACK", "1")

        import_generated(target)

        assert runtime.open_resource("assets/main.qml").read() == b"changed on disk\n"
        assert not runtime.default_registry.exists("assets/notes.tmp")

    def test_import_fails_when_repack_paths_are_gone(self, project, monkeypatch):
        target = self._write(project)
        (project / "assets" / "main.qml").unlink()
        (project / "assets" / "notes.tmp").unlink()
        (project / "assets").rmdir()
        monkeypatch.setenv("QRC_REPACK", "1")

        with pytest.raises(StartupError):
            import_generated(target)
