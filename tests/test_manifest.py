"""Tests for the manifest module."""

import os

import pytest

from qrcpack.config import ManifestEntry, ResourceBinding
from qrcpack.errors import MalformedManifest, PathNotFound
from qrcpack.manifest import parse_manifest, read_manifest


def write_manifest(path, body):
    path.write_text(f'<?xml version="1.0" encoding="UTF-8"?>\n<RCC>\n{body}\n</RCC>\n')
    return path


class TestReadManifest:
    """Tests for read_manifest."""

    def test_groups_and_entries(self, tmp_path):
        """Test reading several groups in document order."""
        manifest = write_manifest(
            tmp_path / "qml.qrc",
            """
            <qresource prefix="/">
                <file>main.qml</file>
            </qresource>
            <qresource prefix="images">
                <file alias="icon.png">assets/a.png</file>
                <file>assets/b.png</file>
            </qresource>
            """,
        )

        entries = read_manifest(manifest)

        assert entries == [
            ManifestEntry(group_prefix="/", file_name="main.qml"),
            ManifestEntry(group_prefix="images", file_name="assets/a.png", alias="icon.png"),
            ManifestEntry(group_prefix="images", file_name="assets/b.png"),
        ]

    def test_missing_prefix_defaults_to_empty(self, tmp_path):
        manifest = write_manifest(tmp_path / "r.qrc", "<qresource><file>a.txt</file></qresource>")

        assert read_manifest(manifest) == [ManifestEntry(group_prefix="", file_name="a.txt")]

    def test_empty_alias_is_ignored(self, tmp_path):
        manifest = write_manifest(
            tmp_path / "r.qrc", '<qresource prefix="p"><file alias="">a.txt</file></qresource>'
        )

        assert read_manifest(manifest)[0].alias is None

    def test_empty_manifest(self, tmp_path):
        manifest = write_manifest(tmp_path / "r.qrc", "")

        assert read_manifest(manifest) == []

    def test_wrong_root_element(self, tmp_path):
        """Test that a non-RCC document is rejected."""
        manifest = tmp_path / "r.qrc"
        manifest.write_text("<resources><qresource/></resources>")

        with pytest.raises(MalformedManifest) as exc_info:
            read_manifest(manifest)

        assert "RCC" in str(exc_info.value)
        assert exc_info.value.path == str(manifest)

    def test_file_without_name(self, tmp_path):
        manifest = write_manifest(tmp_path / "r.qrc", '<qresource prefix="p"><file/></qresource>')

        with pytest.raises(MalformedManifest):
            read_manifest(manifest)

    def test_invalid_xml(self, tmp_path):
        manifest = tmp_path / "r.qrc"
        manifest.write_text("not xml at all")

        with pytest.raises(MalformedManifest):
            read_manifest(manifest)

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(PathNotFound):
            read_manifest(tmp_path / "missing.qrc")


class TestManifestEntry:
    """Tests for label and source path composition."""

    def test_alias_replaces_file_name(self):
        entry = ManifestEntry(group_prefix="images", file_name="a.png", alias="icon.png")

        assert entry.label == "images/icon.png"

    def test_root_prefix_is_stripped(self):
        entry = ManifestEntry(group_prefix="/", file_name="main.qml")

        assert entry.label == "main.qml"

    def test_nested_prefix(self):
        entry = ManifestEntry(group_prefix="/ui/controls/", file_name="./Button.qml")

        assert entry.label == "ui/controls/Button.qml"

    def test_source_path_is_relative_to_manifest_dir(self):
        entry = ManifestEntry(group_prefix="images", file_name="a.png", alias="icon.png")

        assert entry.source_path("dir") == os.path.join("dir", "a.png")
        assert entry.source_path("") == "a.png"


class TestParseManifest:
    """Tests for parse_manifest."""

    def test_manifest_expansion(self, tmp_path):
        """A prefixed, aliased entry becomes one binding."""
        (tmp_path / "dir").mkdir()
        manifest = write_manifest(
            tmp_path / "dir" / "res.manifest",
            '<qresource prefix="images"><file alias="icon.png">a.png</file></qresource>',
        )

        bindings = parse_manifest(manifest)

        assert bindings == [
            ResourceBinding(label="images/icon.png", source_path=str(tmp_path / "dir" / "a.png"))
        ]

    def test_empty_label_is_rejected(self, tmp_path):
        manifest = write_manifest(
            tmp_path / "r.qrc", '<qresource prefix="/"><file alias="/">a.png</file></qresource>'
        )

        with pytest.raises(MalformedManifest):
            parse_manifest(manifest)
