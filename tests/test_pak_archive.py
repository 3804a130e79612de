"""
Tests for pulling a .pak out of a .zip.
"""

from pathlib import Path, PurePosixPath

import pytest

from conftest import make_zip, zip_bytes
from Utils.pak_archive import (
    ArchiveEntryNotFoundError,
    InvalidArchiveError,
    extract_first_pak,
    find_and_extract,
    safe_member_name,
)


class TestSafeMemberName:

    @pytest.mark.parametrize("name", [
        "../evil.pak", "a/../../evil.pak", "/etc/evil.pak", "C:/evil.pak", "..\\evil.pak", "",
    ])
    def test_unsafe_names_rejected(self, name):
        assert safe_member_name(name) is None

    def test_nested_name_kept(self):
        assert safe_member_name("Mod/Paks/./Thing.pak") == PurePosixPath("Mod/Paks/Thing.pak")


class TestFindAndExtract:

    def test_first_match_wins(self, tmp_path: Path):
        archive = make_zip(tmp_path / "mod.zip", {
            "readme.txt": b"hi",
            "Data/First.pak": b"first",
            "Second.pak": b"second",
        })
        out = extract_first_pak(archive, tmp_path / "out")
        assert out == tmp_path / "out" / "First.pak"
        assert out.read_bytes() == b"first"
        assert [p.name for p in (tmp_path / "out").iterdir()] == ["First.pak"]

    def test_traversal_entry_skipped(self, tmp_path: Path):
        archive = zip_bytes({"../../escape.pak": b"bad", "safe/Good.pak": b"good"})
        out = extract_first_pak(archive, tmp_path / "out")
        assert out.name == "Good.pak"
        assert not (tmp_path / "escape.pak").exists()

    def test_only_unsafe_entries_is_not_found(self, tmp_path: Path):
        archive = zip_bytes({"../escape.pak": b"bad"})
        with pytest.raises(ArchiveEntryNotFoundError):
            extract_first_pak(archive, tmp_path / "out")

    def test_no_pak_raises(self, tmp_path: Path):
        archive = make_zip(tmp_path / "mod.zip", {"readme.txt": b"hi"})
        with pytest.raises(ArchiveEntryNotFoundError):
            extract_first_pak(archive, tmp_path / "out")

    def test_custom_predicate(self, tmp_path: Path):
        archive = zip_bytes({"a.pak": b"a", "notes.md": b"# notes"})
        out = find_and_extract(archive, lambda rel: rel.suffix == ".md", tmp_path)
        assert out.read_bytes() == b"# notes"

    def test_not_a_zip(self, tmp_path: Path):
        with pytest.raises(InvalidArchiveError):
            extract_first_pak(b"definitely not a zip", tmp_path)
