"""
Tests for exporting and importing mod bundles.
"""

import json
import zipfile
from pathlib import Path

import pytest

from conftest import make_zip, write_pak
from Utils.mod_bundle import BUNDLE_MANIFEST, CorruptBundleError, export_bundle, import_bundle
from Utils.mod_info import ModInfo


def _records(config):
    on = write_pak(config.mods_dir, "On.pak", b"on")
    off = write_pak(config.unloaded_dir, "Off.pak", b"off")
    return [
        ModInfo("On", "1.0", "a", "first", 33, on, True),
        ModInfo("Off", "Local", "Local", "", None, off, False),
    ]


class TestExport:

    def test_layout(self, config, tmp_path: Path):
        bundle = tmp_path / "out" / "bundle.zip"
        assert export_bundle(_records(config), bundle) == 2
        with zipfile.ZipFile(bundle) as zf:
            names = zf.namelist()
            assert names[0] == BUNDLE_MANIFEST
            assert sorted(names[1:]) == ["mods/Off.pak", "mods/On.pak"]
            manifest = json.loads(zf.read(BUNDLE_MANIFEST))
        assert [m["name"] for m in manifest] == ["On", "Off"]

    def test_missing_file_skipped(self, config, tmp_path: Path):
        records = _records(config)
        records.append(ModInfo("Gone", installed_path=config.mods_dir / "Gone.pak", enabled=True))
        assert export_bundle(records, tmp_path / "b.zip") == 2


class TestImport:

    def test_round_trip_into_fresh_dirs(self, config, tmp_path: Path):
        bundle = tmp_path / "bundle.zip"
        export_bundle(_records(config), bundle)

        mods_dir = tmp_path / "other" / "mods"
        unloaded_dir = tmp_path / "other" / "unloaded"
        imported = import_bundle(bundle, mods_dir, unloaded_dir)

        assert [r.name for r in imported] == ["On", "Off"]
        assert imported[0].installed_path == mods_dir / "On.pak"
        assert imported[1].installed_path == unloaded_dir / "Off.pak"
        assert (mods_dir / "On.pak").read_bytes() == b"on"
        assert (unloaded_dir / "Off.pak").read_bytes() == b"off"
        assert imported[0].nexus_mod_id == 33 and imported[0].description == "first"

    def test_record_without_file_skipped(self, tmp_path: Path):
        manifest = json.dumps([
            {"name": "Here", "installed_path": "/x/Here.pak", "enabled": True},
            {"name": "Missing", "installed_path": "/x/Missing.pak", "enabled": True},
        ])
        bundle = make_zip(tmp_path / "b.zip", {BUNDLE_MANIFEST: manifest.encode(),
                                               "mods/Here.pak": b"here"})
        imported = import_bundle(bundle, tmp_path / "mods", tmp_path / "unloaded")
        assert [r.name for r in imported] == ["Here"]

    def test_missing_manifest(self, tmp_path: Path):
        bundle = make_zip(tmp_path / "b.zip", {"mods/A.pak": b"a"})
        with pytest.raises(CorruptBundleError):
            import_bundle(bundle, tmp_path / "mods", tmp_path / "unloaded")

    def test_unparseable_manifest(self, tmp_path: Path):
        bundle = make_zip(tmp_path / "b.zip", {BUNDLE_MANIFEST: b"{not json"})
        with pytest.raises(CorruptBundleError):
            import_bundle(bundle, tmp_path / "mods", tmp_path / "unloaded")

    def test_not_a_zip(self, tmp_path: Path):
        bundle = tmp_path / "b.zip"
        bundle.write_bytes(b"plain text")
        with pytest.raises(CorruptBundleError):
            import_bundle(bundle, tmp_path / "mods", tmp_path / "unloaded")

    def test_import_removes_copy_in_other_folder(self, tmp_path: Path):
        mods_dir = tmp_path / "mods"
        unloaded_dir = tmp_path / "unloaded"
        write_pak(unloaded_dir, "Dup.pak", b"old")
        manifest = json.dumps([{"name": "Dup", "installed_path": "/x/Dup.pak", "enabled": True}])
        bundle = make_zip(tmp_path / "b.zip", {BUNDLE_MANIFEST: manifest.encode(),
                                               "mods/Dup.pak": b"new"})
        import_bundle(bundle, mods_dir, unloaded_dir)
        assert (mods_dir / "Dup.pak").read_bytes() == b"new"
        assert not (unloaded_dir / "Dup.pak").exists()
        assert [p.name for p in mods_dir.iterdir()] == ["Dup.pak"]

    def test_twins_keep_their_own_bytes(self, config, tmp_path: Path):
        """Same file name enabled in one folder and disabled in the other."""
        active = write_pak(config.mods_dir, "Twin.pak", b"active")
        inactive = write_pak(config.unloaded_dir, "Twin.pak", b"inactive")
        records = [ModInfo("Twin", installed_path=active, enabled=True),
                   ModInfo("Twin", installed_path=inactive, enabled=False)]
        bundle = tmp_path / "b.zip"
        assert export_bundle(records, bundle) == 2

        mods_dir = tmp_path / "other" / "mods"
        unloaded_dir = tmp_path / "other" / "unloaded"
        imported = import_bundle(bundle, mods_dir, unloaded_dir)
        assert [r.enabled for r in imported] == [True, False]
        assert (mods_dir / "Twin.pak").read_bytes() == b"active"
        assert (unloaded_dir / "Twin.pak").read_bytes() == b"inactive"
