"""
Tests for moving mods between ~mods and unloaded_mods.
"""

import pytest

from conftest import write_pak
from Utils.mod_toggle import CollisionPolicy, ModNotFoundError, ModToggler


def _listing(config):
    return (
        sorted(p.name for p in config.mods_dir.iterdir()) if config.mods_dir.is_dir() else [],
        sorted(p.name for p in config.unloaded_dir.iterdir()) if config.unloaded_dir.is_dir() else [],
    )


class TestToggle:

    def test_disable_moves_to_unloaded(self, config):
        write_pak(config.mods_dir, "Mod.pak")
        new_path = ModToggler(config).disable(config.mods_dir / "Mod.pak")
        assert new_path == config.unloaded_dir / "Mod.pak"
        assert _listing(config) == ([], ["Mod.pak"])

    def test_enable_creates_mods_dir(self, config):
        write_pak(config.unloaded_dir, "Mod.pak")
        new_path = ModToggler(config).enable(config.unloaded_dir / "Mod.pak")
        assert new_path == config.mods_dir / "Mod.pak"
        assert new_path.read_bytes() == b"PAKDATA"

    def test_disable_then_enable_restores(self, config):
        original = write_pak(config.mods_dir, "Mod.pak")
        toggler = ModToggler(config)
        toggler.enable(toggler.disable(original))
        assert _listing(config) == (["Mod.pak"], [])

    def test_keyed_by_file_name(self, config):
        """A stale directory in the given path doesn't matter."""
        write_pak(config.unloaded_dir, "Mod.pak")
        ModToggler(config).enable("/somewhere/else/Mod.pak")
        assert _listing(config) == (["Mod.pak"], [])

    def test_enable_already_enabled_is_noop(self, config):
        write_pak(config.mods_dir, "Mod.pak")
        assert ModToggler(config).enable(config.mods_dir / "Mod.pak") == config.mods_dir / "Mod.pak"
        assert _listing(config) == (["Mod.pak"], [])

    def test_missing_everywhere_raises_and_changes_nothing(self, config):
        write_pak(config.mods_dir, "Other.pak")
        config.unloaded_dir.mkdir(parents=True)
        before = _listing(config)
        with pytest.raises(ModNotFoundError):
            ModToggler(config).enable(config.unloaded_dir / "Ghost.pak")
        assert _listing(config) == before

    def test_keep_policy_leaves_both_copies(self, config):
        write_pak(config.mods_dir, "Mod.pak", b"active")
        write_pak(config.unloaded_dir, "Mod.pak", b"inactive")
        ModToggler(config).enable(config.unloaded_dir / "Mod.pak")
        assert (config.mods_dir / "Mod.pak").read_bytes() == b"active"
        assert (config.unloaded_dir / "Mod.pak").read_bytes() == b"inactive"

    def test_replace_policy_overwrites_destination(self, config):
        write_pak(config.mods_dir, "Mod.pak", b"active")
        write_pak(config.unloaded_dir, "Mod.pak", b"inactive")
        ModToggler(config, CollisionPolicy.REPLACE).enable(config.unloaded_dir / "Mod.pak")
        assert (config.mods_dir / "Mod.pak").read_bytes() == b"inactive"
        assert _listing(config) == (["Mod.pak"], [])

    def test_set_enabled_dispatches(self, config):
        write_pak(config.mods_dir, "Mod.pak")
        toggler = ModToggler(config)
        assert toggler.set_enabled("Mod.pak", False) == config.unloaded_dir / "Mod.pak"
        assert toggler.set_enabled("Mod.pak", True) == config.mods_dir / "Mod.pak"

    def test_uppercase_extension_toggles_in_place(self, config):
        """A Foo.PAK found by reconciliation keeps its on-disk name when moved."""
        write_pak(config.mods_dir, "Loud.PAK")
        toggler = ModToggler(config)
        assert toggler.disable(config.mods_dir / "Loud.PAK") == config.unloaded_dir / "Loud.PAK"
        assert _listing(config) == ([], ["Loud.PAK"])
        assert toggler.enable("Loud.PAK") == config.mods_dir / "Loud.PAK"
        assert _listing(config) == (["Loud.PAK"], [])
