"""
Shared test fixtures.
"""

import json
import zipfile
from pathlib import Path

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from Nexus.nexus_api import NexusDownloadLink, NexusModFile, NexusModFiles, NexusModInfo
from Utils.mod_manifest import ManifestStore
from Utils.settings import ManagerConfig


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch) -> Path:
    """Keep settings.json / mod_list.json out of the real ~/.config."""
    home = tmp_path / "xdg_config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg_data"))
    return home


@pytest.fixture
def game_dir(tmp_path: Path) -> Path:
    d = tmp_path / "game"
    d.mkdir()
    return d


@pytest.fixture
def config(tmp_path: Path, game_dir: Path) -> ManagerConfig:
    return ManagerConfig(
        mods_dir=game_dir / "Stalker2" / "Content" / "Paks" / "~mods",
        unloaded_dir=game_dir / "Stalker2" / "ModManager" / "unloaded_mods",
        manifest_path=tmp_path / "state" / "mod_list.json",
    )


@pytest.fixture
def store(config: ManagerConfig) -> ManifestStore:
    return ManifestStore(config.manifest_path)


def write_pak(directory: Path, name: str, data: bytes = b"PAKDATA") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(data)
    return path


def make_zip(path: Path, entries: dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return path


def zip_bytes(entries: dict[str, bytes]) -> bytes:
    import io
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


def fake_response(status: int = 200, json_body=None, content: bytes | None = None,
                  headers: dict | None = None) -> requests.Response:
    """A real requests.Response with a preloaded body."""
    resp = requests.Response()
    resp.status_code = status
    resp.reason = "OK" if status < 400 else "Error"
    if content is None:
        content = json.dumps(json_body).encode("utf-8") if json_body is not None else b""
    resp._content = content
    resp._content_consumed = True
    resp.encoding = "utf-8"
    resp.headers = CaseInsensitiveDict(headers or {})
    return resp


class FakeNexusAPI:
    """In-memory stand-in for NexusAPI used by install tests."""

    def __init__(self, mods: dict[int, dict] | None = None):
        # mod_id -> {"info": NexusModInfo, "files": [NexusModFile], "data": {file_id: bytes}}
        self.mods = mods or {}
        self.link_calls: list[tuple] = []
        self.fail_mods: dict[int, Exception] = {}

    def add_mod(self, mod_id: int, name: str, files: list[NexusModFile],
                data: dict[int, bytes], author: str = "Author") -> None:
        self.mods[mod_id] = {
            "info": NexusModInfo(mod_id=mod_id, name=name, author=author,
                                 description=f"{name} description"),
            "files": files,
            "data": data,
        }

    def get_mod(self, mod_id: int) -> NexusModInfo:
        if mod_id in self.fail_mods:
            raise self.fail_mods[mod_id]
        from Nexus.nexus_api import NexusAPIError
        if mod_id not in self.mods:
            raise NexusAPIError("Not found (HTTP 404)", 404)
        return self.mods[mod_id]["info"]

    def get_mod_files(self, mod_id: int) -> NexusModFiles:
        return NexusModFiles(files=list(self.mods[mod_id]["files"]))

    def get_download_links(self, mod_id, file_id, key=None, expires=None):
        self.link_calls.append((mod_id, file_id, key, expires))
        return [NexusDownloadLink(name="Nexus CDN", short_name="cdn",
                                  URI=f"https://cdn.example/{mod_id}/{file_id}")]

    def fetch(self, url: str, progress_cb=None) -> bytes:
        mod_id, file_id = (int(x) for x in url.rsplit("/", 2)[-2:])
        return self.mods[mod_id]["data"][file_id]


def main_file(file_id: int, version: str, file_name: str, category_id: int = 1) -> NexusModFile:
    return NexusModFile(
        file_id=file_id,
        name=file_name,
        version=version,
        category_id=category_id,
        category_name={1: "MAIN", 3: "OPTIONAL"}.get(category_id, ""),
        file_name=file_name,
    )
