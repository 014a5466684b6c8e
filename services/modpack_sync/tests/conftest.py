from __future__ import annotations

from dataclasses import dataclass
import hashlib
import io
import json
from pathlib import Path
from typing import Any, Callable
import zipfile

import pytest

from modpack_sync.application.settings import SyncSettings
from modpack_sync.domain.errors import DownloadFailure
from modpack_sync.domain.json_types import JsonValue

API = "https://api.modrinth.test"
CDN = "https://cdn.modrinth.test"


@dataclass
class Call:
    kind: str
    url: str
    params: dict[str, Any] | None = None


class FakeHttp:
    """In-memory HttpClientPort: JSON routes and downloadable blobs keyed by URL."""

    def __init__(self) -> None:
        self.json_routes: dict[str, JsonValue] = {}
        self.files: dict[str, bytes] = {}
        self.calls: list[Call] = []

    def _missing(self, url: str) -> DownloadFailure:
        return DownloadFailure(
            f"GET {url} failed with HTTP 404", details={"url": url, "status": 404}
        )

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> JsonValue:
        self.calls.append(Call("json", url, params))
        if url not in self.json_routes:
            raise self._missing(url)
        return self.json_routes[url]

    async def download(self, url: str, dest: Path) -> Path:
        self.calls.append(Call("download", url))
        if url not in self.files:
            raise self._missing(url)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.files[url])
        return dest

    def downloads(self) -> list[str]:
        return [c.url for c in self.calls if c.kind == "download"]

    def api_calls(self) -> list[Call]:
        return [c for c in self.calls if c.kind == "json"]

    def reset_calls(self) -> None:
        self.calls.clear()


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def build_mrpack(
    files: list[dict[str, Any]],
    *,
    name: str = "Cool Pack",
    version_id: str = "1.0.0",
    dependencies: dict[str, str] | None = None,
    overrides: dict[str, bytes] | None = None,
    server_overrides: dict[str, bytes] | None = None,
    client_overrides: dict[str, bytes] | None = None,
) -> bytes:
    index = {
        "formatVersion": 1,
        "game": "minecraft",
        "versionId": version_id,
        "name": name,
        "files": files,
        "dependencies": dependencies
        if dependencies is not None
        else {"minecraft": "1.20.1", "fabric-loader": "0.15.7"},
    }
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("modrinth.index.json", json.dumps(index))
        for prefix, members in (
            ("overrides/", overrides),
            ("server-overrides/", server_overrides),
            ("client-overrides/", client_overrides),
        ):
            for rel, data in (members or {}).items():
                zf.writestr(prefix + rel, data)
    return buffer.getvalue()


def pack_file(http: FakeHttp, path: str, data: bytes, **extra: Any) -> dict[str, Any]:
    """Register ``data`` on the fake CDN and return its index entry."""
    url = f"{CDN}/files/{path}"
    http.files[url] = data
    entry: dict[str, Any] = {
        "path": path,
        "downloads": [url],
        "hashes": {"sha1": sha1(data)},
        "fileSize": len(data),
    }
    entry.update(extra)
    return entry


def publish_version(
    http: FakeHttp,
    archive: bytes,
    *,
    slug: str = "cool-pack",
    project_id: str = "P1",
    version_id: str = "V1",
    version_number: str = "1.0.0",
    version_type: str = "release",
    date_published: str = "2024-01-01T00:00:00Z",
) -> dict[str, Any]:
    url = f"{CDN}/data/{project_id}/versions/{version_id}/{slug}-{version_number}.mrpack"
    http.files[url] = archive
    version = {
        "id": version_id,
        "project_id": project_id,
        "name": f"{slug} {version_number}",
        "version_number": version_number,
        "version_type": version_type,
        "date_published": date_published,
        "loaders": ["fabric"],
        "game_versions": ["1.20.1"],
        "files": [
            {
                "url": url,
                "filename": f"{slug}-{version_number}.mrpack",
                "primary": True,
                "hashes": {"sha1": sha1(archive)},
            }
        ],
    }
    http.json_routes[f"{API}/v2/project/{slug}"] = {"id": project_id, "slug": slug}
    http.json_routes[f"{API}/v2/project/{project_id}"] = {"id": project_id, "slug": slug}
    versions = http.json_routes.setdefault(f"{API}/v2/project/{project_id}/version", [])
    assert isinstance(versions, list)
    versions.append(version)
    http.json_routes[f"{API}/v2/version/{version_id}"] = version
    return version


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "server"
    out.mkdir()
    return out


@pytest.fixture
def make_settings(output_dir: Path) -> Callable[..., SyncSettings]:
    def _make(**overrides: Any) -> SyncSettings:
        values: dict[str, Any] = {
            "project": "cool-pack",
            "output_directory": output_dir,
            "api_base_url": API,
        }
        values.update(overrides)
        return SyncSettings(**values)

    return _make


@pytest.fixture
def mrpack() -> Callable[..., bytes]:
    return build_mrpack


@pytest.fixture
def add_pack_file() -> Callable[..., dict[str, Any]]:
    return pack_file


@pytest.fixture
def publish() -> Callable[..., dict[str, Any]]:
    return publish_version
