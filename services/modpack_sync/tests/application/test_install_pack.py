import pytest

from modpack_sync.adapters.loader_marker.filesystem import FileLoaderMarker
from modpack_sync.adapters.policy.index_validator import IndexPolicyEngine
from modpack_sync.adapters.workspace.filesystem import FilesystemWorkspace
from modpack_sync.application.install_pack import PackInstaller
from modpack_sync.domain.errors import ArchiveCorrupt, DownloadFailure
from modpack_sync.domain.pack import FetchedPack, PackDependencies


def _installer(fake_http, output_dir, **kwargs):
    return PackInstaller(
        fake_http,
        FilesystemWorkspace(output_dir),
        IndexPolicyEngine(),
        FileLoaderMarker(output_dir),
        **kwargs,
    )


def _pack(tmp_path, data):
    archive = tmp_path / "pack.mrpack"
    archive.write_bytes(data)
    return FetchedPack(archive_path=archive, project_slug="cool-pack", version_id="V1")


def _rel(output_dir, paths):
    return sorted(p.relative_to(output_dir).as_posix() for p in paths)


@pytest.mark.asyncio
async def test_installs_files_and_overrides(fake_http, tmp_path, output_dir, mrpack, add_pack_file):
    files = [add_pack_file(fake_http, "mods/a.jar", b"a"), add_pack_file(fake_http, "mods/b.jar", b"b")]
    pack = _pack(tmp_path, mrpack(files, overrides={"config/x.toml": b"x"}))

    result = await _installer(fake_http, output_dir).process_modpack(pack)

    assert _rel(output_dir, result.files) == ["config/x.toml", "mods/a.jar", "mods/b.jar"]
    assert result.dependencies == PackDependencies("fabric", "0.15.7", "1.20.1")
    assert result.skipped == []
    assert (output_dir / "mods" / "b.jar").read_bytes() == b"b"


@pytest.mark.asyncio
async def test_server_overrides_win_and_client_overrides_are_ignored(
    fake_http, tmp_path, output_dir, mrpack
):
    pack = _pack(
        tmp_path,
        mrpack(
            [],
            overrides={"config/x.toml": b"common"},
            server_overrides={"config/x.toml": b"server"},
            client_overrides={"options.txt": b"client"},
        ),
    )

    result = await _installer(fake_http, output_dir).process_modpack(pack)

    assert (output_dir / "config" / "x.toml").read_bytes() == b"server"
    assert not (output_dir / "options.txt").exists()
    assert _rel(output_dir, result.files) == ["config/x.toml"]


@pytest.mark.asyncio
async def test_client_only_entries_are_skipped(fake_http, tmp_path, output_dir, mrpack, add_pack_file):
    files = [
        add_pack_file(fake_http, "mods/server.jar", b"s"),
        add_pack_file(fake_http, "mods/shaders.jar", b"c", env={"client": "required", "server": "unsupported"}),
    ]
    pack = _pack(tmp_path, mrpack(files))

    result = await _installer(fake_http, output_dir).process_modpack(pack)

    assert _rel(output_dir, result.files) == ["mods/server.jar"]
    assert "https://cdn.modrinth.test/files/mods/shaders.jar" not in fake_http.downloads()


@pytest.mark.asyncio
async def test_falls_back_to_next_download_url(fake_http, tmp_path, output_dir, mrpack, add_pack_file):
    entry = add_pack_file(fake_http, "mods/a.jar", b"a")
    entry["downloads"] = ["https://mirror.invalid/a.jar", *entry["downloads"]]
    pack = _pack(tmp_path, mrpack([entry]))

    await _installer(fake_http, output_dir).process_modpack(pack)

    assert (output_dir / "mods" / "a.jar").read_bytes() == b"a"
    assert fake_http.downloads()[0] == "https://mirror.invalid/a.jar"


@pytest.mark.asyncio
async def test_hash_mismatch_tries_next_url_then_fails(fake_http, tmp_path, output_dir, mrpack, add_pack_file):
    entry = add_pack_file(fake_http, "mods/a.jar", b"a")
    fake_http.files[entry["downloads"][0]] = b"corrupted"
    pack = _pack(tmp_path, mrpack([entry]))

    with pytest.raises(DownloadFailure) as excinfo:
        await _installer(fake_http, output_dir).process_modpack(pack)

    assert excinfo.value.details["path"] == "mods/a.jar"
    assert not (output_dir / "mods" / "a.jar").exists()


@pytest.mark.asyncio
async def test_ignored_missing_file_is_skipped(fake_http, tmp_path, output_dir, mrpack, add_pack_file):
    files = [add_pack_file(fake_http, "mods/a.jar", b"a"), add_pack_file(fake_http, "mods/gone.jar", b"g")]
    del fake_http.files["https://cdn.modrinth.test/files/mods/gone.jar"]
    pack = _pack(tmp_path, mrpack(files))

    result = await _installer(
        fake_http, output_dir, ignore_missing_files=frozenset({"mods/gone.jar"})
    ).process_modpack(pack)

    assert result.skipped == ["mods/gone.jar"]
    assert _rel(output_dir, result.files) == ["mods/a.jar"]


@pytest.mark.asyncio
async def test_unignored_missing_file_fails_and_cleans_staging(
    fake_http, tmp_path, output_dir, mrpack, add_pack_file
):
    files = [add_pack_file(fake_http, f"mods/m{i}.jar", b"m") for i in range(6)]
    del fake_http.files["https://cdn.modrinth.test/files/mods/m3.jar"]
    pack = _pack(tmp_path, mrpack(files))

    with pytest.raises(DownloadFailure):
        await _installer(fake_http, output_dir, concurrency=2).process_modpack(pack)

    assert not [p for p in output_dir.iterdir() if p.name.startswith(".modpack-sync-stage-")]


@pytest.mark.asyncio
async def test_force_modloader_reinstall_removes_marker(fake_http, tmp_path, output_dir, mrpack):
    marker = output_dir / ".modloader-install.json"
    marker.write_text('{"loader": "fabric"}')

    await _installer(fake_http, output_dir).process_modpack(_pack(tmp_path, mrpack([])))
    assert marker.exists()

    await _installer(fake_http, output_dir, force_modloader_reinstall=True).process_modpack(
        _pack(tmp_path, mrpack([]))
    )
    assert not marker.exists()


@pytest.mark.asyncio
async def test_corrupt_archive_is_rejected(fake_http, tmp_path, output_dir):
    with pytest.raises(ArchiveCorrupt):
        await _installer(fake_http, output_dir).process_modpack(_pack(tmp_path, b"not a zip"))


@pytest.mark.asyncio
async def test_unsafe_index_path_is_rejected(fake_http, tmp_path, output_dir, mrpack, add_pack_file):
    entry = add_pack_file(fake_http, "mods/a.jar", b"a")
    entry["path"] = "../outside.jar"
    pack = _pack(tmp_path, mrpack([entry]))

    with pytest.raises(ArchiveCorrupt) as excinfo:
        await _installer(fake_http, output_dir).process_modpack(pack)

    assert excinfo.value.details["codes"] == ["INDEX_PATH_UNSAFE"]
    assert not (tmp_path / "outside.jar").exists()
