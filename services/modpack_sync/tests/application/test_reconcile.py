from pathlib import Path

from modpack_sync.adapters.manifest_store.filesystem import JsonManifestStore
from modpack_sync.adapters.workspace.filesystem import FilesystemWorkspace
from modpack_sync.application.reconcile import cleanup, orphaned_files, reconcile
from modpack_sync.domain.diagnostics import Severity
from modpack_sync.domain.manifest import ModpackManifest
from modpack_sync.domain.pack import FetchedPack, InstallationResult, PackDependencies


def _touch(root: Path, *paths: str) -> list[Path]:
    written = []
    for rel in paths:
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(rel)
        written.append(target)
    return written


def _pack(tmp_path, version_id="V2"):
    return FetchedPack(tmp_path / "unused.mrpack", "cool-pack", version_id)


def test_orphans_are_previous_files_not_in_current():
    previous = ModpackManifest("p", "1", files=["a", "b", "c"])
    current = ModpackManifest("p", "2", files=["b", "c", "d"])
    assert orphaned_files(previous, current) == ["a"]
    assert orphaned_files(None, current) == []


def test_reconcile_deletes_orphans_and_saves_manifest(tmp_path, output_dir):
    _touch(output_dir, "mods/a.jar", "mods/b.jar", "mods/c.jar")
    current = _touch(output_dir, "mods/d.jar") + [output_dir / "mods/b.jar", output_dir / "mods/c.jar"]
    previous = ModpackManifest("cool-pack", "V1", files=["mods/a.jar", "mods/b.jar", "mods/c.jar"])
    store = JsonManifestStore(output_dir)

    outcome = reconcile(
        FilesystemWorkspace(output_dir),
        store,
        previous,
        InstallationResult(files=current, dependencies=PackDependencies("forge", "47.2.0", "1.20.1")),
        _pack(tmp_path),
    )

    assert outcome.deleted == ["mods/a.jar"]
    assert not (output_dir / "mods/a.jar").exists()
    assert outcome.manifest.files == ["mods/d.jar", "mods/b.jar", "mods/c.jar"]
    saved = store.load()
    assert saved is not None
    assert saved.same_content(outcome.manifest)


def test_cleanup_prunes_empty_directories(output_dir):
    _touch(output_dir, "config/deep/x.toml", "config/keep.toml")
    deleted, diagnostics = cleanup(FilesystemWorkspace(output_dir), ["config/deep/x.toml"], frozenset())

    assert deleted == ["config/deep/x.toml"]
    assert diagnostics == []
    assert not (output_dir / "config" / "deep").exists()
    assert (output_dir / "config" / "keep.toml").exists()


def test_cleanup_skips_ignored_and_already_missing_files(output_dir):
    _touch(output_dir, "mods/keep.jar")
    deleted, diagnostics = cleanup(
        FilesystemWorkspace(output_dir), ["mods/keep.jar", "mods/gone.jar"], frozenset({"mods/keep.jar"})
    )

    assert deleted == []
    assert diagnostics == []
    assert (output_dir / "mods" / "keep.jar").exists()


def test_cleanup_failure_is_a_warning(output_dir):
    (output_dir / "mods" / "dir.jar").mkdir(parents=True)

    deleted, diagnostics = cleanup(FilesystemWorkspace(output_dir), ["mods/dir.jar", "../x"], frozenset())

    assert deleted == []
    assert [d.code for d in diagnostics] == ["CLEANUP_FAILED", "CLEANUP_FAILED"]
    assert all(d.severity == Severity.WARN for d in diagnostics)
