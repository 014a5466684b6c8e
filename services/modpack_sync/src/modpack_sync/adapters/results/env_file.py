from __future__ import annotations

from pathlib import Path

from modpack_sync.adapters.workspace.filesystem import atomic_write_text
from modpack_sync.domain.errors import ManifestWriteError
from modpack_sync.domain.manifest import ModpackManifest
from modpack_sync.domain.pack import Loader

LOADER_VERSION_KEYS: dict[str, str] = {
    Loader.FABRIC.value: "FABRIC_LOADER_VERSION",
    Loader.FORGE.value: "FORGE_VERSION",
    Loader.NEOFORGE.value: "NEOFORGE_VERSION",
    Loader.QUILT.value: "QUILT_LOADER_VERSION",
}


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def render_results(manifest: ModpackManifest) -> str:
    deps = manifest.dependencies
    entries: list[tuple[str, str]] = [
        ("MODPACK_SLUG", manifest.project_slug),
        ("MODPACK_VERSION_ID", manifest.version_id),
    ]
    if deps.game_version:
        entries.append(("VERSION", deps.game_version))
    if deps.loader:
        entries.append(("TYPE", deps.loader.upper()))
        key = LOADER_VERSION_KEYS.get(deps.loader)
        if key and deps.loader_version:
            entries.append((key, deps.loader_version))
    entries.append(("MODPACK_FILES", ",".join(manifest.files)))
    return "".join(f"{key}={_quote(value)}\n" for key, value in entries)


class EnvResultsFile:
    def __init__(self, path: Path) -> None:
        self.path = path

    def write(self, manifest: ModpackManifest) -> None:
        try:
            atomic_write_text(self.path, render_results(manifest))
        except OSError as e:
            raise ManifestWriteError(
                f"Could not write results file {self.path}: {e}",
                details={"path": str(self.path)},
                cause=e,
            ) from e
