from typing import Protocol

from modpack_sync.domain.manifest import ModpackManifest


class ManifestStorePort(Protocol):
    def load(self) -> ModpackManifest | None: ...

    def save(self, manifest: ModpackManifest) -> None: ...
