from typing import Protocol

from modpack_sync.domain.manifest import ModpackManifest


class ResultsWriterPort(Protocol):
    def write(self, manifest: ModpackManifest) -> None: ...
