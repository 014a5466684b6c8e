from __future__ import annotations

from dataclasses import replace
import json
import logging
from pathlib import Path

from modpack_sync.adapters.workspace.filesystem import atomic_write_text
from modpack_sync.domain.determinism import timestamp
from modpack_sync.domain.errors import ManifestReadError, ManifestWriteError
from modpack_sync.domain.manifest import MANIFEST_FILENAME, ModpackManifest

logger = logging.getLogger(__name__)


class JsonManifestStore:
    def __init__(self, output_dir: Path, filename: str = MANIFEST_FILENAME) -> None:
        self.path = output_dir / filename

    def load(self) -> ModpackManifest | None:
        if not self.path.exists():
            return None
        try:
            raw: object = json.loads(self.path.read_text(encoding="utf-8"))
            return ModpackManifest.from_json(raw)
        except (OSError, ValueError) as e:
            raise ManifestReadError(
                f"Could not read manifest {self.path}: {e}",
                details={"path": str(self.path)},
                cause=e,
            ) from e

    def save(self, manifest: ModpackManifest) -> None:
        stamped = replace(manifest, timestamp=timestamp())
        content = json.dumps(stamped.to_json(), indent=2) + "\n"
        try:
            atomic_write_text(self.path, content)
        except OSError as e:
            raise ManifestWriteError(
                f"Could not write manifest {self.path}: {e}",
                details={"path": str(self.path)},
                cause=e,
            ) from e
        logger.debug("Saved manifest with %d files to %s", len(manifest.files), self.path)
