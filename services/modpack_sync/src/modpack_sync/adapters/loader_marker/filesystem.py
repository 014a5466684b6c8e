from __future__ import annotations

import json
import logging
from pathlib import Path

from modpack_sync.domain.json_types import JsonDict, as_json_dict

logger = logging.getLogger(__name__)

MARKER_FILENAME = ".modloader-install.json"


class FileLoaderMarker:
    """Marker written by the external mod loader installer once it has run.

    Removing it makes that installer perform a fresh install on its next run.
    """

    def __init__(self, output_dir: Path, filename: str = MARKER_FILENAME) -> None:
        self.path = output_dir / filename

    def read(self) -> JsonDict | None:
        if not self.path.exists():
            return None
        try:
            return as_json_dict(json.loads(self.path.read_text(encoding="utf-8")))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable loader marker %s", self.path)
            return None

    def invalidate(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Invalidated mod loader installation marker %s", self.path)
        return True
