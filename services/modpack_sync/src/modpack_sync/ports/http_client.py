from pathlib import Path
from typing import Any, Protocol

from modpack_sync.domain.json_types import JsonValue


class HttpClientPort(Protocol):
    async def get_json(
        self, url: str, params: dict[str, Any] | None = None
    ) -> JsonValue: ...

    async def download(self, url: str, dest: Path) -> Path: ...
