from typing import Protocol

from modpack_sync.domain.json_types import JsonDict


class LoaderMarkerPort(Protocol):
    def read(self) -> JsonDict | None: ...

    def invalidate(self) -> bool: ...
