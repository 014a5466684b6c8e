from typing import Protocol

from modpack_sync.domain.json_types import JsonDict


class PackCatalogPort(Protocol):
    async def get_project(self, id_or_slug: str) -> JsonDict | None: ...

    async def get_version(self, version_id: str) -> JsonDict | None: ...

    async def list_versions(
        self,
        project_id: str,
        loaders: list[str] | None = None,
        game_versions: list[str] | None = None,
    ) -> list[JsonDict]: ...
