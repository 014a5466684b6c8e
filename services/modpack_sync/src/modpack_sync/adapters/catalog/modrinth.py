from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

from modpack_sync.application.settings import DEFAULT_API_BASE_URL
from modpack_sync.domain.errors import DownloadFailure
from modpack_sync.domain.json_types import JsonDict, as_json_dict, as_json_list
from modpack_sync.ports.http_client import HttpClientPort

logger = logging.getLogger(__name__)


def _is_not_found(err: DownloadFailure) -> bool:
    return bool(err.details) and err.details.get("status") == 404


class ModrinthCatalog:
    def __init__(self, http: HttpClientPort, base_url: str = DEFAULT_API_BASE_URL) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")

    def _url(self, *segments: str) -> str:
        return "/".join([self.base_url, "v2", *(quote(s, safe="") for s in segments)])

    async def _get_optional(self, url: str) -> JsonDict | None:
        try:
            raw = await self.http.get_json(url)
        except DownloadFailure as err:
            if _is_not_found(err):
                return None
            raise
        return as_json_dict(raw)

    async def get_project(self, id_or_slug: str) -> JsonDict | None:
        return await self._get_optional(self._url("project", id_or_slug))

    async def get_version(self, version_id: str) -> JsonDict | None:
        return await self._get_optional(self._url("version", version_id))

    async def list_versions(
        self,
        project_id: str,
        loaders: list[str] | None = None,
        game_versions: list[str] | None = None,
    ) -> list[JsonDict]:
        params: dict[str, Any] = {}
        if loaders:
            params["loaders"] = json.dumps(loaders)
        if game_versions:
            params["game_versions"] = json.dumps(game_versions)
        url = self._url("project", project_id, "version")
        logger.debug("Listing versions of %s with %s", project_id, params)
        try:
            raw = await self.http.get_json(url, params=params or None)
        except DownloadFailure as err:
            if _is_not_found(err):
                return []
            raise
        return [as_json_dict(item) for item in as_json_list(raw) if isinstance(item, dict)]
