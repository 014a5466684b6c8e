from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import TypeAlias
from urllib.parse import unquote, urlparse

from modpack_sync.application.hashing import hash_mismatch
from modpack_sync.application.pack_archive import read_index, slugify
from modpack_sync.domain.errors import DownloadFailure, VersionNotFound
from modpack_sync.domain.json_types import JsonDict, as_json_dict, as_json_list, as_str_map
from modpack_sync.domain.manifest import ModpackManifest
from modpack_sync.domain.pack import (
    FetchedPack,
    FetchOutcome,
    Loader,
    Unchanged,
    VersionType,
)
from modpack_sync.domain.reference import ProjectReference
from modpack_sync.ports.http_client import HttpClientPort
from modpack_sync.ports.pack_catalog import PackCatalogPort
from modpack_sync.ports.policy_engine import PolicyEnginePort
from modpack_sync.ports.workspace import WorkspacePort

logger = logging.getLogger(__name__)

# a default type accepts itself and anything more stable
_ACCEPTED_TYPES: dict[VersionType, set[str]] = {
    VersionType.RELEASE: {"release"},
    VersionType.BETA: {"release", "beta"},
    VersionType.ALPHA: {"release", "beta", "alpha"},
}


def _newest_first(versions: list[JsonDict]) -> list[JsonDict]:
    return sorted(versions, key=lambda v: str(v.get("date_published") or ""), reverse=True)


def pick_version(
    versions: list[JsonDict], default_version_type: VersionType | None
) -> JsonDict | None:
    ordered = _newest_first(versions)
    if default_version_type is None:
        return ordered[0] if ordered else None
    accepted = _ACCEPTED_TYPES[default_version_type]
    for version in ordered:
        if str(version.get("version_type")) in accepted:
            return version
    return None


def primary_file(version: JsonDict) -> JsonDict | None:
    files = [as_json_dict(f) for f in as_json_list(version.get("files"))]
    for f in files:
        if f.get("primary") is True:
            return f
    for f in files:
        if str(f.get("filename", "")).endswith(".mrpack"):
            return f
    return files[0] if files else None


def _file_name(value: str, fallback: str) -> str:
    name = PurePosixPath(unquote(value)).name
    return name or fallback


def missing_files(
    workspace: WorkspacePort, manifest: ModpackManifest, ignore: frozenset[str]
) -> list[str]:
    return [f for f in manifest.files if f not in ignore and not workspace.exists(f)]


async def _download_archive(
    http: HttpClientPort, workspace: WorkspacePort, url: str, filename: str
) -> Path:
    stage = workspace.begin_transaction()
    try:
        return await http.download(url, stage / filename)
    except BaseException:
        workspace.discard(stage)
        raise


class CatalogFetcher:
    """Resolves a version through the catalog API and downloads its pack file."""

    def __init__(
        self,
        catalog: PackCatalogPort,
        http: HttpClientPort,
        workspace: WorkspacePort,
        reference: ProjectReference,
        *,
        force_synchronize: bool = False,
        game_version: str | None = None,
        loader: Loader | None = None,
        default_version_type: VersionType | None = VersionType.RELEASE,
        ignore_missing_files: frozenset[str] = frozenset(),
    ) -> None:
        if reference.id_or_slug is None:
            raise ValueError("CatalogFetcher needs a project slug or ID")
        self.catalog = catalog
        self.http = http
        self.workspace = workspace
        self.reference = reference
        self.force_synchronize = force_synchronize
        self.game_version = game_version
        self.loader = loader
        self.default_version_type = default_version_type
        self.ignore_missing_files = ignore_missing_files

    async def _resolve_project(self) -> JsonDict:
        id_or_slug = str(self.reference.id_or_slug)
        project = await self.catalog.get_project(id_or_slug)
        if project is None:
            raise VersionNotFound(
                f"Project not found: {id_or_slug}", details={"project": id_or_slug}
            )
        return project

    async def _resolve_hinted(self, project_id: str, hint: str) -> JsonDict:
        version = await self.catalog.get_version(hint)
        if version is not None and version.get("project_id") == project_id:
            return version
        for candidate in _newest_first(await self.catalog.list_versions(project_id)):
            if hint in (candidate.get("version_number"), candidate.get("name")):
                return candidate
        raise VersionNotFound(
            f"Version {hint} not found for project {self.reference.id_or_slug}",
            details={"project": project_id, "version": hint},
        )

    async def _resolve_newest(self, project_id: str) -> JsonDict:
        versions = await self.catalog.list_versions(
            project_id,
            loaders=[self.loader.value] if self.loader else None,
            game_versions=[self.game_version] if self.game_version else None,
        )
        version = pick_version(versions, self.default_version_type)
        if version is None:
            raise VersionNotFound(
                f"No version of {self.reference.id_or_slug} matches "
                f"game version {self.game_version or '(any)'}, "
                f"loader {self.loader.value if self.loader else '(any)'} "
                f"and version type {self.default_version_type.value if self.default_version_type else '(any)'}",
                details={
                    "project": project_id,
                    "game_version": self.game_version,
                    "loader": self.loader.value if self.loader else None,
                },
            )
        return version

    def _is_current(
        self, previous: ModpackManifest | None, slug: str, version_id: str
    ) -> bool:
        if previous is None or self.force_synchronize:
            return False
        if previous.project_slug != slug or previous.version_id != version_id:
            return False
        missing = missing_files(self.workspace, previous, self.ignore_missing_files)
        if missing:
            logger.info(
                "Reinstalling %s %s: %d tracked files are missing (first: %s)",
                slug,
                version_id,
                len(missing),
                missing[0],
            )
            return False
        return True

    async def fetch_modpack(self, previous: ModpackManifest | None) -> FetchOutcome:
        project = await self._resolve_project()
        project_id = str(project.get("id"))
        slug = str(project.get("slug") or self.reference.id_or_slug)
        hint = self.reference.version_hint
        if hint:
            version = await self._resolve_hinted(project_id, hint)
        else:
            version = await self._resolve_newest(project_id)
        version_id = str(version.get("id"))
        logger.info(
            "Resolved %s to version %s (%s)", slug, version.get("version_number"), version_id
        )

        if self._is_current(previous, slug, version_id):
            logger.info("Modpack %s %s is already installed", slug, version_id)
            return Unchanged(manifest=previous)

        pack_file = primary_file(version)
        if pack_file is None or not pack_file.get("url"):
            raise VersionNotFound(
                f"Version {version_id} of {slug} has no downloadable pack file",
                details={"project": project_id, "version": version_id},
            )
        url = str(pack_file["url"])
        filename = _file_name(str(pack_file.get("filename") or ""), "modpack.mrpack")
        archive = await _download_archive(self.http, self.workspace, url, filename)
        hashes = as_str_map(pack_file.get("hashes"))
        mismatch = await asyncio.to_thread(hash_mismatch, archive, hashes)
        if mismatch:
            self.workspace.discard(archive.parent)
            raise DownloadFailure(
                f"{mismatch} mismatch for pack file {url}",
                details={"url": url, "algorithm": mismatch},
            )
        logger.info("Downloaded %s", archive.name)
        return FetchedPack(archive_path=archive, project_slug=slug, version_id=version_id)


class DirectFetcher:
    """Downloads a pack file from an explicit URL; the archive's index names it."""

    def __init__(
        self,
        http: HttpClientPort,
        workspace: WorkspacePort,
        policy_engine: PolicyEnginePort,
        uri: str,
    ) -> None:
        self.http = http
        self.workspace = workspace
        self.policy_engine = policy_engine
        self.uri = uri

    async def fetch_modpack(self, previous: ModpackManifest | None) -> FetchOutcome:
        filename = _file_name(urlparse(self.uri).path, "modpack.mrpack")
        archive = await _download_archive(self.http, self.workspace, self.uri, filename)
        try:
            index = await asyncio.to_thread(read_index, archive, self.policy_engine)
        except BaseException:
            self.workspace.discard(archive.parent)
            raise
        logger.info("Downloaded %s (%s %s)", archive.name, index.name, index.version_id)
        return FetchedPack(
            archive_path=archive,
            project_slug=slugify(index.name),
            version_id=index.version_id,
        )


PackFetcher: TypeAlias = CatalogFetcher | DirectFetcher


def build_fetcher(
    reference: ProjectReference,
    *,
    catalog: PackCatalogPort,
    http: HttpClientPort,
    workspace: WorkspacePort,
    policy_engine: PolicyEnginePort,
    force_synchronize: bool = False,
    game_version: str | None = None,
    loader: Loader | None = None,
    default_version_type: VersionType | None = VersionType.RELEASE,
    ignore_missing_files: frozenset[str] = frozenset(),
) -> PackFetcher:
    if reference.project_file_uri is not None:
        return DirectFetcher(http, workspace, policy_engine, reference.project_file_uri)
    return CatalogFetcher(
        catalog,
        http,
        workspace,
        reference,
        force_synchronize=force_synchronize,
        game_version=game_version,
        loader=loader,
        default_version_type=default_version_type,
        ignore_missing_files=ignore_missing_files,
    )
