from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath
import shutil
import zipfile

from modpack_sync.application.hashing import hash_mismatch
from modpack_sync.application.pack_archive import override_members, read_index
from modpack_sync.domain.errors import ArchiveCorrupt, DownloadFailure, WorkspaceError
from modpack_sync.domain.pack import FetchedPack, InstallationResult, PackFileEntry
from modpack_sync.ports.http_client import HttpClientPort
from modpack_sync.ports.loader_marker import LoaderMarkerPort
from modpack_sync.ports.policy_engine import PolicyEnginePort
from modpack_sync.ports.workspace import WorkspacePort

logger = logging.getLogger(__name__)


def _unique_paths(paths: list[Path]) -> list[Path]:
    seen: set[Path] = set()
    ordered: list[Path] = []
    for path in paths:
        if path not in seen:
            seen.add(path)
            ordered.append(path)
    return ordered


class PackInstaller:
    def __init__(
        self,
        http: HttpClientPort,
        workspace: WorkspacePort,
        policy_engine: PolicyEnginePort,
        loader_marker: LoaderMarkerPort,
        *,
        ignore_missing_files: frozenset[str] = frozenset(),
        force_modloader_reinstall: bool = False,
        concurrency: int = 4,
    ) -> None:
        self.http = http
        self.workspace = workspace
        self.policy_engine = policy_engine
        self.loader_marker = loader_marker
        self.ignore_missing_files = ignore_missing_files
        self.force_modloader_reinstall = force_modloader_reinstall
        self.concurrency = max(1, concurrency)

    def _place(self, staged: Path, rel_path: str) -> Path:
        try:
            return self.workspace.place(staged, rel_path)
        except ValueError as e:
            raise ArchiveCorrupt(str(e), details={"path": rel_path}, cause=e) from e

    async def _install_entry(
        self, entry: PackFileEntry, stage: Path, position: int, limiter: asyncio.Semaphore
    ) -> Path | None:
        staged = stage / f"{position:05d}-{PurePosixPath(entry.path).name}"
        async with limiter:
            for url in entry.downloads:
                try:
                    await self.http.download(url, staged)
                except DownloadFailure as err:
                    logger.debug("Download of %s from %s failed: %s", entry.path, url, err)
                    continue
                mismatch = await asyncio.to_thread(hash_mismatch, staged, entry.hashes)
                if mismatch:
                    logger.debug("%s mismatch for %s from %s", mismatch, entry.path, url)
                    staged.unlink(missing_ok=True)
                    continue
                return self._place(staged, entry.path)

        if entry.path in self.ignore_missing_files:
            logger.warning("Skipping %s: no download succeeded and it is ignored", entry.path)
            return None
        raise DownloadFailure(
            f"Could not download {entry.path} from any of {len(entry.downloads)} URLs",
            details={"path": entry.path, "urls": list(entry.downloads)},
        )

    async def _install_entries(self, entries: list[PackFileEntry], stage: Path) -> list[Path | None]:
        limiter = asyncio.Semaphore(self.concurrency)
        tasks = [
            asyncio.create_task(self._install_entry(entry, stage, position, limiter))
            for position, entry in enumerate(entries)
        ]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def _extract_overrides(self, archive_path: Path, stage: Path) -> list[Path]:
        written: list[Path] = []
        try:
            with zipfile.ZipFile(archive_path) as zf:
                for position, (member, rel_path) in enumerate(override_members(zf)):
                    staged = stage / f"override-{position:05d}"
                    with zf.open(member) as src, staged.open("wb") as dest:
                        shutil.copyfileobj(src, dest)
                    written.append(self._place(staged, rel_path))
        except (zipfile.BadZipFile, KeyError) as e:
            raise ArchiveCorrupt(
                f"Could not extract overrides from {archive_path.name}: {e}",
                details={"archive": str(archive_path)},
                cause=e,
            ) from e
        except OSError as e:
            raise WorkspaceError(
                f"Could not stage overrides from {archive_path.name}: {e}",
                details={"path": str(stage)},
                cause=e,
            ) from e
        return written

    async def process_modpack(self, pack: FetchedPack) -> InstallationResult:
        index = await asyncio.to_thread(read_index, pack.archive_path, self.policy_engine)
        entries = [entry for entry in index.files if entry.server_supported]
        logger.info(
            "Installing %s %s: %d files (%d client-only skipped)",
            index.name,
            index.version_id,
            len(entries),
            len(index.files) - len(entries),
        )

        stage = self.workspace.begin_transaction()
        try:
            placed = await self._install_entries(entries, stage)
            overrides = await asyncio.to_thread(self._extract_overrides, pack.archive_path, stage)
        finally:
            self.workspace.discard(stage)

        files = [path for path in placed if path is not None]
        skipped = [entry.path for entry, path in zip(entries, placed) if path is None]
        logger.info(
            "Installed %d files and %d overrides into %s",
            len(files),
            len(overrides),
            self.workspace.root,
        )

        if self.force_modloader_reinstall:
            self.loader_marker.invalidate()

        return InstallationResult(
            files=_unique_paths(files + overrides),
            dependencies=index.dependencies,
            skipped=skipped,
        )
