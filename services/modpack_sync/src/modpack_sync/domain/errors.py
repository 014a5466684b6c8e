from dataclasses import dataclass

from modpack_sync.domain.json_types import JsonDict


@dataclass
class SyncError(Exception):
    message: str
    details: JsonDict | None = None
    hint: str | None = None
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


class ReferenceParseError(SyncError):
    pass


class VersionNotFound(SyncError):
    pass


class DownloadFailure(SyncError):
    pass


class ArchiveCorrupt(SyncError):
    pass


class CleanupFailure(SyncError):
    pass


class ManifestWriteError(SyncError):
    pass


class ManifestReadError(SyncError):
    pass


class WorkspaceError(SyncError):
    pass
