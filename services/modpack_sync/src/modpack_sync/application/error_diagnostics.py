from __future__ import annotations

from modpack_sync.domain.diagnostics import (
    Diagnostic,
    FileLocation,
    Location,
    Severity,
    UrlLocation,
    ValueLocation,
)
from modpack_sync.domain.errors import (
    ArchiveCorrupt,
    CleanupFailure,
    DownloadFailure,
    ManifestReadError,
    ManifestWriteError,
    ReferenceParseError,
    SyncError,
    VersionNotFound,
    WorkspaceError,
)

# error type -> (code, rule, severity, is_execution)
ERROR_CODES: dict[type[SyncError], tuple[str, str, Severity, bool]] = {
    ReferenceParseError: ("REFERENCE_INVALID", "reference.parse", Severity.ERROR, False),
    VersionNotFound: ("VERSION_NOT_FOUND", "catalog.version", Severity.ERROR, False),
    DownloadFailure: ("DOWNLOAD_FAILED", "fetch.download", Severity.ERROR, True),
    ArchiveCorrupt: ("ARCHIVE_CORRUPT", "pack.archive", Severity.ERROR, False),
    CleanupFailure: ("CLEANUP_FAILED", "reconcile.cleanup", Severity.WARN, True),
    ManifestReadError: ("MANIFEST_UNREADABLE", "manifest.read", Severity.WARN, False),
    ManifestWriteError: ("MANIFEST_WRITE_FAILED", "manifest.write", Severity.ERROR, True),
    WorkspaceError: ("WORKSPACE_IO_FAILED", "workspace.io", Severity.ERROR, True),
}


def _location(err: SyncError) -> Location | None:
    details = err.details or {}
    if isinstance(details.get("path"), str):
        return FileLocation(str(details["path"]))
    if isinstance(details.get("url"), str):
        return UrlLocation(str(details["url"]))
    if isinstance(details.get("project"), str):
        return ValueLocation("project", str(details["project"]))
    return None


def diagnostic_for(err: SyncError) -> Diagnostic:
    code, rule, severity, is_execution = ERROR_CODES.get(
        type(err), ("SYNC_FAILED", "sync", Severity.ERROR, True)
    )
    return Diagnostic(
        code=code,
        rule=rule,
        severity=severity,
        message=err.message,
        location=_location(err),
        hint=err.hint,
        details=dict(err.details) if err.details else None,
        is_execution=is_execution,
    )
