from __future__ import annotations

from dataclasses import dataclass, field
import logging

from modpack_sync.application.error_diagnostics import diagnostic_for
from modpack_sync.domain.diagnostics import Diagnostic
from modpack_sync.domain.errors import CleanupFailure
from modpack_sync.domain.manifest import ModpackManifest, relativize_all
from modpack_sync.domain.pack import FetchedPack, InstallationResult
from modpack_sync.ports.manifest_store import ManifestStorePort
from modpack_sync.ports.workspace import WorkspacePort

logger = logging.getLogger(__name__)


@dataclass
class ReconcileOutcome:
    manifest: ModpackManifest
    deleted: list[str] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def build_manifest(
    workspace: WorkspacePort, installation: InstallationResult, pack: FetchedPack
) -> ModpackManifest:
    return ModpackManifest(
        project_slug=pack.project_slug,
        version_id=pack.version_id,
        files=relativize_all(workspace.root, installation.files),
        dependencies=installation.dependencies,
    )


def orphaned_files(previous: ModpackManifest | None, current: ModpackManifest) -> list[str]:
    if previous is None:
        return []
    keep = set(current.files)
    return [path for path in previous.files if path not in keep]


def _cleanup_failure(path: str, error: Exception) -> Diagnostic:
    return diagnostic_for(
        CleanupFailure(
            f"Could not delete stale file {path}: {error}",
            details={"path": path},
            cause=error,
        )
    )


def cleanup(
    workspace: WorkspacePort,
    orphaned: list[str],
    ignore_missing_files: frozenset[str],
) -> tuple[list[str], list[Diagnostic]]:
    """Best-effort deletion of orphaned files; never raises."""
    deleted: list[str] = []
    diagnostics: list[Diagnostic] = []
    for path in orphaned:
        if path in ignore_missing_files:
            logger.info("Keeping ignored file %s", path)
            continue
        try:
            workspace.remove(path)
        except FileNotFoundError:
            logger.debug("Stale file %s was already removed", path)
            continue
        except (OSError, ValueError) as e:
            logger.warning("Could not delete stale file %s: %s", path, e)
            diagnostics.append(_cleanup_failure(path, e))
            continue
        logger.info("Deleted stale file %s", path)
        deleted.append(path)
    return deleted, diagnostics


def reconcile(
    workspace: WorkspacePort,
    store: ManifestStorePort,
    previous: ModpackManifest | None,
    installation: InstallationResult,
    pack: FetchedPack,
    ignore_missing_files: frozenset[str] = frozenset(),
) -> ReconcileOutcome:
    manifest = build_manifest(workspace, installation, pack)
    orphaned = orphaned_files(previous, manifest)
    deleted, diagnostics = cleanup(workspace, orphaned, ignore_missing_files)
    store.save(manifest)
    return ReconcileOutcome(manifest=manifest, deleted=deleted, diagnostics=diagnostics)
