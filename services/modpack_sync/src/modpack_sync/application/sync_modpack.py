from __future__ import annotations

from dataclasses import dataclass
import logging

from modpack_sync.application.error_diagnostics import diagnostic_for
from modpack_sync.application.fetch_pack import build_fetcher
from modpack_sync.application.install_pack import PackInstaller
from modpack_sync.application.reconcile import reconcile
from modpack_sync.application.settings import SyncSettings
from modpack_sync.domain.diagnostics import Diagnostic, FileLocation, Severity
from modpack_sync.domain.errors import ManifestReadError, SyncError
from modpack_sync.domain.manifest import ModpackManifest
from modpack_sync.domain.pack import FetchedPack, Unchanged
from modpack_sync.domain.reference import resolve_reference
from modpack_sync.domain.result import Result
from modpack_sync.ports.http_client import HttpClientPort
from modpack_sync.ports.loader_marker import LoaderMarkerPort
from modpack_sync.ports.manifest_store import ManifestStorePort
from modpack_sync.ports.pack_catalog import PackCatalogPort
from modpack_sync.ports.policy_engine import PolicyEnginePort
from modpack_sync.ports.results_writer import ResultsWriterPort
from modpack_sync.ports.workspace import WorkspacePort

logger = logging.getLogger(__name__)


@dataclass
class SyncPorts:
    http: HttpClientPort
    catalog: PackCatalogPort
    workspace: WorkspacePort
    store: ManifestStorePort
    policy_engine: PolicyEnginePort
    loader_marker: LoaderMarkerPort
    results_writer: ResultsWriterPort | None = None


def _load_previous(store: ManifestStorePort, diagnostics: list[Diagnostic]) -> ModpackManifest | None:
    try:
        return store.load()
    except ManifestReadError as err:
        logger.warning("%s; treating the directory as a fresh install", err)
        diagnostics.append(diagnostic_for(err))
        return None


def _info(code: str, rule: str, message: str) -> Diagnostic:
    return Diagnostic(code=code, rule=rule, severity=Severity.INFO, message=message)


def _skipped_diagnostics(skipped: list[str]) -> list[Diagnostic]:
    return [
        Diagnostic(
            code="FILE_MISSING_IGNORED",
            rule="install.ignore_missing",
            severity=Severity.WARN,
            message=f"{path} could not be downloaded and was skipped",
            location=FileLocation(path),
        )
        for path in skipped
    ]


async def _install(
    settings: SyncSettings,
    ports: SyncPorts,
    pack: FetchedPack,
    previous: ModpackManifest | None,
    diagnostics: list[Diagnostic],
) -> ModpackManifest:
    installer = PackInstaller(
        ports.http,
        ports.workspace,
        ports.policy_engine,
        ports.loader_marker,
        ignore_missing_files=settings.ignore_missing_files,
        force_modloader_reinstall=settings.force_modloader_reinstall,
        concurrency=settings.concurrency,
    )
    try:
        installation = await installer.process_modpack(pack)
    finally:
        ports.workspace.discard(pack.archive_path.parent)
    diagnostics.extend(_skipped_diagnostics(installation.skipped))

    outcome = reconcile(
        ports.workspace,
        ports.store,
        previous,
        installation,
        pack,
        settings.ignore_missing_files,
    )
    diagnostics.extend(outcome.diagnostics)
    logger.info(
        "Installed %s %s: %d files tracked, %d stale files deleted",
        pack.project_slug,
        pack.version_id,
        len(outcome.manifest.files),
        len(outcome.deleted),
    )
    return outcome.manifest


async def sync_modpack(settings: SyncSettings, ports: SyncPorts) -> Result[ModpackManifest]:
    """Run one resolve, fetch, install and reconcile pass over the output directory.

    Any failure before reconciliation leaves the previous manifest untouched.
    """
    diagnostics: list[Diagnostic] = []
    try:
        ports.workspace.discard_stale()
        previous = _load_previous(ports.store, diagnostics)
        reference = resolve_reference(settings.project, settings.version)
        fetcher = build_fetcher(
            reference,
            catalog=ports.catalog,
            http=ports.http,
            workspace=ports.workspace,
            policy_engine=ports.policy_engine,
            force_synchronize=settings.force_synchronize,
            game_version=settings.game_version,
            loader=settings.loader,
            default_version_type=settings.default_version_type,
            ignore_missing_files=settings.ignore_missing_files,
        )
        outcome = await fetcher.fetch_modpack(previous)

        if isinstance(outcome, Unchanged):
            manifest = outcome.manifest
            diagnostics.append(
                _info(
                    "MODPACK_UP_TO_DATE",
                    "fetch.unchanged",
                    f"{manifest.project_slug} {manifest.version_id} is already installed",
                )
            )
            if settings.force_modloader_reinstall:
                ports.loader_marker.invalidate()
        else:
            manifest = await _install(settings, ports, outcome, previous, diagnostics)

        if ports.results_writer is not None:
            ports.results_writer.write(manifest)
    except SyncError as err:
        logger.error("%s", err)
        diagnostics.append(diagnostic_for(err))
        return Result(diagnostics=diagnostics)

    return Result(
        value=manifest,
        diagnostics=diagnostics,
        artifacts=[
            {
                "kind": "manifest",
                "projectSlug": manifest.project_slug,
                "versionId": manifest.version_id,
                "files": len(manifest.files),
                "changed": not isinstance(outcome, Unchanged),
            }
        ],
    )
