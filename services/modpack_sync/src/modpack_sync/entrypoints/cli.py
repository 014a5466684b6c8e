from pathlib import Path
import asyncio
import json as _json
import logging

import typer

from modpack_sync.adapters.catalog.modrinth import ModrinthCatalog
from modpack_sync.adapters.http.httpx_client import HttpxClient
from modpack_sync.adapters.loader_marker.filesystem import FileLoaderMarker
from modpack_sync.adapters.manifest_store.filesystem import JsonManifestStore
from modpack_sync.adapters.policy.index_validator import IndexPolicyEngine
from modpack_sync.adapters.results.env_file import EnvResultsFile
from modpack_sync.adapters.workspace.filesystem import FilesystemWorkspace
from modpack_sync.application.result_serialization import format_diagnostic, serialize_result
from modpack_sync.application.settings import (
    SyncSettings,
    build_settings,
    load_config_file,
)
from modpack_sync.application.sync_modpack import SyncPorts, sync_modpack
from modpack_sync.domain.errors import ManifestReadError
from modpack_sync.domain.manifest import ModpackManifest
from modpack_sync.domain.pack import Loader, VersionType
from modpack_sync.domain.result import Result

app = typer.Typer(add_completion=False, help="Install and update Modrinth modpacks.")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_ports(settings: SyncSettings, http: HttpxClient) -> SyncPorts:
    output = settings.output_directory
    return SyncPorts(
        http=http,
        catalog=ModrinthCatalog(http, settings.api_base_url),
        workspace=FilesystemWorkspace(output),
        store=JsonManifestStore(output),
        policy_engine=IndexPolicyEngine(),
        loader_marker=FileLoaderMarker(output),
        results_writer=EnvResultsFile(settings.results_file) if settings.results_file else None,
    )


async def _run(settings: SyncSettings) -> Result[ModpackManifest]:
    async with HttpxClient(timeout_s=settings.timeout_s, retries=settings.retries) as http:
        return await sync_modpack(settings, build_ports(settings, http))


@app.command()
def install(
    project: str | None = typer.Option(
        None, "--project", help="Project ID or slug, project page URL, or project file URL"
    ),
    version: str | None = typer.Option(
        None,
        "--version-id",
        "--version",
        help="Version ID, name, or number. Default chooses the newest matching version",
    ),
    game_version: str | None = typer.Option(None, "--game-version", help="Default: (any)"),
    loader: Loader | None = typer.Option(None, "--loader", case_sensitive=False),
    default_version_type: VersionType | None = typer.Option(
        None, "--default-version-type", metavar="TYPE", case_sensitive=False
    ),
    output_directory: Path | None = typer.Option(None, "--output-directory", metavar="DIR"),
    results_file: Path | None = typer.Option(None, "--results-file", metavar="FILE"),
    force_synchronize: bool | None = typer.Option(
        None, "--force-synchronize", envvar="MODRINTH_FORCE_SYNCHRONIZE"
    ),
    force_modloader_reinstall: bool | None = typer.Option(
        None, "--force-modloader-reinstall", envvar="MODRINTH_FORCE_MODLOADER_REINSTALL"
    ),
    api_base_url: str | None = typer.Option(
        None, "--api-base-url", envvar="MODRINTH_API_BASE_URL"
    ),
    ignore_missing_files: list[str] = typer.Option(
        None,
        "--ignore-missing-files",
        help="Comma or newline separated paths ignored during missing-file checks and cleanup",
    ),
    concurrency: int | None = typer.Option(None, "--concurrency", min=1),
    config: Path | None = typer.Option(None, "--config", help="YAML file with option defaults"),
    json: bool = False,
    log_level: str = typer.Option("INFO", "--log-level"),
):
    _configure_logging(log_level)
    try:
        file_values = load_config_file(config) if config is not None else None
        settings = build_settings(
            {
                "project": project,
                "version": version,
                "game_version": game_version,
                "loader": loader,
                "default_version_type": default_version_type,
                "output_directory": output_directory,
                "results_file": results_file,
                "force_synchronize": force_synchronize,
                "force_modloader_reinstall": force_modloader_reinstall,
                "api_base_url": api_base_url,
                "ignore_missing_files": ignore_missing_files,
                "concurrency": concurrency,
            },
            file_values,
        )
    except (OSError, ValueError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(2)

    result = asyncio.run(_run(settings))
    if json:
        data = serialize_result(result, command="install", args=[settings.project])
        typer.echo(_json.dumps(data))
    else:
        for diag in result.errors + result.warnings:
            typer.echo(format_diagnostic(diag), err=True)
    raise typer.Exit(result.exit_code)


@app.command()
def status(
    output_directory: Path = typer.Option(Path("."), "--output-directory", metavar="DIR"),
    json: bool = False,
):
    """Show the modpack currently recorded for an output directory."""
    store = JsonManifestStore(output_directory)
    try:
        manifest = store.load()
    except ManifestReadError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(2)
    if manifest is None:
        typer.echo("No modpack installed", err=True)
        raise typer.Exit(1)
    if json:
        typer.echo(_json.dumps(manifest.to_json()))
        raise typer.Exit(0)
    deps = manifest.dependencies
    typer.echo(f"{manifest.project_slug} {manifest.version_id}")
    typer.echo(f"game version: {deps.game_version or '(unknown)'}")
    if deps.loader:
        typer.echo(f"loader: {deps.loader} {deps.loader_version or ''}".rstrip())
    typer.echo(f"files: {len(manifest.files)}")
