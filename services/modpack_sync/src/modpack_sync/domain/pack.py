from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from modpack_sync.domain.manifest import ModpackManifest


class Loader(str, Enum):
    FABRIC = "fabric"
    FORGE = "forge"
    NEOFORGE = "neoforge"
    QUILT = "quilt"


class VersionType(str, Enum):
    RELEASE = "release"
    BETA = "beta"
    ALPHA = "alpha"


# modrinth.index.json dependency key -> loader
INDEX_LOADER_KEYS: dict[str, Loader] = {
    "fabric-loader": Loader.FABRIC,
    "forge": Loader.FORGE,
    "neoforge": Loader.NEOFORGE,
    "quilt-loader": Loader.QUILT,
}
GAME_DEPENDENCY_KEY = "minecraft"


@dataclass(frozen=True)
class PackDependencies:
    loader: str | None = None
    loader_version: str | None = None
    game_version: str | None = None

    @classmethod
    def from_index(cls, raw: dict[str, str]) -> PackDependencies:
        loader: str | None = None
        loader_version: str | None = None
        for key, candidate in INDEX_LOADER_KEYS.items():
            if raw.get(key):
                loader = candidate.value
                loader_version = raw[key]
                break
        return cls(
            loader=loader,
            loader_version=loader_version,
            game_version=raw.get(GAME_DEPENDENCY_KEY),
        )


@dataclass(frozen=True)
class PackFileEntry:
    path: str
    downloads: list[str]
    file_size: int | None = None
    hashes: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)

    @property
    def server_supported(self) -> bool:
        return self.env.get("server") != "unsupported"


@dataclass(frozen=True)
class PackIndex:
    format_version: int
    game: str
    name: str
    version_id: str
    files: list[PackFileEntry]
    dependencies: PackDependencies
    summary: str | None = None


@dataclass(frozen=True)
class FetchedPack:
    archive_path: Path
    project_slug: str
    version_id: str


@dataclass(frozen=True)
class Unchanged:
    manifest: ModpackManifest


FetchOutcome: TypeAlias = "FetchedPack | Unchanged"


@dataclass
class InstallationResult:
    files: list[Path]
    dependencies: PackDependencies
    skipped: list[str] = field(default_factory=list)
