from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Iterable

from modpack_sync.domain.json_types import (
    JsonDict,
    as_json_dict,
    as_optional_str,
    as_str_list,
)
from modpack_sync.domain.pack import PackDependencies

MANIFEST_TYPE = "modrinth-modpack"
MANIFEST_FILENAME = ".modrinth-modpack-manifest.json"


def _unique(paths: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for path in paths:
        if path not in seen:
            seen.add(path)
            ordered.append(path)
    return ordered


def normalize_relative(path: str) -> str:
    """Manifest paths always use forward slashes and carry no leading './'."""
    text = path.replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    return text


def relativize_all(output_dir: Path, files: Iterable[Path]) -> list[str]:
    """Paths are compared as text, so files reached through a symlinked
    subdirectory stay relative to the output directory."""
    base = Path(os.path.normpath(output_dir.absolute()))
    rel: list[str] = []
    for file in files:
        target = file if file.is_absolute() else base / file
        rel.append(Path(os.path.normpath(target)).relative_to(base).as_posix())
    return _unique(rel)


@dataclass(frozen=True)
class ModpackManifest:
    project_slug: str
    version_id: str
    files: list[str] = field(default_factory=list)
    dependencies: PackDependencies = field(default_factory=PackDependencies)
    timestamp: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "files", _unique(normalize_relative(f) for f in self.files)
        )

    def same_content(self, other: ModpackManifest) -> bool:
        return (
            self.project_slug == other.project_slug
            and self.version_id == other.version_id
            and self.files == other.files
            and self.dependencies == other.dependencies
        )

    def to_json(self) -> JsonDict:
        return as_json_dict(
            {
                "@type": MANIFEST_TYPE,
                "timestamp": self.timestamp,
                "files": list(self.files),
                "projectSlug": self.project_slug,
                "versionId": self.version_id,
                "dependencies": {
                    "loader": self.dependencies.loader,
                    "loaderVersion": self.dependencies.loader_version,
                    "gameVersion": self.dependencies.game_version,
                },
            }
        )

    @classmethod
    def from_json(cls, raw: object) -> ModpackManifest:
        data = as_json_dict(raw)
        if data.get("@type") != MANIFEST_TYPE:
            raise ValueError(f"Unexpected manifest type: {data.get('@type')!r}")
        slug = as_optional_str(data.get("projectSlug"))
        version_id = as_optional_str(data.get("versionId"))
        if slug is None or version_id is None:
            raise ValueError("Manifest is missing projectSlug or versionId")
        deps = as_json_dict(data.get("dependencies"))
        return cls(
            project_slug=slug,
            version_id=version_id,
            files=as_str_list(data.get("files")),
            dependencies=PackDependencies(
                loader=as_optional_str(deps.get("loader")),
                loader_version=as_optional_str(deps.get("loaderVersion")),
                game_version=as_optional_str(deps.get("gameVersion")),
            ),
            timestamp=as_optional_str(data.get("timestamp")),
        )
