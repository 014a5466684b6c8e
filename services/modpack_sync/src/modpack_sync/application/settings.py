from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
import re
from typing import Any, Iterable

import yaml

from modpack_sync.domain.json_types import JsonDict, as_json_dict
from modpack_sync.domain.manifest import normalize_relative
from modpack_sync.domain.pack import Loader, VersionType

DEFAULT_API_BASE_URL = "https://api.modrinth.com"
DEFAULT_CONCURRENCY = 4

_IGNORE_SPLIT = re.compile(r"[,\n]")


def split_ignore_list(values: Iterable[str] | None) -> frozenset[str]:
    """Each value may itself hold several paths separated by commas or newlines."""
    paths: set[str] = set()
    for value in values or []:
        for part in _IGNORE_SPLIT.split(value):
            part = part.strip()
            if part:
                paths.add(normalize_relative(part))
    return frozenset(paths)


@dataclass(frozen=True)
class SyncSettings:
    project: str
    version: str | None = None
    game_version: str | None = None
    loader: Loader | None = None
    default_version_type: VersionType | None = VersionType.RELEASE
    output_directory: Path = Path(".")
    results_file: Path | None = None
    force_synchronize: bool = False
    force_modloader_reinstall: bool = False
    api_base_url: str = DEFAULT_API_BASE_URL
    ignore_missing_files: frozenset[str] = field(default_factory=frozenset)
    concurrency: int = DEFAULT_CONCURRENCY
    timeout_s: float = 30.0
    retries: int = 3


def load_config_file(path: Path) -> JsonDict:
    raw: object = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return {str(k).replace("-", "_"): v for k, v in as_json_dict(raw).items()}


def _coerce(name: str, value: Any) -> Any:
    if name == "loader":
        return Loader(str(value).lower())
    if name == "default_version_type":
        return VersionType(str(value).lower())
    if name in ("output_directory", "results_file"):
        return Path(str(value))
    if name == "ignore_missing_files":
        items = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
        return split_ignore_list(str(item) for item in items)
    if name in ("force_synchronize", "force_modloader_reinstall"):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if name in ("concurrency", "retries"):
        return int(value)
    if name == "timeout_s":
        return float(value)
    return str(value)


def build_settings(cli_values: dict[str, Any], config: JsonDict | None = None) -> SyncSettings:
    """Merge option sources: CLI/env values win over the config file, which wins over defaults."""
    known = {f.name for f in fields(SyncSettings)}
    config = config or {}
    unknown = sorted(set(config) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    merged: dict[str, Any] = {}
    for name in known:
        value = cli_values.get(name)
        if value is None or (name == "ignore_missing_files" and not value):
            value = config.get(name)
        if value is None:
            continue
        merged[name] = _coerce(name, value)

    if not merged.get("project"):
        raise ValueError("A project reference is required (--project or 'project' in config)")
    if merged.get("concurrency", DEFAULT_CONCURRENCY) < 1:
        raise ValueError("concurrency must be at least 1")
    return SyncSettings(**merged)
