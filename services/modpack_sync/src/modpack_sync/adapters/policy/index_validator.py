from __future__ import annotations

import json
from pathlib import Path, PurePosixPath

import jsonschema

from modpack_sync.domain.diagnostics import Diagnostic, Severity, ValueLocation
from modpack_sync.domain.json_types import (
    JsonDict,
    as_json_dict,
    as_json_list,
    as_optional_int,
    as_str_map,
)
from modpack_sync.domain.manifest import normalize_relative
from modpack_sync.domain.pack import PackDependencies, PackFileEntry, PackIndex
from modpack_sync.domain.result import Result
from modpack_sync.ports.policy_engine import PolicyEnginePort


def schema_path() -> Path:
    return Path(__file__).resolve().parents[2] / "schemas" / "mrpack-index.schema.v1.json"


def load_schema() -> JsonDict:
    return as_json_dict(json.loads(schema_path().read_text(encoding="utf-8")))


def validate_index_schema(raw: JsonDict) -> list[Diagnostic]:
    try:
        jsonschema.validate(raw, load_schema())
        return []
    except jsonschema.ValidationError as e:
        return [
            Diagnostic(
                code="INDEX_SCHEMA_INVALID",
                rule="pack.index.schema",
                severity=Severity.ERROR,
                message=e.message,
                details={"path": "/".join(str(p) for p in e.absolute_path)},
            )
        ]


def validate_file_paths(raw: JsonDict) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for item in as_json_list(raw.get("files")):
        path = str(as_json_dict(item).get("path") or "")
        pure = PurePosixPath(normalize_relative(path))
        if pure.is_absolute() or ".." in pure.parts or ":" in path:
            diagnostics.append(
                Diagnostic(
                    code="INDEX_PATH_UNSAFE",
                    rule="pack.index.path",
                    severity=Severity.ERROR,
                    message=f"File path escapes the output directory: {path}",
                    location=ValueLocation("path", path),
                )
            )
    return diagnostics


def _entry(item: JsonDict) -> PackFileEntry:
    return PackFileEntry(
        path=normalize_relative(str(item.get("path"))),
        downloads=[str(url) for url in as_json_list(item.get("downloads"))],
        file_size=as_optional_int(item.get("fileSize")),
        hashes=as_str_map(item.get("hashes")),
        env=as_str_map(item.get("env")),
    )


def to_pack_index(raw: JsonDict) -> PackIndex:
    summary = raw.get("summary")
    return PackIndex(
        format_version=int(str(raw.get("formatVersion"))),
        game=str(raw.get("game")),
        name=str(raw.get("name")),
        version_id=str(raw.get("versionId")),
        files=[_entry(as_json_dict(item)) for item in as_json_list(raw.get("files"))],
        dependencies=PackDependencies.from_index(as_str_map(raw.get("dependencies"))),
        summary=str(summary) if summary is not None else None,
    )


class IndexPolicyEngine(PolicyEnginePort):
    def validate_index(self, raw: JsonDict) -> Result[PackIndex]:
        diagnostics: list[Diagnostic] = []
        diagnostics.extend(validate_index_schema(raw))
        if diagnostics:
            return Result(diagnostics=diagnostics)
        diagnostics.extend(validate_file_paths(raw))
        if diagnostics:
            return Result(diagnostics=diagnostics)
        return Result(value=to_pack_index(raw))
