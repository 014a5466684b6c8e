from __future__ import annotations

from dataclasses import asdict
from typing import TypeVar

from modpack_sync.domain.determinism import timestamp
from modpack_sync.domain.diagnostics import Diagnostic, Location
from modpack_sync.domain.json_types import JsonDict, as_json_dict
from modpack_sync.domain.manifest import ModpackManifest
from modpack_sync.domain.result import Result

T = TypeVar("T")

RESULT_SCHEMA_VERSION = 1


def _serialize_location(location: Location | None) -> JsonDict | None:
    if location is None:
        return None
    return as_json_dict({"kind": location.kind, **asdict(location)})


def serialize_diagnostic(diag: Diagnostic) -> JsonDict:
    return as_json_dict(
        {
            "id": diag.id,
            "code": diag.code,
            "rule": diag.rule,
            "severity": diag.severity.value,
            "message": diag.message,
            "hint": diag.hint,
            "details": diag.details,
            "is_execution": diag.is_execution,
            "location": _serialize_location(diag.location),
        }
    )


def format_diagnostic(diag: Diagnostic) -> str:
    """One line for terminal output, plus an indented hint line when present."""
    line = f"{diag.severity.value.upper()} {diag.code}: {diag.message}"
    if diag.location is not None:
        line += f" ({diag.location.describe()})"
    if diag.hint:
        line += f"\n  hint: {diag.hint}"
    return line


def serialize_result(result: Result[T], command: str, args: list[str]) -> JsonDict:
    manifest = result.value if isinstance(result.value, ModpackManifest) else None
    return as_json_dict(
        {
            "result_schema_version": RESULT_SCHEMA_VERSION,
            "timestamp": timestamp(),
            "command": command,
            "args": args,
            "exit_code": result.exit_code,
            "manifest": manifest.to_json() if manifest is not None else None,
            "diagnostics": [serialize_diagnostic(d) for d in result.diagnostics],
            "artifacts": result.artifacts,
        }
    )
