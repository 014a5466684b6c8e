#!/usr/bin/env python3
from __future__ import annotations

from pathlib import Path
from typing import TypeGuard

import yaml


REPO_ROOT = Path(__file__).resolve().parents[1]
CODES_REL = Path("services/modpack_sync/src/modpack_sync/diagnostics/codes.yaml")
SEVERITIES = {"error", "warn", "info"}


def _is_dict(value: object) -> TypeGuard[dict[object, object]]:
    return isinstance(value, dict)


def _is_list(value: object) -> TypeGuard[list[object]]:
    return isinstance(value, list)


def _as_dict(value: object) -> dict[str, object]:
    if not _is_dict(value):
        return {}
    return {str(k): v for k, v in value.items()}


def load_codes(repo_root: Path = REPO_ROOT) -> list[dict[str, object]]:
    src = repo_root / CODES_REL
    if not src.exists():
        raise SystemExit(f"Diagnostics source not found: {src}")

    data = _as_dict(yaml.safe_load(src.read_text(encoding="utf-8")) or {})
    if data.get("version") != 1:
        raise SystemExit(f"Unsupported diagnostics version: {data.get('version')}")

    raw_codes = data.get("codes")
    if not _is_list(raw_codes):
        raise SystemExit("Invalid codes.yaml: expected top-level 'codes' list")
    codes: list[dict[str, object]] = []
    for entry in raw_codes:
        if not _is_dict(entry):
            raise SystemExit("Invalid codes.yaml: entries must be mappings")
        item = _as_dict(entry)
        if not item.get("code") or not item.get("rule") or item.get("severity") not in SEVERITIES:
            raise SystemExit(f"Invalid diagnostic entry (missing required fields): {item}")
        codes.append(item)
    return codes


def render(codes: list[dict[str, object]]) -> str:
    lines = [
        "> **Generated file. Do not edit directly.**",
        "> Run: `python scripts/generate_diagnostic_codes.py`",
        "",
        "# Diagnostic codes",
        "",
        f"This page is generated from `{CODES_REL.as_posix()}`.",
        "",
        "| Code | Severity | Rule | Message | Hint |",
        "|---|---|---|---|---|",
    ]
    for item in sorted(codes, key=lambda x: str(x.get("code", ""))):
        msg = str(item.get("message") or "").strip().replace("\n", " ")
        hint = str(item.get("hint") or "").strip().replace("\n", " ")
        lines.append(
            f"| `{item['code']}` | `{item['severity']}` | `{item['rule']}` | {msg} | {hint} |"
        )
    return "\n".join(lines) + "\n"


def generate(repo_root: Path = REPO_ROOT) -> Path:
    out = repo_root / "docs" / "reference" / "diagnostic-codes.md"
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render(load_codes(repo_root)), encoding="utf-8")
    print(f"Generated {out}")
    return out


if __name__ == "__main__":
    generate()
