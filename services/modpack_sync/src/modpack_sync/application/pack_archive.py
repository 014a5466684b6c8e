from __future__ import annotations

import json
from pathlib import Path, PurePosixPath
import re
import zipfile

from modpack_sync.domain.errors import ArchiveCorrupt
from modpack_sync.domain.json_types import as_json_dict
from modpack_sync.domain.manifest import normalize_relative
from modpack_sync.domain.pack import PackIndex
from modpack_sync.ports.policy_engine import PolicyEnginePort

INDEX_NAME = "modrinth.index.json"
# later prefixes win when both provide the same path
OVERRIDE_PREFIXES = ("overrides/", "server-overrides/")

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    slug = _SLUG_STRIP.sub("-", name.lower()).strip("-")
    return slug or "modpack"


def read_index(archive_path: Path, policy_engine: PolicyEnginePort) -> PackIndex:
    try:
        with zipfile.ZipFile(archive_path) as zf, zf.open(INDEX_NAME) as handle:
            raw: object = json.load(handle)
    except KeyError as e:
        raise ArchiveCorrupt(
            f"{archive_path.name} does not contain {INDEX_NAME}",
            details={"archive": str(archive_path)},
            cause=e,
        ) from e
    except (zipfile.BadZipFile, OSError, ValueError) as e:
        raise ArchiveCorrupt(
            f"Could not read pack index from {archive_path.name}: {e}",
            details={"archive": str(archive_path)},
            cause=e,
        ) from e

    result = policy_engine.validate_index(as_json_dict(raw))
    if result.value is None:
        messages = "; ".join(d.message for d in result.diagnostics) or "invalid index"
        raise ArchiveCorrupt(
            f"Invalid {INDEX_NAME} in {archive_path.name}: {messages}",
            details={
                "archive": str(archive_path),
                "codes": [d.code for d in result.diagnostics],
            },
        )
    return result.value


def override_members(zf: zipfile.ZipFile) -> list[tuple[str, str]]:
    """Return (member name, relative destination) pairs in extraction order."""
    members: list[tuple[str, str]] = []
    names = [info.filename for info in zf.infolist() if not info.is_dir()]
    for prefix in OVERRIDE_PREFIXES:
        for name in names:
            if not name.startswith(prefix):
                continue
            rel = normalize_relative(name[len(prefix):])
            pure = PurePosixPath(rel)
            if not rel or pure.is_absolute() or ".." in pure.parts:
                raise ArchiveCorrupt(
                    f"Override entry escapes the output directory: {name}",
                    details={"member": name},
                )
            members.append((name, rel))
    return members
