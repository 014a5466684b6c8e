from __future__ import annotations

from dataclasses import dataclass
import re
from urllib.parse import unquote, urlparse

from modpack_sync.domain.errors import ReferenceParseError

SLUG_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
PROJECT_PAGE_PATTERN = re.compile(
    r"^/(?:modpack|mod|project|plugin|datapack|resourcepack)/(?P<slug>[^/]+)"
    r"(?:/version/(?P<version>[^/]+))?(?:/.*)?$"
)
PACK_FILE_SUFFIXES = (".mrpack", ".zip")


@dataclass(frozen=True)
class ProjectReference:
    id_or_slug: str | None = None
    project_file_uri: str | None = None
    version_hint: str | None = None

    def __post_init__(self) -> None:
        if (self.id_or_slug is None) == (self.project_file_uri is None):
            raise ValueError("Exactly one of id_or_slug or project_file_uri must be set")

    @property
    def has_project_uri(self) -> bool:
        return self.project_file_uri is not None


def _from_url(value: str, version_hint: str | None) -> ProjectReference:
    parsed = urlparse(value)
    if not parsed.netloc:
        raise ReferenceParseError(f"Project URL has no host: {value}")
    path = unquote(parsed.path)
    if path.lower().endswith(PACK_FILE_SUFFIXES):
        return ProjectReference(project_file_uri=value, version_hint=version_hint)
    match = PROJECT_PAGE_PATTERN.match(path)
    if match is None:
        raise ReferenceParseError(
            f"Unrecognized project URL: {value}",
            hint="Use a project page URL, a .mrpack file URL, or a project slug/ID.",
        )
    return ProjectReference(
        id_or_slug=match.group("slug"),
        version_hint=version_hint or match.group("version"),
    )


def resolve_reference(value: str, version_hint: str | None = None) -> ProjectReference:
    text = (value or "").strip()
    if not text:
        raise ReferenceParseError("Project reference is empty")
    hint = version_hint or None
    scheme = urlparse(text).scheme.lower()
    if scheme in ("http", "https"):
        return _from_url(text, hint)
    if not SLUG_PATTERN.match(text):
        raise ReferenceParseError(
            f"Invalid project slug or ID: {text}",
            details={"value": text},
        )
    return ProjectReference(id_or_slug=text, version_hint=hint)
