from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import hashlib
from typing import Any, ClassVar, TypeAlias


class Severity(str, Enum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"


@dataclass(frozen=True)
class FileLocation:
    """A path relative to the output directory (or the manifest path)."""

    kind: ClassVar[str] = "file"
    path: str

    def describe(self) -> str:
        return self.path


@dataclass(frozen=True)
class UrlLocation:
    kind: ClassVar[str] = "url"
    url: str

    def describe(self) -> str:
        return self.url


@dataclass(frozen=True)
class ValueLocation:
    kind: ClassVar[str] = "value"
    field: str
    value: str

    def describe(self) -> str:
        return f"{self.field}={self.value}"


Location: TypeAlias = FileLocation | UrlLocation | ValueLocation


@dataclass(frozen=True)
class Diagnostic:
    code: str
    rule: str
    severity: Severity
    message: str
    location: Location | None = None
    hint: str | None = None
    details: dict[str, Any] | None = None
    is_execution: bool = False
    id: str = field(init=False)

    def __post_init__(self) -> None:
        where = self.location.describe() if self.location else ""
        raw = f"{self.code}|{self.rule}|{self.severity.value}|{self.message}|{where}"
        object.__setattr__(self, "id", hashlib.sha256(raw.encode()).hexdigest()[:12])
