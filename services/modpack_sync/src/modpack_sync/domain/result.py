from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from modpack_sync.domain.diagnostics import Diagnostic, Severity
from modpack_sync.domain.json_types import JsonDict

T = TypeVar("T")

EXIT_OK = 0
EXIT_INVALID = 2
EXIT_EXECUTION = 3


def _exit_code_for(diagnostic: Diagnostic) -> int:
    if diagnostic.severity != Severity.ERROR:
        return EXIT_OK
    return EXIT_EXECUTION if diagnostic.is_execution else EXIT_INVALID


@dataclass
class Result(Generic[T]):
    """Outcome of a use case: an optional value plus everything worth reporting.

    Only error diagnostics affect the exit code; execution failures (I/O,
    transport) take precedence over invalid input.
    """

    value: T | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    artifacts: list[JsonDict] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return max((_exit_code_for(d) for d in self.diagnostics), default=EXIT_OK)

    @property
    def ok(self) -> bool:
        return self.exit_code == EXIT_OK

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARN]
