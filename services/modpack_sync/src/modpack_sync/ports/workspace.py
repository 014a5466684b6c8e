from pathlib import Path
from typing import Protocol


class WorkspacePort(Protocol):
    root: Path

    def resolve(self, rel_path: str) -> Path: ...
    def exists(self, rel_path: str) -> bool: ...
    def begin_transaction(self) -> Path: ...
    def place(self, staged: Path, rel_path: str) -> Path: ...
    def discard(self, stage: Path) -> None: ...
    def remove(self, rel_path: str) -> None: ...
    def discard_stale(self) -> int: ...
