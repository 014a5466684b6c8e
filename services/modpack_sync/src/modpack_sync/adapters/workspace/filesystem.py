from pathlib import Path
import logging
import os
import shutil
import tempfile

from modpack_sync.domain.errors import WorkspaceError

logger = logging.getLogger(__name__)

STAGE_PREFIX = ".modpack-sync-stage-"


def atomic_write_text(path: Path, content: str) -> None:
    """Write via a sibling temp file and rename it over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


class FilesystemWorkspace:
    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def base(self) -> Path:
        return Path(os.path.normpath(self.root.absolute()))

    def resolve(self, rel_path: str) -> Path:
        """Join ``rel_path`` onto the root without following symlinks.

        Containment is checked on the path text, so a symlinked subdirectory
        such as ``mods`` may point anywhere the operator chose.
        """
        candidate = Path(rel_path)
        if not rel_path or candidate.is_absolute() or ".." in candidate.parts:
            raise ValueError(f"Path escapes output directory: {rel_path!r}")
        base = self.base
        dest = Path(os.path.normpath(base / candidate))
        if dest == base or base not in dest.parents:
            raise ValueError(f"Path escapes output directory: {rel_path!r}")
        return dest

    def exists(self, rel_path: str) -> bool:
        try:
            return self.resolve(rel_path).is_file()
        except ValueError:
            return False

    def begin_transaction(self) -> Path:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=STAGE_PREFIX, dir=self.root))
        except OSError as e:
            raise WorkspaceError(
                message=f"Cannot create staging directory in {self.root}: {e}",
                details={"path": str(self.root)},
                cause=e,
            ) from e

    def place(self, staged: Path, rel_path: str) -> Path:
        dest = self.resolve(rel_path)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            os.replace(staged, dest)
        except OSError as e:
            raise WorkspaceError(
                message=f"Cannot move {rel_path} into place: {e}",
                details={"path": rel_path},
                hint="Check that no directory occupies the file's path.",
                cause=e,
            ) from e
        return dest

    def discard(self, stage: Path) -> None:
        shutil.rmtree(stage, ignore_errors=True)

    def remove(self, rel_path: str) -> None:
        target = self.resolve(rel_path)
        target.unlink()
        base = self.base
        parent = target.parent
        while parent != base and base in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                break
            logger.debug("Removed empty directory %s", parent)
            parent = parent.parent

    def discard_stale(self) -> int:
        if not self.root.is_dir():
            return 0
        stale = [p for p in self.root.iterdir() if p.is_dir() and p.name.startswith(STAGE_PREFIX)]
        for stage in stale:
            logger.debug("Removing leftover staging directory %s", stage)
            self.discard(stage)
        return len(stale)
