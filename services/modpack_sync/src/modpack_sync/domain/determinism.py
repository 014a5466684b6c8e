from datetime import datetime, timezone
import os


def is_deterministic() -> bool:
    return os.getenv("MODPACK_SYNC_DETERMINISTIC") == "1"


def timestamp() -> str | None:
    if is_deterministic():
        return None
    return datetime.now(timezone.utc).isoformat()
