from __future__ import annotations

import hashlib
from pathlib import Path

# strongest first
SUPPORTED_ALGORITHMS = ("sha512", "sha1")


def file_digest(path: Path, algorithm: str) -> str:
    digest = hashlib.new(algorithm)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def hash_mismatch(path: Path, hashes: dict[str, str]) -> str | None:
    """Return the algorithm whose expected digest does not match, if any."""
    for algorithm in SUPPORTED_ALGORITHMS:
        expected = hashes.get(algorithm)
        if not expected:
            continue
        if file_digest(path, algorithm) != expected.lower():
            return algorithm
        return None
    return None
