from __future__ import annotations

import argparse
from pathlib import Path

from forbidden_imports.checker import find_repo_root, load_config, scan_tree

DEFAULT_CONFIG = Path("tools") / "forbidden_imports" / "forbidden_imports.yaml"
DEFAULT_SCAN_DIRS = ("services",)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check layer import rules.")
    parser.add_argument("paths", nargs="*", help="directories to scan, relative to the repo root")
    parser.add_argument("--config", type=Path, help=f"rules file (default: {DEFAULT_CONFIG})")
    args = parser.parse_args(argv)

    root = find_repo_root()
    config_path = args.config or root / DEFAULT_CONFIG
    if not config_path.exists():
        print(f"forbidden imports config not found: {config_path}")
        return 2
    config = load_config(config_path)

    violations: list[str] = []
    for rel in args.paths or DEFAULT_SCAN_DIRS:
        violations.extend(scan_tree(config, root / rel))
    if violations:
        print("\n".join(violations))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
