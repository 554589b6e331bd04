"""Discovery helpers: scan project roots for markup source files."""

from __future__ import annotations

import fnmatch
from pathlib import Path

from tagweave.errors import TagweaveDiscoveryError


def _is_excluded(rel_posix: str, *, exclude: list[str]) -> bool:
    # Patterns are matched against a posix-style relative path.
    for pat in exclude:
        if fnmatch.fnmatchcase(rel_posix, pat):
            return True

        # `fnmatch` doesn't treat a leading `**/` as "zero or more directories".
        stripped = pat
        while stripped.startswith("**/"):
            stripped = stripped[3:]
            if fnmatch.fnmatchcase(rel_posix, stripped):
                return True

    return False


def is_source_file(path: Path, *, suffix: str, generated_root: Path | None = None) -> bool:
    """True for `suffix` files that do not live under `generated_root`.

    `generated_root` must be resolved the same way as `path`.
    """

    if not path.name.endswith(suffix):
        return False
    if generated_root is None:
        return True
    return path != generated_root and generated_root not in path.parents


def discover_sources(
    *,
    root: Path,
    source_roots: list[str],
    suffix: str = ".xcs",
    generated_dir: str = "Generated",
    exclude: list[str] | None = None,
) -> list[Path]:
    """Return the sorted source files under `root / source_root` for each root.

    - Skips anything under `root / generated_dir`.
    - Skips paths matching a glob in `exclude` (matched against the
      posix-style path relative to `root`).
    """

    patterns = list(exclude or [])
    gen_root = (root / generated_dir).resolve()
    found: set[Path] = set()

    for sr in source_roots:
        base = (root / sr).resolve()
        if not base.exists():
            continue
        if not base.is_dir():
            raise TagweaveDiscoveryError(f"Source root is not a directory: {base}")

        try:
            candidates = list(base.rglob(f"*{suffix}"))
        except OSError as e:
            raise TagweaveDiscoveryError(f"Failed scanning source root {base}: {e}") from e

        for path in candidates:
            if not path.is_file():
                continue
            if not is_source_file(path, suffix=suffix, generated_root=gen_root):
                continue
            try:
                rel_posix = path.relative_to(root.resolve()).as_posix()
            except ValueError:
                rel_posix = path.relative_to(base).as_posix()
            if _is_excluded(rel_posix, exclude=patterns):
                continue
            found.add(path)

    return sorted(found)
