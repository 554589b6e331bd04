"""Pure helpers for mapping source files to generated output files."""

from __future__ import annotations

from pathlib import Path


def output_relpath(relpath: Path, output_suffix: str = ".g.cs") -> Path:
    """`Views/Home.xcs` -> `Views/Home.g.cs`."""

    return relpath.with_name(relpath.stem + output_suffix)


def output_path_for(
    source: Path,
    *,
    root: Path,
    generated_dir: str = "Generated",
    output_suffix: str = ".g.cs",
) -> Path:
    """Map `<root>/a/View.xcs` to `<root>/<generated_dir>/a/View.g.cs`."""

    try:
        rel = source.resolve().relative_to(root.resolve())
    except ValueError:
        # Source roots outside the project flatten into the generated dir.
        rel = Path(source.name)
    return root / generated_dir / output_relpath(rel, output_suffix)


def display_path(path: Path, root: Path) -> str:
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return str(path)
