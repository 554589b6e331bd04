"""Report formatting and actionable hints for Tagweave CLI output.

Keep this module small and dependency-light: it is imported by the CLI layer
and only depends on the error hierarchy and report types.
"""

from __future__ import annotations

from pathlib import Path

from tagweave.builder import BuildReport, FileBuildResult
from tagweave.errors import TagweaveConfigError, TagweaveDiscoveryError
from tagweave.paths import display_path


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


def format_file_result(result: FileBuildResult, *, root: Path) -> str:
    """One status line per file, followed by one entry per failed region."""

    rel = display_path(result.source, root)
    ms = result.duration_s * 1000.0

    if result.error is not None:
        return f"  x {rel}\n      {result.error}"

    if not result.error_count:
        return f"  ok {rel} {ms:.0f}ms"

    lines = [
        f"  ! {rel} ({result.ok_count} ok, {_plural(result.error_count, 'error')}) {ms:.0f}ms"
    ]
    for t in result.transformations:
        if t.success:
            continue
        lines.append(f"      Error: {t.original}")
        lines.append(f"      {t.error}")
    return "\n".join(lines)


def format_build_summary(report: BuildReport) -> str:
    if not report.files:
        return "No source files found."
    n = len(report.files)
    ms = report.duration_s * 1000.0
    summary = f"Built {_plural(n, 'file')} in {ms:.0f}ms"
    if report.failed:
        summary += f" ({len(report.failed)} with errors)"
    return summary


def format_build_report(report: BuildReport, *, root: Path) -> str:
    lines = [format_file_result(r, root=root) for r in report.files]
    lines.append("")
    lines.append(format_build_summary(report))
    return "\n".join(lines).strip("\n") + "\n"


def build_report_json(report: BuildReport, *, root: Path) -> dict[str, object]:
    """Format a build report as a JSON-serializable dict."""
    return {
        "command": "build",
        "ok": report.ok,
        "duration_s": round(report.duration_s, 3),
        "files": [
            {
                "source": display_path(r.source, root),
                "output": display_path(r.output, root),
                "ok": r.ok,
                "error": r.error,
                "transformations": [
                    {"original": t.original, "success": t.success, "error": t.error}
                    for t in r.transformations
                ],
            }
            for r in report.files
        ],
    }


def format_hint(exc: BaseException) -> str | None:
    """Return an actionable hint for a known error, or None."""
    msg = str(exc)

    if isinstance(exc, TagweaveConfigError):
        if "Multiple .csproj" in msg:
            return "run from the project directory, or add a tagweave.toml next to one project"
        if "Could not find" in msg:
            return "run inside a C# project or create a tagweave.toml at the project root"
        return None

    if isinstance(exc, TagweaveDiscoveryError):
        return "check that paths.source_roots in tagweave.toml lists directories"

    if isinstance(exc, ImportError) and "watchfiles" in msg:
        return "install the watch extra: pip install tagweave[watch]"

    return None


def format_error_with_hint(exc: BaseException) -> str:
    """Format error message + optional hint for stderr output."""
    msg = (str(exc) or repr(exc)).strip()
    result = f"error: {msg}"
    hint = format_hint(exc)
    if hint:
        result += f"\nhint: {hint}"
    return result
