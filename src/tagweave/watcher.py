"""Watch mode: rebuild source files when they change."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tagweave.builder import BuildReport, build_files
from tagweave.config import TagweaveConfig
from tagweave.discovery import is_source_file


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """A batch of relevant file changes."""

    changed_paths: frozenset[Path]
    timestamp: float


@dataclass(frozen=True, slots=True)
class WatchCycleResult:
    """Result of a single watch rebuild cycle."""

    report: BuildReport
    duration_s: float
    changed_paths: frozenset[Path]

    @property
    def ok(self) -> bool:
        return self.report.ok


def check_watchfiles_available() -> None:
    """Raise ImportError with a helpful message if watchfiles is not installed."""
    import importlib

    try:
        importlib.import_module("watchfiles")
    except ImportError:
        raise ImportError(
            "watchfiles is required for watch mode. Install it with: pip install tagweave[watch]"
        ) from None


def filter_source_files(
    changed_paths: frozenset[Path],
    *,
    source_roots: list[Path],
    suffix: str = ".xcs",
    generated_root: Path | None = None,
) -> frozenset[Path]:
    """Filter changed paths to source files under the roots, excluding generated output."""
    kept: set[Path] = set()
    for p in changed_paths:
        if not is_source_file(p, suffix=suffix, generated_root=generated_root):
            continue
        if any(p.is_relative_to(r) for r in source_roots):
            kept.add(p)
    return frozenset(kept)


async def run_watch_loop(
    *,
    changes_iter: AsyncIterator[set[tuple[Any, str]]],
    run_cycle: Callable[[WatchEvent], WatchCycleResult],
    on_event: Callable[[str], None],
    on_cycle_result: Callable[[WatchCycleResult], None],
    on_error: Callable[[BaseException], None],
    source_roots: list[Path],
    suffix: str = ".xcs",
    generated_root: Path | None = None,
    exists: Callable[[Path], bool] = Path.is_file,
) -> None:
    """Main watch loop. Consumes changes_iter, filters, and calls run_cycle."""
    async for raw_changes in changes_iter:
        paths = frozenset(Path(p) for _, p in raw_changes)
        relevant = filter_source_files(
            paths, source_roots=source_roots, suffix=suffix, generated_root=generated_root
        )
        if not relevant:
            continue

        present = frozenset(p for p in relevant if exists(p))
        for gone in sorted(relevant - present):
            on_event(f"[watch] file no longer exists: {gone.name}")
        if not present:
            continue

        event = WatchEvent(changed_paths=present, timestamp=time.monotonic())

        names = ", ".join(p.name for p in sorted(present))
        on_event(f"[watch] change detected: {names}")

        try:
            result = run_cycle(event)
        except Exception as exc:
            on_error(exc)
            continue

        on_event(f"[watch] done ({result.duration_s * 1000.0:.0f}ms)")
        on_cycle_result(result)


def format_watch_cycle_json(result: WatchCycleResult) -> dict[str, object]:
    """Format a cycle result as a JSON-serializable dict."""
    return {
        "command": "watch",
        "ok": result.ok,
        "duration_s": round(result.duration_s, 3),
        "changed_paths": sorted(str(p) for p in result.changed_paths),
        "failed": sorted(str(f.source) for f in result.report.failed),
    }


def build_cycle_runner(
    *, root: Path, cfg: TagweaveConfig
) -> Callable[[WatchEvent], WatchCycleResult]:
    """Create a cycle runner that rebuilds only the changed files."""

    def runner(event: WatchEvent) -> WatchCycleResult:
        t0 = time.monotonic()
        report = build_files(sorted(event.changed_paths), root=root, cfg=cfg)
        return WatchCycleResult(
            report=report,
            duration_s=time.monotonic() - t0,
            changed_paths=event.changed_paths,
        )

    return runner


def make_watchfiles_iter(
    watch_paths: list[Path],
    *,
    debounce_ms: int = 500,
) -> AsyncIterator[set[tuple[Any, str]]]:
    """Create an async iterator using watchfiles.awatch()."""
    import watchfiles  # type: ignore[import-untyped]

    return watchfiles.awatch(*watch_paths, debounce=debounce_ms)
