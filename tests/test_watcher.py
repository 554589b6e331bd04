"""Tests for tagweave.watcher module."""

from __future__ import annotations

import asyncio
import sys
import types
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

from tagweave.builder import BuildReport, FileBuildResult
from tagweave.config import load_config
from tagweave.watcher import (
    WatchCycleResult,
    WatchEvent,
    build_cycle_runner,
    filter_source_files,
    format_watch_cycle_json,
    run_watch_loop,
)

# ---------------------------------------------------------------------------
# Optional dependency check
# ---------------------------------------------------------------------------


def test_check_watchfiles_available_raises_when_missing(monkeypatch) -> None:
    """Should raise ImportError with a helpful install message."""
    monkeypatch.setitem(sys.modules, "watchfiles", None)

    from tagweave.watcher import check_watchfiles_available

    with pytest.raises(ImportError, match="pip install tagweave\\[watch\\]"):
        check_watchfiles_available()


def test_check_watchfiles_available_succeeds_when_installed(monkeypatch) -> None:
    fake = types.ModuleType("watchfiles")
    monkeypatch.setitem(sys.modules, "watchfiles", fake)

    from tagweave.watcher import check_watchfiles_available

    check_watchfiles_available()


# ---------------------------------------------------------------------------
# File filtering
# ---------------------------------------------------------------------------


def test_filter_includes_sources_under_roots() -> None:
    changed = frozenset({Path("/project/Views/Home.xcs")})
    result = filter_source_files(changed, source_roots=[Path("/project")])
    assert result == changed


def test_filter_mixed_paths() -> None:
    changed = frozenset(
        {
            Path("/project/Views/Home.xcs"),  # valid
            Path("/project/Views/Home.cs"),  # wrong suffix
            Path("/other/Card.xcs"),  # outside roots
            Path("/project/Generated/Views/Home.xcs"),  # generated
        }
    )
    result = filter_source_files(
        changed, source_roots=[Path("/project")], generated_root=Path("/project/Generated")
    )
    assert result == frozenset({Path("/project/Views/Home.xcs")})


def test_filter_custom_suffix_and_generated_root() -> None:
    changed = frozenset({Path("/p/a.csx"), Path("/p/Out/b.csx"), Path("/p/c.xcs")})
    result = filter_source_files(
        changed, source_roots=[Path("/p")], suffix=".csx", generated_root=Path("/p/Out")
    )
    assert result == frozenset({Path("/p/a.csx")})


def test_filter_keeps_project_under_generated_ancestor(tmp_path: Path) -> None:
    project = tmp_path / "Generated" / "app"
    changed = frozenset({project / "View.xcs", project / "Generated" / "View.xcs"})

    result = filter_source_files(
        changed, source_roots=[project], generated_root=project / "Generated"
    )

    assert result == frozenset({project / "View.xcs"})


# ---------------------------------------------------------------------------
# Watch loop orchestration
# ---------------------------------------------------------------------------


async def _fake_changes(
    batches: list[set[tuple[Any, str]]],
) -> AsyncIterator[set[tuple[Any, str]]]:
    for batch in batches:
        yield batch


def _result(event: WatchEvent) -> WatchCycleResult:
    return WatchCycleResult(
        report=BuildReport(), duration_s=0.25, changed_paths=event.changed_paths
    )


def _run(
    batches: list[set[tuple[Any, str]]],
    *,
    run_cycle,
    messages: list[str] | None = None,
    results: list[WatchCycleResult] | None = None,
    errors: list[BaseException] | None = None,
    exists=lambda p: True,
) -> None:
    async def go() -> None:
        await run_watch_loop(
            changes_iter=_fake_changes(batches),
            run_cycle=run_cycle,
            on_event=(messages.append if messages is not None else lambda m: None),
            on_cycle_result=(results.append if results is not None else lambda r: None),
            on_error=(errors.append if errors is not None else lambda e: None),
            source_roots=[Path("/src")],
            generated_root=Path("/src/Generated"),
            exists=exists,
        )

    asyncio.run(go())


def test_watch_loop_calls_run_cycle_on_change() -> None:
    cycles: list[WatchEvent] = []

    def fake_run_cycle(event: WatchEvent) -> WatchCycleResult:
        cycles.append(event)
        return _result(event)

    _run([{(1, "/src/Views/Home.xcs")}], run_cycle=fake_run_cycle)

    assert len(cycles) == 1
    assert Path("/src/Views/Home.xcs") in cycles[0].changed_paths


def test_watch_loop_skips_irrelevant_changes() -> None:
    cycles: list[WatchEvent] = []

    def fake_run_cycle(event: WatchEvent) -> WatchCycleResult:
        cycles.append(event)
        return _result(event)

    _run([{(1, "/other/readme.md")}, {(2, "/src/Generated/X.xcs")}], run_cycle=fake_run_cycle)

    assert cycles == []


def test_watch_loop_skips_deleted_files() -> None:
    cycles: list[WatchEvent] = []
    messages: list[str] = []

    def fake_run_cycle(event: WatchEvent) -> WatchCycleResult:
        cycles.append(event)
        return _result(event)

    _run(
        [{(3, "/src/Gone.xcs")}],
        run_cycle=fake_run_cycle,
        messages=messages,
        exists=lambda p: False,
    )

    assert cycles == []
    assert any("no longer exists: Gone.xcs" in m for m in messages)


def test_watch_loop_emits_change_detected_and_done() -> None:
    messages: list[str] = []
    results: list[WatchCycleResult] = []

    _run(
        [{(1, "/src/Home.xcs")}],
        run_cycle=_result,
        messages=messages,
        results=results,
    )

    assert any("change detected: Home.xcs" in m for m in messages)
    assert any("done (250ms)" in m for m in messages)
    assert len(results) == 1


def test_watch_loop_survives_cycle_errors() -> None:
    calls: list[int] = []
    errors: list[BaseException] = []

    def flaky(event: WatchEvent) -> WatchCycleResult:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return _result(event)

    results: list[WatchCycleResult] = []
    _run(
        [{(1, "/src/A.xcs")}, {(1, "/src/B.xcs")}],
        run_cycle=flaky,
        errors=errors,
        results=results,
    )

    assert len(calls) == 2
    assert [str(e) for e in errors] == ["boom"]
    assert len(results) == 1


# ---------------------------------------------------------------------------
# Cycle runner + JSON
# ---------------------------------------------------------------------------


def test_build_cycle_runner_rebuilds_changed_files(tmp_path: Path) -> None:
    src = tmp_path / "Home.xcs"
    src.write_text("(<br/>)", encoding="utf-8")
    untouched = tmp_path / "Other.xcs"
    untouched.write_text("(<hr/>)", encoding="utf-8")

    runner = build_cycle_runner(root=tmp_path, cfg=load_config(root=tmp_path))
    result = runner(WatchEvent(changed_paths=frozenset({src}), timestamp=0.0))

    assert result.ok
    assert [f.source for f in result.report.files] == [src]
    assert (tmp_path / "Generated" / "Home.g.cs").exists()
    assert not (tmp_path / "Generated" / "Other.g.cs").exists()


def test_format_watch_cycle_json() -> None:
    failed = FileBuildResult(
        source=Path("/p/Bad.xcs"),
        output=Path("/p/Generated/Bad.g.cs"),
        transformations=[],
        duration_s=0.0,
        error="OSError: locked",
    )
    result = WatchCycleResult(
        report=BuildReport(files=[failed]),
        duration_s=1.23456,
        changed_paths=frozenset({Path("/p/Bad.xcs")}),
    )

    data = format_watch_cycle_json(result)

    assert data == {
        "command": "watch",
        "ok": False,
        "duration_s": 1.235,
        "changed_paths": ["/p/Bad.xcs"],
        "failed": ["/p/Bad.xcs"],
    }
