from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from tagweave import __version__
from tagweave.errors import TagweaveConfigError, TagweaveDiscoveryError

if TYPE_CHECKING:  # pragma: no cover
    from tagweave.config import TagweaveConfig


EXIT_OK = 0
EXIT_CONFIG_OR_DISCOVERY = 2
EXIT_TRANSFORM_ERROR = 3


def _add_common_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--root",
        type=str,
        default=None,
        help="Project root (defaults to searching upward from cwd for tagweave.toml or a .csproj).",
    )
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to tagweave.toml (defaults to <root>/tagweave.toml).",
    )
    p.add_argument("--factory", type=str, default=None, help="Factory class name.")
    p.add_argument(
        "--create-element",
        type=str,
        default=None,
        help="Factory method used to create elements.",
    )
    p.add_argument(
        "--create-text",
        type=str,
        default=None,
        help="Factory method used to create text nodes (only with --wrap-text).",
    )
    p.add_argument(
        "--wrap-text",
        action="store_true",
        default=None,
        help="Wrap text children in <factory>.<create-text>(...) instead of bare literals.",
    )
    p.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print machine-readable JSON to stdout.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tagweave")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    build_p = subparsers.add_parser("build", help="Transform all markup source files once.")
    _add_common_flags(build_p)

    watch_p = subparsers.add_parser("watch", help="Build, then rebuild files as they change.")
    _add_common_flags(watch_p)
    watch_p.add_argument(
        "--debounce-ms",
        type=int,
        default=None,
        help="Debounce window for file change events (defaults to watch.debounce_ms).",
    )

    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _resolve_root_and_config(args: argparse.Namespace) -> tuple[Path | None, Path | None]:
    root = Path(args.root).resolve() if args.root else None
    config_path = Path(args.config).resolve() if args.config else None
    return root, config_path


def _load_config(args: argparse.Namespace) -> tuple[Path, TagweaveConfig]:
    from tagweave.config import find_project_root, load_config, override_codegen

    root, config_path = _resolve_root_and_config(args)
    if root is None and config_path is None:
        root = find_project_root(Path.cwd())
    elif root is None and config_path is not None:
        root = config_path.parent

    assert root is not None
    cfg = load_config(root=root, config_path=config_path)
    codegen = override_codegen(
        cfg.codegen,
        factory_name=args.factory,
        create_element_name=args.create_element,
        create_text_name=args.create_text,
        wrap_text=args.wrap_text,
    )
    return root, replace(cfg, codegen=codegen)


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _print_error(e: BaseException) -> None:
    from tagweave.diagnostics import format_error_with_hint

    _eprint(format_error_with_hint(e))


def _emit_json(payload: dict[str, object]) -> None:
    print(json.dumps(payload, sort_keys=True))


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.DEBUG if bool(getattr(args, "verbose", False)) else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _print_header(root: Path, cfg: TagweaveConfig) -> None:
    _eprint(f"Project: {root}")
    _eprint(f"Factory: {cfg.codegen.factory_name}")
    _eprint(f"CreateElement: {cfg.codegen.create_element_name}")


def cmd_build(args: argparse.Namespace) -> int:
    json_output = bool(getattr(args, "json_output", False))
    try:
        root, cfg = _load_config(args)
        if not json_output:
            _print_header(root, cfg)

        from tagweave import builder, diagnostics

        report = builder.build_all(root=root, cfg=cfg)
        if json_output:
            _emit_json(diagnostics.build_report_json(report, root=root))
        else:
            print(diagnostics.format_build_report(report, root=root), end="")

        return EXIT_OK if report.ok else EXIT_TRANSFORM_ERROR
    except (TagweaveConfigError, TagweaveDiscoveryError) as e:
        if json_output:
            _emit_json({"command": "build", "ok": False, "error": str(e)})
        else:
            _print_error(e)
        return EXIT_CONFIG_OR_DISCOVERY


def cmd_watch(args: argparse.Namespace) -> int:
    json_output = bool(getattr(args, "json_output", False))

    from tagweave import watcher

    try:
        watcher.check_watchfiles_available()
        root, cfg = _load_config(args)
    except (ImportError, TagweaveConfigError) as e:
        if json_output:
            _emit_json({"command": "watch", "ok": False, "error": str(e)})
        else:
            _print_error(e)
        return EXIT_CONFIG_OR_DISCOVERY

    rc = cmd_build(args)
    if rc == EXIT_CONFIG_OR_DISCOVERY:
        return rc

    from tagweave import diagnostics

    source_roots = [(root / sr).resolve() for sr in cfg.paths.source_roots]
    source_roots = [d for d in source_roots if d.is_dir()]
    debounce_ms = args.debounce_ms if args.debounce_ms is not None else cfg.watch.debounce_ms

    def on_event(msg: str) -> None:
        if not json_output:
            _eprint(msg)

    def on_cycle_result(result: watcher.WatchCycleResult) -> None:
        if json_output:
            _emit_json(watcher.format_watch_cycle_json(result))
            return
        for r in result.report.files:
            print(diagnostics.format_file_result(r, root=root))

    def on_error(exc: BaseException) -> None:
        if json_output:
            _emit_json({"command": "watch", "ok": False, "error": str(exc)})
        else:
            _eprint(f"[watch] error: {type(exc).__name__}: {exc}")

    if not json_output:
        _eprint(f"[watch] watching {', '.join(str(d) for d in source_roots)}")
        _eprint("[watch] press Ctrl+C to stop")

    try:
        asyncio.run(
            watcher.run_watch_loop(
                changes_iter=watcher.make_watchfiles_iter(source_roots, debounce_ms=debounce_ms),
                run_cycle=watcher.build_cycle_runner(root=root, cfg=cfg),
                on_event=on_event,
                on_cycle_result=on_cycle_result,
                on_error=on_error,
                source_roots=source_roots,
                suffix=cfg.paths.source_suffix,
                generated_root=(root / cfg.paths.generated_dir).resolve(),
            )
        )
    except KeyboardInterrupt:
        on_event("[watch] stopped")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(list(sys.argv[1:] if argv is None else argv))
    except SystemExit as e:
        # argparse uses SystemExit for --help/--version and parse errors.
        code = e.code
        return int(code) if isinstance(code, int) else EXIT_CONFIG_OR_DISCOVERY

    _configure_logging(args)

    if args.command == "build":
        return cmd_build(args)
    if args.command == "watch":
        return cmd_watch(args)

    return EXIT_CONFIG_OR_DISCOVERY


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
