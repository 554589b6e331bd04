"""Configuration for Tagweave.

`CodegenConfig` is the only configuration the transformation core reads. The
rest of this module locates a project root and loads the optional
`tagweave.toml`, performing light validation only.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from tagweave.errors import TagweaveConfigError

CONFIG_FILENAME = "tagweave.toml"


@dataclass(frozen=True, slots=True)
class CodegenConfig:
    """Names used in generated calls: `<factory_name>.<create_element_name>(...)`.

    Text children are emitted as bare string literals unless `wrap_text` is
    set, in which case they become `<factory_name>.<create_text_name>("...")`.
    """

    factory_name: str = "Document"
    create_element_name: str = "CreateElement"
    create_text_name: str = "CreateText"
    wrap_text: bool = False


@dataclass(frozen=True)
class PathsConfig:
    source_roots: list[str]
    generated_dir: str
    source_suffix: str
    output_suffix: str
    exclude: list[str]


@dataclass(frozen=True)
class WatchConfig:
    debounce_ms: int


@dataclass(frozen=True)
class IOConfig:
    retries: int
    retry_delay_ms: int


@dataclass(frozen=True)
class TagweaveConfig:
    version: int
    paths: PathsConfig
    codegen: CodegenConfig
    watch: WatchConfig
    io: IOConfig


def _is_project_dir(d: Path) -> bool:
    if (d / CONFIG_FILENAME).is_file():
        return True
    projects = sorted(d.glob("*.csproj"))
    if len(projects) > 1:
        raise TagweaveConfigError(
            f"Multiple .csproj files found in {d}. "
            "Run the command from the desired project directory or add a tagweave.toml."
        )
    return len(projects) == 1


def find_project_root(start: Path) -> Path:
    """Walk upward from `start` looking for `tagweave.toml` or a single `*.csproj`."""

    cur = start
    try:
        if cur.is_file():
            cur = cur.parent
    except OSError:
        cur = cur.parent

    cur = cur.resolve()
    while True:
        if _is_project_dir(cur):
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent

    raise TagweaveConfigError(
        "Could not find tagweave.toml or a .csproj by walking upward from start path."
    )


def _as_table(value: Any, *, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TagweaveConfigError(f"Expected [{name}] to be a table.")
    return value


def _as_str_list(value: Any, *, name: str) -> list[str]:
    if not isinstance(value, list) or any(not isinstance(x, str) for x in value):
        raise TagweaveConfigError(f"Expected {name} to be a list of strings.")
    return list(value)


def _as_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise TagweaveConfigError(f"Expected {name} to be a boolean.")
    return value


def _as_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TagweaveConfigError(f"Expected {name} to be an integer.")
    return value


def _as_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str):
        raise TagweaveConfigError(f"Expected {name} to be a string.")
    return value


def _as_identifier(value: Any, *, name: str) -> str:
    s = _as_str(value, name=name)
    if not s.replace(".", "_").isidentifier():
        raise TagweaveConfigError(f"Invalid config: {name} must be a dotted identifier.")
    return s


def _read_toml(config_path: Path) -> dict[str, Any]:
    try:
        raw = config_path.read_bytes()
    except FileNotFoundError:
        raise
    except OSError as e:
        raise TagweaveConfigError(f"Failed reading config file: {config_path}") from e

    try:
        return tomllib.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise TagweaveConfigError(f"Config is not valid UTF-8: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise TagweaveConfigError(f"Invalid TOML in {config_path}: {e}") from e


def load_config(
    *, root: Path | None = None, config_path: Path | None = None
) -> TagweaveConfig:
    """Load and validate `tagweave.toml`.

    A missing file is only an error when `config_path` was given explicitly;
    otherwise every setting takes its default. If neither argument is given
    the project root is discovered from the current working directory.
    """

    explicit = config_path is not None
    if config_path is None:
        if root is None:
            root = find_project_root(Path.cwd())
        config_path = root / CONFIG_FILENAME

    try:
        data = _read_toml(config_path)
    except FileNotFoundError as e:
        if explicit:
            raise TagweaveConfigError(f"Missing tagweave.toml at: {config_path}") from e
        data = {}

    version_i = _as_int(data.get("version", 1), name="version")
    if version_i != 1:
        raise TagweaveConfigError(f"Unsupported config version: {version_i} (expected 1).")

    paths_tbl = _as_table(data.get("paths"), name="paths")
    codegen_tbl = _as_table(data.get("codegen"), name="codegen")
    watch_tbl = _as_table(data.get("watch"), name="watch")
    io_tbl = _as_table(data.get("io"), name="io")

    if "source_roots" in paths_tbl:
        source_roots = _as_str_list(paths_tbl["source_roots"], name="paths.source_roots")
    else:
        source_roots = ["."]

    if "generated_dir" in paths_tbl:
        generated_dir = _as_str(paths_tbl["generated_dir"], name="paths.generated_dir")
    else:
        generated_dir = "Generated"

    if "source_suffix" in paths_tbl:
        source_suffix = _as_str(paths_tbl["source_suffix"], name="paths.source_suffix")
    else:
        source_suffix = ".xcs"

    if "output_suffix" in paths_tbl:
        output_suffix = _as_str(paths_tbl["output_suffix"], name="paths.output_suffix")
    else:
        output_suffix = ".g.cs"

    if "exclude" in paths_tbl:
        exclude = _as_str_list(paths_tbl["exclude"], name="paths.exclude")
    else:
        exclude = ["**/bin/**", "**/obj/**"]

    defaults = CodegenConfig()
    codegen = CodegenConfig(
        factory_name=_as_identifier(codegen_tbl["factory"], name="codegen.factory")
        if "factory" in codegen_tbl
        else defaults.factory_name,
        create_element_name=_as_identifier(
            codegen_tbl["create_element"], name="codegen.create_element"
        )
        if "create_element" in codegen_tbl
        else defaults.create_element_name,
        create_text_name=_as_identifier(codegen_tbl["create_text"], name="codegen.create_text")
        if "create_text" in codegen_tbl
        else defaults.create_text_name,
        wrap_text=_as_bool(codegen_tbl["wrap_text"], name="codegen.wrap_text")
        if "wrap_text" in codegen_tbl
        else defaults.wrap_text,
    )

    if "debounce_ms" in watch_tbl:
        debounce_ms = _as_int(watch_tbl["debounce_ms"], name="watch.debounce_ms")
    else:
        debounce_ms = 500

    if "retries" in io_tbl:
        retries = _as_int(io_tbl["retries"], name="io.retries")
    else:
        retries = 10

    if "retry_delay_ms" in io_tbl:
        retry_delay_ms = _as_int(io_tbl["retry_delay_ms"], name="io.retry_delay_ms")
    else:
        retry_delay_ms = 50

    # Validation
    if not source_suffix.startswith(".") or not output_suffix.startswith("."):
        raise TagweaveConfigError("Invalid config: file suffixes must start with '.'.")

    if source_suffix == output_suffix:
        raise TagweaveConfigError(
            "Invalid config: paths.output_suffix must differ from paths.source_suffix."
        )

    if not generated_dir or Path(generated_dir).is_absolute():
        raise TagweaveConfigError(
            "Invalid config: paths.generated_dir must be a relative directory name."
        )

    if debounce_ms < 0 or retry_delay_ms < 0:
        raise TagweaveConfigError("Invalid config: delays must be >= 0.")

    if retries < 1:
        raise TagweaveConfigError("Invalid config: io.retries must be >= 1.")

    return TagweaveConfig(
        version=version_i,
        paths=PathsConfig(
            source_roots=source_roots,
            generated_dir=generated_dir,
            source_suffix=source_suffix,
            output_suffix=output_suffix,
            exclude=exclude,
        ),
        codegen=codegen,
        watch=WatchConfig(debounce_ms=debounce_ms),
        io=IOConfig(retries=retries, retry_delay_ms=retry_delay_ms),
    )


def override_codegen(
    codegen: CodegenConfig,
    *,
    factory_name: str | None = None,
    create_element_name: str | None = None,
    create_text_name: str | None = None,
    wrap_text: bool | None = None,
) -> CodegenConfig:
    """Return `codegen` with any non-None overrides applied (e.g. from CLI flags)."""

    changes: dict[str, Any] = {}
    if factory_name is not None:
        changes["factory_name"] = _as_identifier(factory_name, name="--factory")
    if create_element_name is not None:
        changes["create_element_name"] = _as_identifier(
            create_element_name, name="--create-element"
        )
    if create_text_name is not None:
        changes["create_text_name"] = _as_identifier(create_text_name, name="--create-text")
    if wrap_text is not None:
        changes["wrap_text"] = wrap_text
    return replace(codegen, **changes) if changes else codegen
