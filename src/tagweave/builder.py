from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from tagweave import paths
from tagweave.config import CodegenConfig, TagweaveConfig
from tagweave.discovery import discover_sources
from tagweave.fileio import read_text_with_retry, write_text_with_retry
from tagweave.preprocessor import Transformation, preprocess

logger = logging.getLogger("tagweave.builder")


@dataclass(frozen=True, slots=True)
class FileBuildResult:
    source: Path
    output: Path
    transformations: list[Transformation]
    duration_s: float
    error: str | None = None

    @property
    def ok_count(self) -> int:
        return sum(1 for t in self.transformations if t.success)

    @property
    def error_count(self) -> int:
        return sum(1 for t in self.transformations if not t.success)

    @property
    def ok(self) -> bool:
        return self.error is None and self.error_count == 0


@dataclass(slots=True)
class BuildReport:
    files: list[FileBuildResult] = field(default_factory=list)
    duration_s: float = 0.0

    @property
    def failed(self) -> list[FileBuildResult]:
        return [f for f in self.files if not f.ok]

    @property
    def ok(self) -> bool:
        return not self.failed


def build_file(
    source: Path,
    *,
    root: Path,
    codegen: CodegenConfig,
    generated_dir: str = "Generated",
    output_suffix: str = ".g.cs",
    retries: int = 10,
    retry_delay_s: float = 0.05,
) -> FileBuildResult:
    """Transform one source file and write its generated counterpart.

    I/O and decoding failures are captured in the result, never raised, so one
    bad file cannot stop a build or a watch session.
    """

    t0 = time.monotonic()
    output = paths.output_path_for(
        source, root=root, generated_dir=generated_dir, output_suffix=output_suffix
    )
    try:
        text = read_text_with_retry(source, retries=retries, delay_s=retry_delay_s)
        result = preprocess(text, codegen)
        write_text_with_retry(
            output, result.transformed_code, retries=retries, delay_s=retry_delay_s
        )
    except (OSError, UnicodeDecodeError) as e:
        logger.info("Failed building %s: %s", source, e)
        return FileBuildResult(
            source=source,
            output=output,
            transformations=[],
            duration_s=time.monotonic() - t0,
            error=f"{type(e).__name__}: {e}",
        )

    return FileBuildResult(
        source=source,
        output=output,
        transformations=list(result.transformations),
        duration_s=time.monotonic() - t0,
    )


def build_files(sources: list[Path], *, root: Path, cfg: TagweaveConfig) -> BuildReport:
    t0 = time.monotonic()
    report = BuildReport()
    for source in sources:
        report.files.append(
            build_file(
                source,
                root=root,
                codegen=cfg.codegen,
                generated_dir=cfg.paths.generated_dir,
                output_suffix=cfg.paths.output_suffix,
                retries=cfg.io.retries,
                retry_delay_s=cfg.io.retry_delay_ms / 1000.0,
            )
        )
    report.duration_s = time.monotonic() - t0
    return report


def build_all(*, root: Path, cfg: TagweaveConfig) -> BuildReport:
    """Discover every source file under the configured roots and build it."""

    (root / cfg.paths.generated_dir).mkdir(parents=True, exist_ok=True)
    sources = discover_sources(
        root=root,
        source_roots=cfg.paths.source_roots,
        suffix=cfg.paths.source_suffix,
        generated_dir=cfg.paths.generated_dir,
        exclude=cfg.paths.exclude,
    )
    return build_files(sources, root=root, cfg=cfg)
