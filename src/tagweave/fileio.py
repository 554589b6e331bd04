"""File reads and writes that tolerate editors briefly locking files."""

from __future__ import annotations

import logging
import os
import tempfile
import time
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger("tagweave.fileio")

T = TypeVar("T")


def with_retry(
    op: Callable[[], T],
    *,
    retries: int = 10,
    delay_s: float = 0.05,
    what: str = "file operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call `op` up to `retries` times, sleeping `delay_s` after each OSError.

    `FileNotFoundError` is not retried. The last error propagates.
    """

    attempts = max(1, int(retries))
    for attempt in range(1, attempts + 1):
        try:
            return op()
        except FileNotFoundError:
            raise
        except OSError as e:
            if attempt == attempts:
                raise
            logger.debug("%s failed (attempt %d/%d): %s", what, attempt, attempts, e)
            sleep(delay_s)
    raise AssertionError("unreachable")


def atomic_write_text(path: Path, content: str) -> None:
    """Write `content` to `path` via a temp file in the same directory."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=".tagweave-tmp-",
        suffix=path.suffix,
        text=True,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass


def read_text_with_retry(
    path: Path,
    *,
    retries: int = 10,
    delay_s: float = 0.05,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    return with_retry(
        lambda: path.read_text(encoding="utf-8"),
        retries=retries,
        delay_s=delay_s,
        what=f"read {path}",
        sleep=sleep,
    )


def write_text_with_retry(
    path: Path,
    content: str,
    *,
    retries: int = 10,
    delay_s: float = 0.05,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    with_retry(
        lambda: atomic_write_text(path, content),
        retries=retries,
        delay_s=delay_s,
        what=f"write {path}",
        sleep=sleep,
    )
