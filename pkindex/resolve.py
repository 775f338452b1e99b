import logging
import time
from pathlib import Path

from pkindex.config import Config
from pkindex.constants import BINARY_PREFIX, SOURCE_PREFIX
from pkindex.exceptions import (
    CorruptIndexError,
    IndexUnavailableError,
    PackageNotFoundError,
)
from pkindex.index import lookup
from pkindex.types import CompletionFamily, DSCRef, SourceRef

logger = logging.getLogger(__name__)


def _split_value(value: str, path: Path) -> tuple[str, str]:
    parts = value.strip().split("\t")
    if len(parts) != 2:
        raise CorruptIndexError(
            f"Corrupt value {value!r} in {path}: {len(parts)} fields, want 2"
        )
    return parts[0], parts[1]


def lookup_source(config: Config, key: str) -> SourceRef:
    """
    Returns the source package that key (a binary or source package name,
    optionally prefixed with bin: or src:) resolves to.
    """
    path = config.sources_index_path
    value = lookup(path, key)
    if value is None:
        raise PackageNotFoundError(f"{key!r} not found in {path}")
    package, version = _split_value(value, path)
    return SourceRef(package=package, version=version)


def lookup_dsc(config: Config, source: SourceRef) -> DSCRef:
    """
    Returns where to download the given source package version from.
    """
    path = config.uris_index_path
    value = lookup(path, str(source))
    if value is None:
        raise PackageNotFoundError(
            f"{source.package} {source.version} not found in {path}"
        )
    url, size = _split_value(value, path)
    try:
        return DSCRef(url=url, size=int(size))
    except ValueError as e:
        raise CorruptIndexError(f"Corrupt size {size!r} in {path}") from e


def resolve(
    config: Config,
    name: str,
    family: CompletionFamily = "both",
    version: str | None = None,
) -> SourceRef:
    """
    Resolves a package name as typed by a user to a source package.

    Architecture qualifiers (e.g. ":amd64") are dropped. If version is given
    it overrides whatever version the index knows about, and a source package
    named together with a version needs no lookup at all.
    """
    name = name.partition(":")[0]
    if family == "src" and version:
        return SourceRef(package=name, version=version)
    if family == "src":
        key = SOURCE_PREFIX + name
    elif family == "bin":
        key = BINARY_PREFIX + name
    else:
        key = name
    source = lookup_source(config, key)
    logger.debug(f"{key} resolved to source package {source.package} {source.version}")
    if version:
        return SourceRef(package=source.package, version=version)
    return source


def complete(
    config: Config, prefix: str = "", family: CompletionFamily = "both"
) -> list[str]:
    """
    Returns all package names of the given family starting with prefix.
    """
    path = config.completion_path(family)
    try:
        with open(path, encoding="utf-8") as fh:
            return [
                line.rstrip("\n")
                for line in fh
                if line.startswith(prefix) and line.rstrip("\n")
            ]
    except FileNotFoundError as e:
        raise IndexUnavailableError(f"Completion list {path} does not exist") from e


def wait_for_index(
    path: Path,
    timeout: float,
    interval_short: float = 0.1,
    interval_long: float = 5,
):
    """
    Waits until the index at path exists, backing off between checks.

    Raises IndexUnavailableError if it has not shown up within timeout
    seconds.
    """
    deadline = time.monotonic() + timeout
    interval = interval_short
    while not path.exists():
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise IndexUnavailableError(
                f"Index {path} did not appear within {timeout} seconds"
            )
        logger.info(f"Waiting for {path} to be generated")
        time.sleep(min(interval, remaining))
        interval = min(interval * 2, interval_long)
