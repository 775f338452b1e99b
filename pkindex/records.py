import bz2
import gzip
import logging
import lzma
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from debian.deb822 import Packages, Sources

from pkindex.exceptions import SourceUnavailableError

logger = logging.getLogger(__name__)

OPENERS = {
    ".gz": gzip.open,
    ".xz": lzma.open,
    ".lzma": lzma.open,
    ".bz2": bz2.open,
}


@dataclass
class BinaryRecord:
    """
    One stanza of a Packages file (or of the dpkg status file).
    """

    package: str
    version: str
    source: str = ""


@dataclass
class SourceFile:
    name: str
    size: int


@dataclass
class SourceRecord:
    """
    One stanza of a Sources file, reduced to what the URI index needs.
    """

    package: str
    version: str
    directory: str = ""
    files: list[SourceFile] = field(default_factory=list)


@contextmanager
def open_list(path: Path) -> Iterator[TextIO]:
    """
    Opens a package list for reading, transparently decompressing it based
    on its suffix.
    """
    opener = OPENERS.get(path.suffix, open)
    try:
        fh = opener(path, "rt", encoding="utf-8", errors="replace")
    except OSError as e:
        raise SourceUnavailableError(f"Cannot open package list {path}: {e}") from e
    with fh:
        yield fh


def is_installed(status: str | None) -> bool:
    """
    Works out if a dpkg Status field ("install ok installed") describes an
    installed package. Stanzas without a Status field count as installed.
    """
    if status is None:
        return True
    return status.split()[-1:] == ["installed"]


def read_binary_records(path: Path, installed_only: bool = False) -> Iterator[BinaryRecord]:
    """
    Yields every binary package record in a Packages-style file.

    Stanzas missing a Package or Version field are skipped.
    """
    with open_list(path) as fh:
        try:
            for paragraph in Packages.iter_paragraphs(fh, use_apt_pkg=False):
                package = paragraph.get("Package", "").strip()
                version = paragraph.get("Version", "").strip()
                if not package or not version:
                    logger.debug(f"Skipping incomplete stanza in {path}")
                    continue
                if installed_only and not is_installed(paragraph.get("Status")):
                    continue
                yield BinaryRecord(
                    package=package,
                    version=version,
                    source=paragraph.get("Source", "").strip(),
                )
        except (OSError, EOFError, lzma.LZMAError) as e:
            raise SourceUnavailableError(f"Cannot read package list {path}: {e}") from e


def _source_files(paragraph) -> list[SourceFile]:
    files = paragraph.get("Files") or []
    # A single-line Files field comes back as one mapping instead of a list
    if isinstance(files, Mapping):
        files = [files]
    result = []
    for entry in files:
        name = entry.get("name")
        if not name:
            continue
        try:
            size = int(entry.get("size", 0))
        except ValueError:
            size = 0
        result.append(SourceFile(name=name, size=size))
    return result


def read_source_records(path: Path) -> Iterator[SourceRecord]:
    """
    Yields every source package record in a Sources file.
    """
    with open_list(path) as fh:
        try:
            for paragraph in Sources.iter_paragraphs(fh, use_apt_pkg=False):
                package = paragraph.get("Package", "").strip()
                version = paragraph.get("Version", "").strip()
                if not package or not version:
                    logger.debug(f"Skipping incomplete stanza in {path}")
                    continue
                yield SourceRecord(
                    package=package,
                    version=version,
                    directory=paragraph.get("Directory", "").strip(),
                    files=_source_files(paragraph),
                )
        except (OSError, EOFError, lzma.LZMAError) as e:
            raise SourceUnavailableError(f"Cannot read package list {path}: {e}") from e
