import logging
import posixpath
from collections.abc import Iterable

from pkindex.constants import BINARY_PREFIX, SOURCE_PREFIX
from pkindex.records import BinaryRecord, SourceRecord
from pkindex.types import DSCRef, Index, SourceRef, URIs
from pkindex.version import InvalidVersionError, compare_versions, parse_version

logger = logging.getLogger(__name__)


def resolve_source(record: BinaryRecord) -> SourceRef | None:
    """
    Works out which source package (and version) a binary package was built
    from.

    The Source field is either empty (source name equals binary name), a bare
    name, or "name (version)" when the source version differs from the
    binary's. Returns None for a malformed Source field.
    """
    package = record.source or record.package
    version = record.version
    if "(" in package or ")" in package:
        name, sep, embedded = package.partition(" (")
        if not sep or not name or not embedded.endswith(")"):
            return None
        embedded = embedded[:-1].strip()
        try:
            parse_version(embedded)
        except InvalidVersionError:
            return None
        package, version = name.strip(), embedded
    return SourceRef(package=package, version=version)


def lookup_keys(binary: str, source: str) -> list[str]:
    """
    All the keys a binary package is reachable under.
    """
    return [
        source,
        binary,
        SOURCE_PREFIX + source,
        BINARY_PREFIX + binary,
    ]


def build_index(records: Iterable[BinaryRecord]) -> Index:
    """
    Folds the binary records of one package list into a lookup index,
    keeping the highest source version per key.
    """
    index: Index = {}
    skipped = 0
    for record in records:
        source = resolve_source(record)
        if source is None:
            logger.debug(
                f"Skipping {record.package}: malformed Source field {record.source!r}"
            )
            skipped += 1
            continue
        for key in lookup_keys(record.package, source.package):
            existing = index.get(key)
            if existing is None or compare_versions(source.version, existing.version) > 0:
                index[key] = source
    if skipped:
        logger.info(f"Skipped {skipped} records with malformed Source fields")
    return index


def dsc_for(record: SourceRecord, repo_uri: str) -> DSCRef:
    """
    Locates the .dsc of a source record below repo_uri and sums up the sizes
    of all the files it references.
    """
    size = sum(f.size for f in record.files)
    url = ""
    for f in record.files:
        if f.name.endswith(".dsc"):
            url = repo_uri + posixpath.join(record.directory, f.name)
            break
    return DSCRef(url=url, size=size)


def build_uri_index(records: Iterable[SourceRecord], repo_uri: str) -> URIs:
    """
    Maps every source package version in one Sources list to its .dsc.
    The first stanza for a given version wins.
    """
    uris: URIs = {}
    for record in records:
        source = SourceRef(package=record.package, version=record.version)
        if source not in uris:
            uris[source] = dsc_for(record, repo_uri)
    return uris
