import logging
import os
from collections.abc import Iterator
from pathlib import Path

from pkindex.exceptions import CorruptIndexError, IndexUnavailableError

from .base import LOCATION, OFFSET, BlockLocation

logger = logging.getLogger(__name__)


class IndexReader:
    """
    Read-only access to an index file, answering point lookups with a
    handful of seeks instead of loading the file.

    The file is an immutable snapshot: regeneration renames a new file over
    the path, which leaves any already-open reader looking at the old one.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        try:
            self.fh = open(self.path, "rb")
        except FileNotFoundError as e:
            raise IndexUnavailableError(f"Index {self.path} does not exist") from e
        try:
            self.size = os.fstat(self.fh.fileno()).st_size
            if self.size < OFFSET.size:
                raise CorruptIndexError(f"Index {self.path} is too short")
            (self.table_offset,) = OFFSET.unpack(
                self._read_at(self.size - OFFSET.size, OFFSET.size)
            )
            table_length = self.size - OFFSET.size - self.table_offset
            if table_length < 0 or table_length % LOCATION.size:
                raise CorruptIndexError(
                    f"Index {self.path} has an invalid block index offset"
                )
            self.max_key_length = table_length // LOCATION.size
        except BaseException:
            self.fh.close()
            raise

    def __enter__(self) -> "IndexReader":
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self.fh.close()

    def _read_at(self, offset: int, length: int) -> bytes:
        """
        Reads exactly length bytes at offset, or raises CorruptIndexError.
        """
        self.fh.seek(offset)
        data = self.fh.read(length)
        if len(data) != length:
            raise CorruptIndexError(
                f"Short read in {self.path}: wanted {length} bytes at {offset}"
            )
        return data

    def block_location(self, key_length: int) -> BlockLocation | None:
        """
        Returns where the block for keys of key_length bytes is, or None if
        no key is that long.
        """
        if key_length < 1 or key_length > self.max_key_length:
            return None
        return self._read_block_location(key_length)

    def _read_block_location(self, key_length: int) -> BlockLocation:
        location = BlockLocation(
            *LOCATION.unpack(
                self._read_at(
                    self.table_offset + (key_length - 1) * LOCATION.size,
                    LOCATION.size,
                )
            )
        )
        if location.length % (key_length + OFFSET.size):
            raise CorruptIndexError(
                f"Block for length {key_length} in {self.path} has a partial entry"
            )
        if location.offset + location.length > self.table_offset:
            raise CorruptIndexError(
                f"Block for length {key_length} in {self.path} overlaps the block index"
            )
        return location

    def blocks(self) -> Iterator[tuple[int, BlockLocation]]:
        """
        Yields (key length, location) for every entry of the block index.
        """
        for key_length in range(1, self.max_key_length + 1):
            yield key_length, self._read_block_location(key_length)

    def _find_value_offset(self, key: bytes) -> int | None:
        location = self.block_location(len(key))
        if location is None:
            return None
        stride = len(key) + OFFSET.size
        # Keys within a block are sorted, so binary search it
        low, high = 0, location.length // stride
        while low < high:
            middle = (low + high) // 2
            entry = self._read_at(location.offset + middle * stride, stride)
            candidate = entry[: len(key)]
            if candidate == key:
                (value_offset,) = OFFSET.unpack(entry[len(key) :])
                return value_offset
            if candidate < key:
                low = middle + 1
            else:
                high = middle
        return None

    def _read_value(self, offset: int) -> str:
        if offset >= self.table_offset:
            raise CorruptIndexError(
                f"Value offset {offset} in {self.path} points past the value region"
            )
        self.fh.seek(offset)
        line = self.fh.readline(self.table_offset - offset)
        if not line.endswith(b"\n"):
            raise CorruptIndexError(f"Unterminated value at {offset} in {self.path}")
        try:
            return line[:-1].decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptIndexError(f"Undecodable value at {offset} in {self.path}") from e

    def get(self, key: str, default: str | None = None) -> str | None:
        """
        Get a value by key, returning default if not found.
        """
        value_offset = self._find_value_offset(key.encode("utf-8"))
        if value_offset is None:
            return default
        return self._read_value(value_offset)

    def __getitem__(self, key: str) -> str:
        value_offset = self._find_value_offset(key.encode("utf-8"))
        if value_offset is None:
            raise KeyError(key)
        return self._read_value(value_offset)

    def __contains__(self, key: str) -> bool:
        return self._find_value_offset(key.encode("utf-8")) is not None


def lookup(path: Path, key: str) -> str | None:
    """
    Looks up a single key in the index at path. Returns None if the key is
    not present.
    """
    with IndexReader(path) as reader:
        value = reader.get(key)
    logger.debug(f"lookup({str(path)!r}, {key!r}) = {value!r}")
    return value
