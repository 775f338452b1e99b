"""
Writer for the index file format.

An index file consists of, in order:

 * the value region: every distinct value, sorted, one per line;
 * one same-length block per key length from 1 up to the longest key, each
   holding that length's keys in sorted order, every key immediately
   followed by the uint32 offset of its value;
 * the block index: one (block offset, block length) uint32 pair per key
   length, so the entry for length n lives at (n - 1) * 8;
 * a uint32 trailer with the offset of the block index.

Empty lengths still get an (empty) block so the block index stays directly
addressable.
"""

from typing import BinaryIO

from pkindex.types import Index, URIs

from .base import LOCATION, MAX_OFFSET, OFFSET, BlockLocation


class CountingWriter:
    """
    Wraps a binary file handle, keeping track of how many bytes went
    through it.
    """

    def __init__(self, fh: BinaryIO):
        self.fh = fh
        self.offset = 0

    def write(self, data: bytes):
        if self.offset + len(data) > MAX_OFFSET:
            raise OverflowError("Index file would exceed 4 GiB")
        self.fh.write(data)
        self.offset += len(data)


def encode(fh: BinaryIO, index: dict[str, str]):
    """
    Writes a string-to-string mapping to fh in the index file format.

    Output depends only on the mapping's contents, not its insertion order.
    """
    encoded: dict[bytes, bytes] = {}
    for key, value in index.items():
        if not key:
            raise ValueError("Index keys must not be empty")
        if "\n" in value:
            raise ValueError(f"Index value for {key!r} contains a newline")
        encoded[key.encode("utf-8")] = value.encode("utf-8")

    writer = CountingWriter(fh)

    # Value region
    value_offsets: dict[bytes, int] = {}
    for value in sorted(set(encoded.values())):
        value_offsets[value] = writer.offset
        writer.write(value + b"\n")

    # Same-length blocks
    by_length: dict[int, list[bytes]] = {}
    for key in encoded:
        by_length.setdefault(len(key), []).append(key)
    highest = max(by_length, default=0)
    locations: list[BlockLocation] = []
    for length in range(1, highest + 1):
        block_offset = writer.offset
        for key in sorted(by_length.get(length, [])):
            writer.write(key + OFFSET.pack(value_offsets[encoded[key]]))
        locations.append(BlockLocation(block_offset, writer.offset - block_offset))

    # Block index and trailer
    table_offset = writer.offset
    for location in locations:
        writer.write(LOCATION.pack(*location))
    writer.write(OFFSET.pack(table_offset))


def encode_sources(fh: BinaryIO, index: Index):
    """
    Writes a lookup-key to source package index ("sources.index").
    """
    encode(fh, {key: str(source) for key, source in index.items()})


def encode_uris(fh: BinaryIO, uris: URIs):
    """
    Writes a source package to .dsc index ("uris.index"), keyed by the
    tab-separated package name and version.
    """
    encode(fh, {str(source): str(dsc) for source, dsc in uris.items()})
