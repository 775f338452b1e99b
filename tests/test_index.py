import io
import struct

import pytest

from pkindex.exceptions import CorruptIndexError, IndexUnavailableError
from pkindex.index import IndexReader, encode, encode_sources, encode_uris, lookup
from pkindex.types import DSCRef, SourceRef


def encoded(index: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    encode(buffer, index)
    return buffer.getvalue()


@pytest.fixture
def write_index(tmp_path):
    """
    Returns a function encoding a mapping into an index file.
    """

    def write(index: dict[str, str], name: str = "test.index"):
        path = tmp_path / name
        path.write_bytes(encoded(index))
        return path

    return write


SAMPLE = {
    "a": "first\tvalue",
    "b": "first\tvalue",
    "zz": "second",
    "ab": "third",
    "longer-key": "fourth",
    "bin:xserver-xephyr": "xorg-server\t2:1.19.3-2",
    "ünïcode": "välue",
}


class TestEncode:
    """
    Tests for the index file layout.
    """

    def test_exact_layout(self):
        data = encoded({"b": "y", "a": "x", "cc": "x"})
        # Value region: sorted, deduplicated
        assert data[:4] == b"x\ny\n"
        # Length 1 block: a -> 0, b -> 2
        assert data[4:14] == b"a" + struct.pack("<I", 0) + b"b" + struct.pack("<I", 2)
        # Length 2 block: cc -> 0
        assert data[14:20] == b"cc" + struct.pack("<I", 0)
        # Block index and trailer
        assert data[20:28] == struct.pack("<II", 4, 10)
        assert data[28:36] == struct.pack("<II", 14, 6)
        assert data[36:] == struct.pack("<I", 20)

    def test_empty_lengths_get_empty_blocks(self):
        data = encoded({"abc": "v"})
        table_offset = struct.unpack("<I", data[-4:])[0]
        table = data[table_offset:-4]
        assert len(table) == 3 * 8
        assert struct.unpack("<II", table[0:8]) == (2, 0)
        assert struct.unpack("<II", table[8:16]) == (2, 0)
        assert struct.unpack("<II", table[16:24]) == (2, 7)

    def test_deterministic(self):
        forward = dict(SAMPLE)
        backward = dict(reversed(list(SAMPLE.items())))
        assert encoded(forward) == encoded(backward)
        assert encoded(forward) == encoded(dict(forward))

    def test_empty_mapping(self):
        assert encoded({}) == struct.pack("<I", 0)

    def test_rejects_newline_in_value(self):
        with pytest.raises(ValueError):
            encoded({"k": "two\nlines"})

    def test_rejects_empty_key(self):
        with pytest.raises(ValueError):
            encoded({"": "v"})

    def test_key_length_is_in_bytes(self):
        data = encoded({"é": "v"})
        table_offset = struct.unpack("<I", data[-4:])[0]
        # "é" is two bytes in UTF-8, so there are two table entries
        assert len(data) - 4 - table_offset == 2 * 8


class TestLookup:
    """
    Tests for looking keys up in an index file.
    """

    def test_every_key_found(self, write_index):
        path = write_index(SAMPLE)
        with IndexReader(path) as reader:
            for key, value in SAMPLE.items():
                assert reader.get(key) == value
                assert reader[key] == value
                assert key in reader

    def test_missing_keys(self, write_index):
        path = write_index(SAMPLE)
        with IndexReader(path) as reader:
            for key in ["c", "aa", "zzz", "a-much-longer-key-than-any-other", "bin:"]:
                assert reader.get(key) is None
                assert key not in reader
            assert reader.get("", default="fallback") == "fallback"
            with pytest.raises(KeyError):
                reader["missing"]

    def test_many_keys_in_one_block(self, write_index):
        index = {f"key{i:05d}": f"value {i}" for i in range(2000)}
        path = write_index(index)
        with IndexReader(path) as reader:
            for key in ["key00000", "key00999", "key01999", "key01000"]:
                assert reader[key] == index[key]
            assert reader.get("key02000") is None
            assert reader.get("key0000/") is None

    def test_lookup_function(self, write_index):
        path = write_index(SAMPLE)
        assert lookup(path, "zz") == "second"
        assert lookup(path, "nope") is None

    def test_empty_index(self, write_index):
        path = write_index({})
        assert lookup(path, "anything") is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(IndexUnavailableError):
            lookup(tmp_path / "does-not-exist", "a")

    def test_blocks(self, write_index):
        path = write_index({"a": "x", "ccc": "y"})
        with IndexReader(path) as reader:
            blocks = [(length, location.length) for length, location in reader.blocks()]
        assert blocks == [(1, 5), (2, 0), (3, 7)]

    def test_sources_and_uris(self, tmp_path):
        xorg = SourceRef("xorg-server", "2:1.19.3-2")
        sources_path = tmp_path / "sources.index"
        with open(sources_path, "wb") as fh:
            encode_sources(fh, {"xserver-xephyr": xorg, "src:xorg-server": xorg})
        assert lookup(sources_path, "xserver-xephyr") == "xorg-server\t2:1.19.3-2"

        uris_path = tmp_path / "uris.index"
        with open(uris_path, "wb") as fh:
            encode_uris(fh, {xorg: DSCRef("http://example.org/x.dsc", 1234)})
        assert (
            lookup(uris_path, "xorg-server\t2:1.19.3-2")
            == "http://example.org/x.dsc\t1234"
        )


class TestCorruptIndex:
    """
    Tests that damaged index files are reported rather than misread.
    """

    def test_too_short(self, tmp_path):
        path = tmp_path / "short.index"
        path.write_bytes(b"\x00\x00")
        with pytest.raises(CorruptIndexError):
            IndexReader(path)

    def test_trailer_points_past_end(self, tmp_path):
        path = tmp_path / "bad.index"
        path.write_bytes(b"x\n" + struct.pack("<I", 1000))
        with pytest.raises(CorruptIndexError):
            IndexReader(path)

    def test_truncated(self, write_index):
        path = write_index(SAMPLE)
        data = path.read_bytes()
        path.write_bytes(data[:-1])
        with pytest.raises(CorruptIndexError):
            IndexReader(path)

    def test_partial_block_entry(self, tmp_path):
        # One-byte key block claiming 3 bytes, which is not a multiple of 5
        data = b"x\n" + b"a\x00\x00" + struct.pack("<II", 2, 3)
        data += struct.pack("<I", 5)
        path = tmp_path / "partial.index"
        path.write_bytes(data)
        with IndexReader(path) as reader:
            with pytest.raises(CorruptIndexError):
                reader.get("a")

    def test_value_offset_out_of_range(self, tmp_path):
        data = b"x\n" + b"a" + struct.pack("<I", 500)
        data += struct.pack("<II", 2, 5) + struct.pack("<I", 7)
        path = tmp_path / "offset.index"
        path.write_bytes(data)
        with IndexReader(path) as reader:
            with pytest.raises(CorruptIndexError):
                reader.get("a")

    def test_unterminated_value(self, tmp_path):
        # The value region is missing its newline
        data = b"x" + b"a" + struct.pack("<I", 0)
        data += struct.pack("<II", 1, 5) + struct.pack("<I", 6)
        path = tmp_path / "unterminated.index"
        path.write_bytes(data)
        with IndexReader(path) as reader:
            with pytest.raises(CorruptIndexError):
                reader.get("a")

    def test_blocks_reports_overlapping_block(self, tmp_path):
        data = b"x\n" + b"a" + struct.pack("<I", 0)
        data += struct.pack("<II", 2, 50) + struct.pack("<I", 7)
        path = tmp_path / "overlap.index"
        path.write_bytes(data)
        with IndexReader(path) as reader:
            with pytest.raises(CorruptIndexError):
                list(reader.blocks())
