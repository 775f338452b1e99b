import struct
from typing import NamedTuple

# All integers in an index file are little-endian uint32
OFFSET = struct.Struct("<I")
LOCATION = struct.Struct("<II")

MAX_OFFSET = 0xFFFFFFFF


class BlockLocation(NamedTuple):
    """
    Where the same-length block for one key length lives within an index
    file.
    """

    offset: int
    length: int
