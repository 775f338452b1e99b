import contextlib
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from pkindex.constants import TEMP_PREFIX


@contextlib.contextmanager
def atomic_write(
    dest: Path, scratch_dir: Path | None = None, mode: int = 0o644
) -> Iterator[BinaryIO]:
    """
    Yields a binary file handle whose contents replace dest in one rename
    once the block exits cleanly.

    The temporary file lives next to dest unless scratch_dir is given, which
    must be on the same filesystem as dest. If the block raises, the
    temporary file is removed and dest is left as it was.
    """
    dest = Path(dest)
    directory = scratch_dir if scratch_dir is not None else dest.parent
    fd, temp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=directory)
    try:
        with os.fdopen(fd, "wb") as fh:
            yield fh
            fh.flush()
            os.fsync(fh.fileno())
            os.fchmod(fh.fileno(), mode)
        os.replace(temp_name, dest)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(temp_name)
        raise
