import functools

from debian.debian_support import Version

from pkindex.exceptions import PkindexError


class InvalidVersionError(PkindexError, ValueError):
    """
    A version string does not follow the Debian version format.
    """


def parse_version(version: str) -> Version:
    """
    Strictly parses a version, raising InvalidVersionError if it is not
    valid per Debian policy.
    """
    try:
        return Version(version.strip())
    except ValueError as e:
        raise InvalidVersionError(str(e)) from e


def _as_version(version: str) -> Version | None:
    try:
        return Version(version)
    except ValueError:
        return None


def compare_versions(a: str, b: str) -> int:
    """
    Compares two Debian version strings, returning a negative number, zero
    or a positive number like a classic cmp(). Never raises.

    Strings that are not valid versions sort below all valid ones, and by
    plain string order among themselves.
    """
    if a == b:
        return 0
    va = _as_version(a)
    vb = _as_version(b)
    if va is None or vb is None:
        return (va is not None) - (vb is not None) or (a > b) - (a < b)
    return (va > vb) - (va < vb)


version_key = functools.cmp_to_key(compare_versions)
