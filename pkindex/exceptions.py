class PkindexError(Exception):
    """
    Root of all errors raised by pkindex.
    """


class SourceUnavailableError(PkindexError):
    """
    A configured package list could not be read at all. Fatal to the
    regeneration run that needed it.
    """


class IndexUnavailableError(PkindexError):
    """
    The index file does not exist (yet). Usually means generation has not
    finished; callers may choose to wait and retry.
    """


class CorruptIndexError(PkindexError):
    """
    An index file violated its own structure while being read.
    """


class PackageNotFoundError(PkindexError, KeyError):
    """
    The requested package is not present in an otherwise healthy index.
    """

    def __str__(self):
        return PkindexError.__str__(self)
