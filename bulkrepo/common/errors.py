"""Error taxonomy shared by the package builder and the repository engine.

Filesystem and archive failures are not wrapped: they surface as the
built-in ``OSError`` raised by the failing call.
"""


class BulkError(RuntimeError):
    """Base class for every error that aborts a bulkrepo run."""


class ConfigParseError(BulkError):
    """Configuration file could not be read or has an invalid structure."""


class RegexCompileError(BulkError):
    """A version filter pattern is not a valid regular expression."""


class MissingRequiredField(BulkError):
    """A repository entry lacks a field its kind requires."""


class MetadataExtractionError(BulkError):
    """Package metadata could not be read from a package file."""


class ConflictError(BulkError):
    """A package already occupies the same slot in a repository index."""


class IndexReadError(BulkError):
    """An existing repository index on disk cannot be parsed."""
