"""Exception hierarchy for specnav.

All exceptions inherit from :class:`SpecnavError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specnav.exit_codes`.
The top-level error handler in :func:`specnav.app.main` catches
``SpecnavError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

The indexing and resolution core never lets these escape a query: parse
errors become empty element sequences, broken references become "not
found", and an empty resolver result is a normal outcome.

Subclass hierarchy::

    SpecnavError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- IndexNotReadyError  (exit 5)
    +-- SpecParseError      (exit 7)
    |   +-- ReferenceError_ (exit 8)
    +-- ConfigError         (exit 1)
"""

from specnav.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INDEX_NOT_READY,
    EXIT_INVALID_USAGE,
    EXIT_REFERENCE_ERROR,
    EXIT_SPEC_PARSE_ERROR,
)


class SpecnavError(Exception):
    """Root of the specnav error hierarchy.

    Args:
        message: Shown to the user on stderr.
        exit_code: Replaces the class-level code for this instance only.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecnavError):
    """Raised for invalid query arguments such as a non-positive line number."""

    exit_code = EXIT_INVALID_USAGE


class IndexNotReadyError(SpecnavError):
    """Raised when a caller chose to wait for the index and it did not become ready in time."""

    exit_code = EXIT_INDEX_NOT_READY


class SpecParseError(SpecnavError):
    """Raised when an OpenAPI document cannot be loaded or parsed."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class ReferenceError_(SpecParseError):
    """Raised when a ``$ref`` pointer is malformed or its target is missing.

    Lenient callers catching :class:`SpecParseError` catch this too. The
    trailing underscore keeps the built-in ``ReferenceError`` visible.
    """

    exit_code = EXIT_REFERENCE_ERROR


class ConfigError(SpecnavError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
