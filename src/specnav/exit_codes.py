"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specnav.exceptions.SpecnavError` subclass.
Editor integrations and shell wrappers can inspect the exit code to tell
"nothing found" apart from "index still building" without parsing stderr.

Example::

    $ specnav impl api.yaml 42
    $ echo $?
    4   # EXIT_NOT_FOUND -- no implementation matched the operation
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NOT_FOUND = 4
"""The requested spec element or implementation was not found."""

EXIT_INDEX_NOT_READY = 5
"""The index is still being built and cannot answer queries yet."""

EXIT_SPEC_PARSE_ERROR = 7
"""An OpenAPI document could not be parsed."""

EXIT_REFERENCE_ERROR = 8
"""A ``$ref`` pointer could not be followed."""
