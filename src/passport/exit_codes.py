"""Numeric process exit codes for the ``passport`` command line tool.

Each constant maps to an error category and is referenced by the
corresponding :class:`~passport.exceptions.PassportError` subclass.
Deployment scripts can run ``passport check`` and inspect the exit code to
tell a bad provider configuration apart from a missing config file.

Example::

    $ passport check --config passport.yaml
    $ echo $?
    3   # EXIT_INVALID_URL -- a strategy URL failed validation
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or an unknown provider."""

EXIT_INVALID_URL = 3
"""A strategy or redirect URL is not a valid absolute URL."""

EXIT_CONFIG_ERROR = 4
"""The configuration file is missing, unreadable, or invalid."""

EXIT_AUTH_FAILURE = 5
"""An authorization attempt could not be resolved."""
