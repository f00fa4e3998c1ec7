"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a failure category of a login attempt and is
referenced by the corresponding :class:`~authgate.exceptions.AuthGateError`
subclass. Shell wrappers can tell "bad credentials" apart from "IdP
unreachable, try again" without parsing stderr.

Example::

    $ authgate login password --username alice --password wrong
    $ echo $?
    3   # EXIT_REJECTED -- the IdP declined the credentials
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (including configuration problems)."""

EXIT_INVALID_INPUT = 2
"""A required credential field was missing or empty."""

EXIT_REJECTED = 3
"""The identity provider explicitly declined the credentials."""

EXIT_SEQUENCE_VIOLATION = 4
"""A login step was attempted out of order (e.g. OTP verify before request)."""

EXIT_UPSTREAM = 6
"""The identity provider could not be reached or answered unexpectedly."""
