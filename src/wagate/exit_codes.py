"""Numeric process exit codes for the ``wagate`` operator CLI.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~wagate.exceptions.GatewayError` subclass.
Shell wrappers can inspect the exit code to determine the failure class
without parsing stderr.

Example::

    $ wagate webhook-auth client-credentials alice
    $ echo $?
    3   # EXIT_TOKEN_FAILURE -- the token endpoint rejected the grant
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_CONFIGURATION = 2
"""Webhook auth settings were rejected by validation."""

EXIT_TOKEN_FAILURE = 3
"""An explicit OAuth2 token acquisition failed."""

EXIT_NOT_FOUND = 4
"""The requested tenant does not exist."""

EXIT_SESSION_ERROR = 5
"""The session engine failed to start or stop a session."""

EXIT_DELIVERY_ERROR = 6
"""A webhook could not be delivered after all retries."""
