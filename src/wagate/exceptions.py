"""Exception hierarchy for wagate.

All exceptions inherit from :class:`GatewayError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`wagate.exit_codes`.
The CLI entry point in :func:`wagate.app.main` catches ``GatewayError`` and
exits with the appropriate code.

Subclass hierarchy::

    GatewayError (exit 1)
    +-- ConfigError             (exit 1)
    +-- ConfigurationError      (exit 2)
    +-- TokenAcquisitionError   (exit 3)
    +-- TenantNotFoundError     (exit 4)
    +-- SessionError            (exit 5)
    +-- WebhookDeliveryError    (exit 6)

Only configuration-time code raises :class:`ConfigurationError` and
:class:`TokenAcquisitionError`. The dispatch path (header resolution and
token refresh) never raises; it degrades to unauthenticated delivery.
"""

from wagate.exit_codes import (
    EXIT_DELIVERY_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_CONFIGURATION,
    EXIT_NOT_FOUND,
    EXIT_SESSION_ERROR,
    EXIT_TOKEN_FAILURE,
)


class GatewayError(Exception):
    """Base exception for all wagate errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(GatewayError):
    """Raised for problems with the gateway config file or environment."""

    exit_code = EXIT_GENERIC_FAILURE


class ConfigurationError(GatewayError):
    """Raised when webhook auth settings are missing fields required by the selected policy."""

    exit_code = EXIT_INVALID_CONFIGURATION


class TokenAcquisitionError(GatewayError):
    """Raised when the token endpoint rejects an explicit grant.

    The message keeps the endpoint's own error text so that operators can
    see why the grant failed (``invalid_client``, ``invalid_grant``, ...).
    """

    exit_code = EXIT_TOKEN_FAILURE


class TenantNotFoundError(GatewayError):
    """Raised when a tenant id or username does not exist in the store."""

    exit_code = EXIT_NOT_FOUND


class SessionError(GatewayError):
    """Raised by the CLI layer when the session engine fails."""

    exit_code = EXIT_SESSION_ERROR


class WebhookDeliveryError(GatewayError):
    """Raised when a webhook POST fails after every retry."""

    exit_code = EXIT_DELIVERY_ERROR
