"""Abstract base class for webhook authentication plugins.

This module defines the two foundational types of the auth subsystem:

- :class:`AuthResult` -- a plain container for the HTTP headers an auth
  plugin produces for one outbound webhook call.
- :class:`AuthPlugin` -- the abstract base class that every webhook auth
  policy must extend.

To implement a new policy, subclass :class:`AuthPlugin`, set the
:attr:`~AuthPlugin.auth_type` property, and implement
:meth:`~AuthPlugin.authenticate`. Override :meth:`~AuthPlugin.validate_settings`
for configuration-time validation.

See Also:
    :mod:`wagate.auth.manager` for plugin registration and dispatch.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from wagate.models import Tenant, WebhookAuthSettings, WebhookAuthType


class AuthResult:
    """Container for the headers to attach to an outbound webhook request.

    Args:
        headers: HTTP headers to add (e.g. ``{"Authorization": "Bearer ..."}``).

    Example::

        result = AuthResult(headers={"Authorization": "Bearer tok123"})
        assert result.headers["Authorization"] == "Bearer tok123"
    """

    def __init__(self, headers: dict[str, str] | None = None):
        self.headers = headers or {}

    def __bool__(self) -> bool:
        return bool(self.headers)


class AuthPlugin(ABC):
    """Abstract base class for webhook auth plugins.

    Every concrete policy (basic, bearer, OAuth2, ...) must subclass this
    and provide:

    1. An :attr:`auth_type` property returning the
       :class:`~wagate.models.WebhookAuthType` it handles.
    2. An :meth:`authenticate` implementation that reads the tenant's
       credential fields and returns an :class:`AuthResult`.

    Plugins are registered with :class:`~wagate.auth.manager.AuthHeaderResolver`
    and looked up by the tenant's ``webhook_auth_type`` at dispatch time.
    """

    @property
    @abstractmethod
    def auth_type(self) -> WebhookAuthType:
        """Return the policy this plugin handles."""
        ...

    @abstractmethod
    async def authenticate(self, tenant: Tenant) -> AuthResult:
        """Produce the headers for one webhook call on behalf of *tenant*.

        Implementations return an empty :class:`AuthResult` when the
        tenant's credentials are incomplete; delivery then proceeds
        unauthenticated.
        """
        ...

    def validate_settings(self, settings: WebhookAuthSettings) -> list[str]:
        """Validate a configuration request before it is stored.

        Args:
            settings: The requested webhook auth configuration.

        Returns:
            A list of error message strings. An empty list means the
            configuration is valid.
        """
        return []
