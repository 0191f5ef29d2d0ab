"""Static bearer token webhook authentication plugin."""

from wagate.plugins.bearer.plugin import BearerAuthPlugin

__all__ = ["BearerAuthPlugin"]
