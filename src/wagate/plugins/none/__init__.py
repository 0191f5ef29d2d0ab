"""Unauthenticated webhook delivery (policy ``none``)."""

from wagate.plugins.none.plugin import NoneAuthPlugin

__all__ = ["NoneAuthPlugin"]
