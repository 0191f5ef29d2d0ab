"""Outbound webhook delivery for tenant events."""

from wagate.webhooks.dispatcher import WebhookDispatcher

__all__ = ["WebhookDispatcher"]
