"""wagate -- multi-tenant messaging gateway core.

Each tenant owns one messaging session and one outbound webhook
configuration. This package provides the pieces that sit between the
session engine and the tenants' webhook endpoints:

- connecting sessions, including the QR pairing handshake;
- forwarding session lifecycle events to webhooks;
- authenticating every webhook call with the tenant's chosen policy
  (none, basic, bearer, or OAuth2 with token caching and refresh).

An operator CLI (``wagate``) manages tenants and their webhook auth.

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware gateway configuration.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes for the CLI.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
