"""HTTP Basic webhook authentication plugin.

Implements the ``basic`` policy: the tenant's username and password are
sent as an ``Authorization: Basic <base64>`` header on every webhook call.

See Also:
    :class:`~wagate.plugins.basic.plugin.BasicAuthPlugin`
"""

from wagate.plugins.basic.plugin import BasicAuthPlugin, encode_basic_credentials

__all__ = ["BasicAuthPlugin", "encode_basic_credentials"]
