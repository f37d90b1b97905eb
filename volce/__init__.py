# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Signed requests to Volcengine APIs.

- Request signing (``volce.signing``)
- Signed request dispatch with typed JSON decoding (``volce.request``)
- Error taxonomy (``volce.errors``)
- Service clients (``volce.services``)
"""

from volce.errors import (
    ConfigurationError,
    DecodeError,
    TransportError,
    VolceError,
)
from volce.request import (
    SignedRequest,
    build_signed_request,
    send_request,
    send_request_async,
)
from volce.signing import signature_v4


__all__ = [
    "ConfigurationError",
    "DecodeError",
    "SignedRequest",
    "TransportError",
    "VolceError",
    "build_signed_request",
    "send_request",
    "send_request_async",
    "signature_v4",
]
