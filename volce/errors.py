# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Exception types raised by the request dispatcher.

Callers branch on the failure kind:

- ``ConfigurationError``: bad endpoint or unusable inputs (caller bug)
- ``TransportError``: network, TLS or timeout failure (may be retried)
- ``DecodeError``: response body is not the expected JSON shape
"""

from __future__ import annotations


class VolceError(Exception):
    """Base exception for all volce failures."""


class ConfigurationError(VolceError):
    """Raised for malformed endpoints or missing configuration."""


class TransportError(VolceError):
    """Raised when the HTTP round trip fails before a response arrives."""


class DecodeError(VolceError):
    """Raised when a response body cannot be decoded.

    Attributes:
        status_code: HTTP status of the response, if one was received.
        body: Leading excerpt of the raw response body.
    """

    _EXCERPT_LIMIT = 200

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body[: self._EXCERPT_LIMIT]
