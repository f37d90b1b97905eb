# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Volcengine request signing (HMAC-SHA256, SigV4 style).

Computes the ``Authorization`` and ``X-Date`` header values for a request:

1. Canonical request: method, fixed ``/`` path, pre-sorted query string,
   four canonical headers, signed header list and payload hash.
2. String to sign: algorithm, timestamp, credential scope and the hash of
   the canonical request.
3. Signing key: HMAC chain over date, region, service and ``request``,
   seeded with the raw secret key.

All functions are pure.  The only impure input is the current time, which
``signature_v4`` reads only when the caller does not pass ``now``.

No third-party dependency; uses only stdlib hashlib/hmac.
"""

from __future__ import annotations

import hashlib
import hmac
import re
from datetime import UTC, datetime


ALGORITHM = "HMAC-SHA256"

# Final element of the credential scope and of the key derivation chain
SCOPE_TERMINATOR = "request"

DEFAULT_CONTENT_TYPE = "application/json"

# Header names covered by the signature, in canonical order
SIGNED_HEADERS = "content-type;host;x-content-sha256;x-date"

_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"
_DATE_FORMAT = "%Y%m%d"

# Authorization header regex
_AUTH_HEADER_RE = re.compile(
    r"(?P<algorithm>HMAC-SHA256)\s+"
    r"Credential=(?P<access_key>[^/]+)/(?P<scope>[^,]+),\s*"
    r"SignedHeaders=(?P<signed_headers>[^,]+),\s*"
    r"Signature=(?P<signature>[0-9a-f]+)"
)


# ---------------------------------------------------------------------------
# Parsed authorization header
# ---------------------------------------------------------------------------


class ParsedAuth:
    """Parsed Volcengine Authorization header."""

    __slots__ = (
        "algorithm",
        "access_key",
        "scope",
        "signed_headers",
        "signature",
    )

    def __init__(
        self,
        algorithm: str,
        access_key: str,
        scope: str,
        signed_headers: str,
        signature: str,
    ) -> None:
        self.algorithm = algorithm
        self.access_key = access_key
        self.scope = scope
        self.signed_headers = signed_headers
        self.signature = signature

    @property
    def scope_parts(self) -> list[str]:
        """Split scope into date/region/service/request."""
        return self.scope.split("/")

    @property
    def date(self) -> str:
        """Date from credential scope (YYYYMMDD)."""
        return self.scope_parts[0]

    @property
    def region(self) -> str:
        return self.scope_parts[1]

    @property
    def service(self) -> str:
        return self.scope_parts[2]


def parse_auth_header(auth_value: str) -> ParsedAuth | None:
    """Parse a Volcengine Authorization header.

    Args:
        auth_value: Full Authorization header value.

    Returns:
        ParsedAuth if the value has the expected shape, None otherwise.
    """
    m = _AUTH_HEADER_RE.match(auth_value)
    if not m:
        return None
    parsed = ParsedAuth(
        algorithm=m.group("algorithm"),
        access_key=m.group("access_key"),
        scope=m.group("scope"),
        signed_headers=m.group("signed_headers"),
        signature=m.group("signature"),
    )
    if len(parsed.scope_parts) != 4:
        return None
    return parsed


# ---------------------------------------------------------------------------
# Canonical request construction
# ---------------------------------------------------------------------------


def format_timestamps(now: datetime) -> tuple[str, str]:
    """Format the signing instant.

    Naive datetimes are taken to be UTC already.

    Args:
        now: Signing instant.

    Returns:
        Tuple of (``YYYYMMDDTHHMMSSZ`` timestamp, ``YYYYMMDD`` date stamp).
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    else:
        now = now.astimezone(UTC)
    return now.strftime(_TIMESTAMP_FORMAT), now.strftime(_DATE_FORMAT)


def payload_hash(body: str | bytes) -> str:
    """Hex-encoded SHA-256 of the request body."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hashlib.sha256(body).hexdigest()


def canonical_headers_string(
    content_type: str, host: str, content_sha256: str, x_date: str
) -> str:
    """Build the canonical headers block.

    Each line is ``name:value`` followed by a newline, in the order given
    by ``SIGNED_HEADERS``.

    Args:
        content_type: Content type to sign.
        host: Bare request host.
        content_sha256: Payload hash.
        x_date: Request timestamp.

    Returns:
        Canonical headers string.
    """
    return (
        f"content-type:{content_type}\n"
        f"host:{host}\n"
        f"x-content-sha256:{content_sha256}\n"
        f"x-date:{x_date}\n"
    )


def build_canonical_request(
    method: str,
    query: str,
    canonical_headers: str,
    signed_headers: str,
    content_sha256: str,
) -> str:
    """Build the canonical request string.

    The path is always ``/``.  The query string is used verbatim; callers
    sort it by key beforehand (see ``volce.request.format_query``).

    Args:
        method: HTTP method.
        query: Canonical query string (without leading ?).
        canonical_headers: Output of ``canonical_headers_string``.
        signed_headers: Semicolon-separated signed header names.
        content_sha256: Payload hash.

    Returns:
        Canonical request string.
    """
    return "\n".join(
        [
            method,
            "/",
            query,
            canonical_headers,
            signed_headers,
            content_sha256,
        ]
    )


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    """Build the credential scope (date/region/service/request)."""
    return f"{date_stamp}/{region}/{service}/{SCOPE_TERMINATOR}"


def build_string_to_sign(
    timestamp: str, scope: str, canonical_request: str
) -> str:
    """Build the string to sign.

    Args:
        timestamp: Request timestamp (from X-Date).
        scope: Credential scope.
        canonical_request: The canonical request string.

    Returns:
        String to sign.
    """
    return "\n".join(
        [
            ALGORITHM,
            timestamp,
            scope,
            hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
        ]
    )


def _hmac_sha256(key: bytes, msg: str | bytes) -> bytes:
    """HMAC-SHA256 helper."""
    if isinstance(msg, str):
        msg = msg.encode("utf-8")
    return hmac.new(key, msg, hashlib.sha256).digest()


def derive_signing_key(
    secret_key: str, date_stamp: str, region: str, service: str
) -> bytes:
    """Derive the per-day signing key.

    Unlike AWS, the chain is seeded with the raw secret key (no prefix).

    Args:
        secret_key: Secret access key.
        date_stamp: Date string (YYYYMMDD).
        region: Region identifier.
        service: Service name.

    Returns:
        Derived signing key bytes.
    """
    k_date = _hmac_sha256(secret_key.encode("utf-8"), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, SCOPE_TERMINATOR)


def sign(signing_key: bytes, string_to_sign: str) -> str:
    """Compute the hex-encoded request signature."""
    return _hmac_sha256(signing_key, string_to_sign).hex()


def build_authorization_header(
    access_key: str, scope: str, signed_headers: str, signature: str
) -> str:
    """Assemble the Authorization header value."""
    return (
        f"{ALGORITHM} Credential={access_key}/{scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )


def signature_v4(
    access_key: str,
    secret_key: str,
    host: str,
    region: str,
    service: str,
    method: str,
    query: str,
    body: str | bytes,
    *,
    content_type: str = DEFAULT_CONTENT_TYPE,
    now: datetime | None = None,
) -> tuple[str, str]:
    """Sign a request.

    The returned timestamp must be sent as the ``X-Date`` header unchanged;
    it is part of the signed material.

    Args:
        access_key: Access key ID.
        secret_key: Secret access key.
        host: Bare request host (no scheme or port).
        region: Region identifier.
        service: Service name.
        method: HTTP method.
        query: Canonical query string, already sorted by key.
        body: Serialized request body.
        content_type: Content type to sign.  Must match the Content-Type
            header sent on the wire.
        now: Signing instant.  Defaults to the current UTC time.

    Returns:
        Tuple of (Authorization header value, X-Date timestamp).
    """
    if now is None:
        now = datetime.now(UTC)
    x_date, date_stamp = format_timestamps(now)

    content_sha256 = payload_hash(body)
    canonical_headers = canonical_headers_string(
        content_type, host, content_sha256, x_date
    )
    canonical_request = build_canonical_request(
        method, query, canonical_headers, SIGNED_HEADERS, content_sha256
    )

    scope = credential_scope(date_stamp, region, service)
    string_to_sign = build_string_to_sign(x_date, scope, canonical_request)

    signing_key = derive_signing_key(secret_key, date_stamp, region, service)
    signature = sign(signing_key, string_to_sign)

    authorization = build_authorization_header(
        access_key, scope, SIGNED_HEADERS, signature
    )
    return authorization, x_date
