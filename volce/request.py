# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Signed request dispatch.

Builds a signed HTTP request from caller parameters, sends it with
``httpx`` and decodes the JSON response.  One call is one round trip: no
retries, no backoff.  Failures surface as ``ConfigurationError``,
``TransportError`` or ``DecodeError``.

Usage:
    from volce.request import send_request

    data = send_request(
        access_key,
        secret_key,
        "https://visual.volcengineapi.com",
        "cn-north-1",
        "cv",
        "POST",
        "application/json",
        {"Action": "CVProcess", "Version": "2022-08-31"},
        body,
        parse=TextToImageResponse.from_dict,
    )
"""

from __future__ import annotations

import json
import logging
import urllib.parse
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

import httpx

from volce.errors import ConfigurationError, DecodeError, TransportError
from volce.signing import credential_scope, payload_hash, signature_v4


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30.0


def get_host(endpoint: str) -> str:
    """Extract the bare host from an endpoint URL.

    Args:
        endpoint: Absolute endpoint URL.

    Returns:
        Host name without scheme, port or credentials.

    Raises:
        ConfigurationError: If the URL cannot be parsed or has no host.
    """
    try:
        host = urllib.parse.urlsplit(endpoint).hostname
    except ValueError as e:
        raise ConfigurationError(f"Invalid endpoint {endpoint!r}: {e}") from e
    if not host:
        raise ConfigurationError(f"Invalid endpoint {endpoint!r}: no host")
    return host


def format_query(params: Mapping[str, str]) -> str:
    """Render query parameters as ``key=value`` pairs sorted by key.

    Values are not percent-encoded; the same string is signed and sent.
    """
    return "&".join(f"{k}={params[k]}" for k in sorted(params))


@dataclass(frozen=True)
class SignedRequest:
    """A fully signed request, ready to hand to a transport."""

    method: str
    url: str
    headers: dict[str, str]
    content: bytes


def build_signed_request(
    access_key: str,
    secret_key: str,
    endpoint: str,
    region: str,
    service: str,
    method: str,
    content_type: str,
    query_params: Mapping[str, str],
    body: str | bytes,
    *,
    now: datetime | None = None,
) -> SignedRequest:
    """Sign a request without sending it.

    The signed ``content-type`` is the same value sent in the
    ``Content-Type`` header.

    Args:
        access_key: Access key ID.
        secret_key: Secret access key.
        endpoint: Endpoint URL (without query string).
        region: Region identifier.
        service: Service name.
        method: HTTP method.
        content_type: Content-Type header value.
        query_params: Query parameters (unique keys).
        body: Serialized request body.
        now: Signing instant.  Defaults to the current UTC time.

    Returns:
        SignedRequest with URL, headers and body bytes.

    Raises:
        ConfigurationError: If the endpoint has no host.
    """
    host = get_host(endpoint)
    query = format_query(query_params)
    content = body.encode("utf-8") if isinstance(body, str) else body

    authorization, x_date = signature_v4(
        access_key,
        secret_key,
        host,
        region,
        service,
        method,
        query,
        content,
        content_type=content_type,
        now=now,
    )

    logger.debug(
        "Signed %s request to %s (scope=%s)",
        method,
        host,
        credential_scope(x_date[:8], region, service),
    )

    headers = {
        "X-Date": x_date,
        "Authorization": authorization,
        "X-Content-Sha256": payload_hash(content),
        "Content-Type": content_type,
    }
    url = f"{endpoint}?{query}" if query else endpoint
    return SignedRequest(
        method=method, url=url, headers=headers, content=content
    )


def _identity(value: Any) -> Any:
    return value


def _decode(response: httpx.Response, parse: Callable[[Any], T]) -> T:
    """Decode a response body as JSON and convert it with ``parse``.

    Raises:
        DecodeError: If the body is not JSON or does not fit ``parse``.
    """
    logger.debug(
        "Response %d (%d bytes)", response.status_code, len(response.content)
    )
    try:
        data = json.loads(response.content)
    except (ValueError, RecursionError) as e:
        raise DecodeError(
            f"Response is not valid JSON (HTTP {response.status_code}): {e}",
            status_code=response.status_code,
            body=response.text,
        ) from e

    try:
        return parse(data)
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise DecodeError(
            f"Response does not match the expected shape "
            f"(HTTP {response.status_code}): {type(e).__name__}: {e}",
            status_code=response.status_code,
            body=response.text,
        ) from e


def _timeout_kwargs(timeout: float | None) -> dict[str, Any]:
    """Per-request timeout override for a caller-owned client."""
    if timeout is None:
        return {}
    return {"timeout": timeout}


def _own_client_timeout(timeout: float | None) -> float:
    """Timeout for a dispatcher-owned client; only None means default."""
    return DEFAULT_TIMEOUT_SECONDS if timeout is None else timeout


def send_request(
    access_key: str,
    secret_key: str,
    endpoint: str,
    region: str,
    service: str,
    method: str,
    content_type: str,
    query_params: Mapping[str, str],
    body: str | bytes,
    *,
    parse: Callable[[Any], T] = _identity,
    timeout: float | None = None,
    client: httpx.Client | None = None,
    now: datetime | None = None,
) -> T:
    """Sign and send a request, then decode the JSON response.

    Args:
        access_key: Access key ID.
        secret_key: Secret access key.
        endpoint: Endpoint URL (without query string).
        region: Region identifier.
        service: Service name.
        method: HTTP method.
        content_type: Content-Type header value.
        query_params: Query parameters (unique keys).
        body: Serialized request body (JSON or form-encoded text).
        parse: Converts the decoded JSON value into the caller's type.
            Defaults to returning the JSON value unchanged.
        timeout: Request timeout in seconds.  When ``client`` is given
            and ``timeout`` is None, the client's own timeout applies.
        client: Caller-owned ``httpx.Client`` (connection pool).  A
            short-lived client is created when omitted.
        now: Signing instant.  Defaults to the current UTC time.

    Returns:
        The value returned by ``parse``.

    Raises:
        ConfigurationError: If the endpoint has no host.
        TransportError: On connection, TLS or timeout failure.
        DecodeError: If the body is not JSON or does not fit ``parse``.
    """
    request = build_signed_request(
        access_key,
        secret_key,
        endpoint,
        region,
        service,
        method,
        content_type,
        query_params,
        body,
        now=now,
    )

    try:
        if client is not None:
            response = client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.content,
                **_timeout_kwargs(timeout),
            )
        else:
            with httpx.Client(
                timeout=_own_client_timeout(timeout)
            ) as own_client:
                response = own_client.request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    content=request.content,
                )
    except httpx.TransportError as e:
        raise TransportError(
            f"{request.method} {endpoint} failed: {type(e).__name__}: {e}"
        ) from e

    return _decode(response, parse)


async def send_request_async(
    access_key: str,
    secret_key: str,
    endpoint: str,
    region: str,
    service: str,
    method: str,
    content_type: str,
    query_params: Mapping[str, str],
    body: str | bytes,
    *,
    parse: Callable[[Any], T] = _identity,
    timeout: float | None = None,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> T:
    """Async variant of ``send_request`` using ``httpx.AsyncClient``.

    The call suspends only while sending the request and reading the
    response.  Cancelling it abandons the round trip; nothing needs
    cleaning up afterwards.
    """
    request = build_signed_request(
        access_key,
        secret_key,
        endpoint,
        region,
        service,
        method,
        content_type,
        query_params,
        body,
        now=now,
    )

    try:
        if client is not None:
            response = await client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.content,
                **_timeout_kwargs(timeout),
            )
        else:
            async with httpx.AsyncClient(
                timeout=_own_client_timeout(timeout)
            ) as own_client:
                response = await own_client.request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    content=request.content,
                )
    except httpx.TransportError as e:
        raise TransportError(
            f"{request.method} {endpoint} failed: {type(e).__name__}: {e}"
        ) from e

    return _decode(response, parse)
