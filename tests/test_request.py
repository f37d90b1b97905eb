# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for volce/request.py."""

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from volce.errors import ConfigurationError, DecodeError, TransportError
from volce.request import (
    DEFAULT_TIMEOUT_SECONDS,
    build_signed_request,
    format_query,
    get_host,
    send_request,
    send_request_async,
)
from volce.services.visual import OcrNormalResponse
from volce.signing import parse_auth_header, payload_hash, signature_v4


ACCESS_KEY = "AKLTexampleaccesskey"
SECRET_KEY = "test-secret-do-not-log"
ENDPOINT = "https://visual.volcengineapi.com"
QUERY_PARAMS = {"Version": "2020-08-26", "Action": "OCRNormal"}
BODY = "image_url=https%3A%2F%2Fexample.com%2Fa.png"
FORM = "application/x-www-form-urlencoded"
NOW = datetime(2020, 1, 1, 0, 0, 0, tzinfo=UTC)

SUCCESS_BODY = (
    b'{"code":10000,"message":"Success","data":null,'
    b'"request_id":"r1","time_elapsed":"10ms"}'
)


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _send(
    client: Any, *, endpoint: str = ENDPOINT, **kwargs: Any
) -> Any:
    kwargs.setdefault("now", NOW)
    return send_request(
        ACCESS_KEY,
        SECRET_KEY,
        endpoint,
        "cn-north-1",
        "cv",
        "POST",
        FORM,
        QUERY_PARAMS,
        BODY,
        client=client,
        **kwargs,
    )


class TestGetHost:
    """Tests for get_host."""

    def test_https_endpoint(self) -> None:
        assert get_host(ENDPOINT) == "visual.volcengineapi.com"

    def test_port_and_path_stripped(self) -> None:
        assert get_host("http://localhost:8080/api") == "localhost"

    def test_no_scheme_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="no host"):
            get_host("visual.volcengineapi.com")

    def test_empty_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            get_host("")

    def test_malformed_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid endpoint"):
            get_host("http://[::1")


class TestFormatQuery:
    """Tests for format_query."""

    def test_sorted_by_key(self) -> None:
        """Keys render alphabetically, not in insertion order."""
        result = format_query({"Version": "2020-08-26", "Action": "OCRNormal"})
        assert result == "Action=OCRNormal&Version=2020-08-26"

    def test_empty(self) -> None:
        assert format_query({}) == ""

    def test_values_not_encoded(self) -> None:
        assert format_query({"a": "x y"}) == "a=x y"


class TestBuildSignedRequest:
    """Tests for build_signed_request."""

    def test_headers_and_url(self) -> None:
        request = build_signed_request(
            ACCESS_KEY,
            SECRET_KEY,
            ENDPOINT,
            "cn-north-1",
            "cv",
            "POST",
            FORM,
            QUERY_PARAMS,
            BODY,
            now=NOW,
        )

        assert request.method == "POST"
        assert request.url == (
            f"{ENDPOINT}?Action=OCRNormal&Version=2020-08-26"
        )
        assert request.content == BODY.encode()
        assert request.headers["X-Date"] == "20200101T000000Z"
        assert request.headers["X-Content-Sha256"] == payload_hash(BODY)
        assert request.headers["Content-Type"] == FORM

    def test_signature_covers_sent_content_type(self) -> None:
        """The signed content-type is the one sent on the wire."""
        request = build_signed_request(
            ACCESS_KEY,
            SECRET_KEY,
            ENDPOINT,
            "cn-north-1",
            "cv",
            "POST",
            FORM,
            QUERY_PARAMS,
            BODY,
            now=NOW,
        )
        expected, _ = signature_v4(
            ACCESS_KEY,
            SECRET_KEY,
            "visual.volcengineapi.com",
            "cn-north-1",
            "cv",
            "POST",
            "Action=OCRNormal&Version=2020-08-26",
            BODY,
            content_type=FORM,
            now=NOW,
        )
        assert request.headers["Authorization"] == expected

    def test_empty_query_has_no_question_mark(self) -> None:
        request = build_signed_request(
            ACCESS_KEY,
            SECRET_KEY,
            ENDPOINT,
            "cn-north-1",
            "cv",
            "GET",
            "application/json",
            {},
            "",
            now=NOW,
        )
        assert request.url == ENDPOINT

    def test_bad_endpoint(self) -> None:
        with pytest.raises(ConfigurationError):
            build_signed_request(
                ACCESS_KEY,
                SECRET_KEY,
                "not a url",
                "cn-north-1",
                "cv",
                "POST",
                FORM,
                QUERY_PARAMS,
                BODY,
            )


class TestSendRequest:
    """Tests for send_request."""

    def test_wire_request(self) -> None:
        """Sends the signed headers, sorted query and body unchanged."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, content=SUCCESS_BODY)

        with _client(handler) as client:
            _send(client)

        assert len(captured) == 1
        request = captured[0]
        assert request.method == "POST"
        assert request.url.host == "visual.volcengineapi.com"
        assert request.url.query == b"Action=OCRNormal&Version=2020-08-26"
        assert request.content == BODY.encode()
        assert request.headers["x-date"] == "20200101T000000Z"
        assert request.headers["x-content-sha256"] == payload_hash(BODY)
        assert request.headers["content-type"] == FORM

        parsed = parse_auth_header(request.headers["authorization"])
        assert parsed is not None
        assert parsed.access_key == ACCESS_KEY
        assert parsed.scope == "20200101/cn-north-1/cv/request"

    def test_decodes_typed_response(self) -> None:
        """Success envelope with null data decodes without error."""
        with _client(
            lambda request: httpx.Response(200, content=SUCCESS_BODY)
        ) as client:
            result = _send(client, parse=OcrNormalResponse.from_dict)

        assert isinstance(result, OcrNormalResponse)
        assert result.code == 10000
        assert result.message == "Success"
        assert result.request_id == "r1"
        assert result.data is None

    def test_default_returns_json_value(self) -> None:
        with _client(
            lambda request: httpx.Response(200, content=SUCCESS_BODY)
        ) as client:
            result = _send(client)
        assert result == json.loads(SUCCESS_BODY)

    def test_non_json_body_raises_decode_error(self) -> None:
        with _client(
            lambda request: httpx.Response(200, content=b"not json")
        ) as client:
            with pytest.raises(DecodeError) as exc_info:
                _send(client, parse=OcrNormalResponse.from_dict)

        assert exc_info.value.status_code == 200
        assert exc_info.value.body == "not json"

    def test_shape_mismatch_raises_decode_error(self) -> None:
        """Provider error payloads without the envelope fields fail to decode."""
        body = {
            "ResponseMetadata": {
                "RequestId": "r2",
                "Error": {"Code": "SignatureDoesNotMatch"},
            }
        }
        with _client(
            lambda request: httpx.Response(403, json=body)
        ) as client:
            with pytest.raises(DecodeError, match="HTTP 403") as exc_info:
                _send(client, parse=OcrNormalResponse.from_dict)

        assert exc_info.value.status_code == 403
        assert "SignatureDoesNotMatch" in exc_info.value.body

    def test_json_array_raises_decode_error(self) -> None:
        with _client(lambda request: httpx.Response(200, json=[1])) as client:
            with pytest.raises(DecodeError):
                _send(client, parse=OcrNormalResponse.from_dict)

    def test_deeply_nested_body_raises_decode_error(self) -> None:
        """Nesting beyond the recursion limit is a decode failure."""
        with _client(
            lambda request: httpx.Response(200, content=b"[" * 200000)
        ) as client:
            with pytest.raises(DecodeError, match="not valid JSON"):
                _send(client, parse=OcrNormalResponse.from_dict)

    def test_infinite_code_raises_decode_error(self) -> None:
        body = (
            b'{"code":1e999,"message":"m","request_id":"r",'
            b'"time_elapsed":"t","data":null}'
        )
        with _client(
            lambda request: httpx.Response(200, content=body)
        ) as client:
            with pytest.raises(DecodeError, match="OverflowError") as exc:
                _send(client, parse=OcrNormalResponse.from_dict)

        assert isinstance(exc.value.__cause__, OverflowError)

    def test_huge_coordinate_raises_decode_error(self) -> None:
        data = {
            "line_texts": ["a"],
            "line_rects": [{"x": 10**400, "y": 0, "width": 1, "height": 1}],
            "line_probs": [1.0],
            "chars": [[]],
            "polygons": [[[0, 0]]],
        }
        body = json.loads(SUCCESS_BODY)
        body["data"] = data
        content = json.dumps(body).encode()
        with _client(
            lambda request: httpx.Response(200, content=content)
        ) as client:
            with pytest.raises(DecodeError, match="OverflowError"):
                _send(client, parse=OcrNormalResponse.from_dict)

    def test_error_status_with_json_body_is_decoded(self) -> None:
        """HTTP status alone does not fail the call."""
        with _client(
            lambda request: httpx.Response(500, content=SUCCESS_BODY)
        ) as client:
            result = _send(client, parse=OcrNormalResponse.from_dict)
        assert result.code == 10000

    def test_connect_error_raises_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _client(handler) as client:
            with pytest.raises(TransportError, match="ConnectError") as exc:
                _send(client)

        assert isinstance(exc.value.__cause__, httpx.ConnectError)

    def test_timeout_raises_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with _client(handler) as client:
            with pytest.raises(TransportError):
                _send(client)

    def test_bad_endpoint_sends_nothing(self) -> None:
        handler = MagicMock()
        with _client(handler) as client:
            with pytest.raises(ConfigurationError):
                _send(client, endpoint="visual.volcengineapi.com")
        handler.assert_not_called()

    def test_no_retry(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("down", request=request)

        with _client(handler) as client:
            with pytest.raises(TransportError):
                _send(client)
        assert len(calls) == 1

    def test_own_client_uses_default_timeout(self) -> None:
        """Without a client, a short-lived one is created and closed."""
        with patch("volce.request.httpx.Client") as mock_client_cls:
            mock_client = MagicMock()
            mock_client.__enter__ = MagicMock(return_value=mock_client)
            mock_client.__exit__ = MagicMock(return_value=False)
            mock_client.request.return_value = httpx.Response(
                200, content=SUCCESS_BODY
            )
            mock_client_cls.return_value = mock_client

            result = send_request(
                ACCESS_KEY,
                SECRET_KEY,
                ENDPOINT,
                "cn-north-1",
                "cv",
                "POST",
                FORM,
                QUERY_PARAMS,
                BODY,
            )

        assert result["code"] == 10000
        mock_client_cls.assert_called_once_with(
            timeout=DEFAULT_TIMEOUT_SECONDS
        )
        mock_client.__exit__.assert_called_once()

    def test_own_client_zero_timeout_kept(self) -> None:
        """An explicit zero timeout is not replaced by the default."""
        with patch("volce.request.httpx.Client") as mock_client_cls:
            mock_client = MagicMock()
            mock_client.__enter__ = MagicMock(return_value=mock_client)
            mock_client.__exit__ = MagicMock(return_value=False)
            mock_client.request.return_value = httpx.Response(
                200, content=SUCCESS_BODY
            )
            mock_client_cls.return_value = mock_client

            _send(None, timeout=0)

        mock_client_cls.assert_called_once_with(timeout=0)

    def test_timeout_forwarded_to_caller_client(self) -> None:
        client = MagicMock()
        client.request.return_value = httpx.Response(200, content=SUCCESS_BODY)

        _send(client, timeout=5.0)

        assert client.request.call_args.kwargs["timeout"] == 5.0

    def test_caller_client_timeout_left_alone(self) -> None:
        client = MagicMock()
        client.request.return_value = httpx.Response(200, content=SUCCESS_BODY)

        _send(client)

        assert "timeout" not in client.request.call_args.kwargs

    def test_secret_never_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG)
        with _client(
            lambda request: httpx.Response(200, content=SUCCESS_BODY)
        ) as client:
            _send(client)

        assert caplog.records
        assert SECRET_KEY not in caplog.text

    def test_scope_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="volce.request")
        with _client(
            lambda request: httpx.Response(200, content=SUCCESS_BODY)
        ) as client:
            _send(client)

        assert "scope=20200101/cn-north-1/cv/request" in caplog.text


class TestSendRequestAsync:
    """Tests for send_request_async."""

    def test_round_trip(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, content=SUCCESS_BODY)

        async def run() -> OcrNormalResponse:
            async with httpx.AsyncClient(
                transport=httpx.MockTransport(handler)
            ) as client:
                return await send_request_async(
                    ACCESS_KEY,
                    SECRET_KEY,
                    ENDPOINT,
                    "cn-north-1",
                    "cv",
                    "POST",
                    FORM,
                    QUERY_PARAMS,
                    BODY,
                    parse=OcrNormalResponse.from_dict,
                    client=client,
                    now=NOW,
                )

        result = asyncio.run(run())

        assert result.code == 10000
        assert captured[0].headers["x-date"] == "20200101T000000Z"

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        async def run() -> Any:
            async with httpx.AsyncClient(
                transport=httpx.MockTransport(handler)
            ) as client:
                return await send_request_async(
                    ACCESS_KEY,
                    SECRET_KEY,
                    ENDPOINT,
                    "cn-north-1",
                    "cv",
                    "POST",
                    FORM,
                    QUERY_PARAMS,
                    BODY,
                    client=client,
                )

        with pytest.raises(TransportError):
            asyncio.run(run())

    def test_decode_error(self) -> None:
        async def run() -> Any:
            async with httpx.AsyncClient(
                transport=httpx.MockTransport(
                    lambda request: httpx.Response(200, content=b"not json")
                )
            ) as client:
                return await send_request_async(
                    ACCESS_KEY,
                    SECRET_KEY,
                    ENDPOINT,
                    "cn-north-1",
                    "cv",
                    "POST",
                    FORM,
                    QUERY_PARAMS,
                    BODY,
                    client=client,
                )

        with pytest.raises(DecodeError):
            asyncio.run(run())
