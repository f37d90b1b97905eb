# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Client for the Volcengine Visual (CV) service.

Wraps two actions of the ``cv`` service:

- ``OCRNormal`` (general OCR), sent as a form-encoded body
- ``CVProcess`` (text-to-image), sent as a JSON body

Request types serialize themselves; response types are frozen dataclasses
built with ``from_dict`` from the decoded JSON.
"""

from __future__ import annotations

import json
import urllib.parse
from dataclasses import asdict, dataclass
from typing import Any

import httpx

from volce.config import DEFAULT_ENDPOINT, DEFAULT_REGION, VolceConfig
from volce.request import send_request


VISUAL_ENDPOINT = DEFAULT_ENDPOINT
VISUAL_SERVICE = "cv"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

OCR_NORMAL_QUERY = {"Action": "OCRNormal", "Version": "2020-08-26"}
TEXT_TO_IMAGE_QUERY = {"Action": "CVProcess", "Version": "2022-08-31"}


def _require_mapping(raw: object) -> None:
    if not isinstance(raw, dict):
        raise TypeError(f"expected a JSON object, got {type(raw).__name__}")


def _as_int(value: object) -> int:
    """Accept a JSON integer only; floats and booleans are rejected."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# OCR
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OcrNormalRequest:
    """OCRNormal request.  Exactly one of the image fields should be set."""

    image_base64: str | None = None
    image_url: str | None = None
    approximate_pixel: str | None = None
    mode: str | None = None
    filter_thresh: str | None = None
    half_to_full: str | None = None

    def to_form(self) -> str:
        """Form-encode the fields that are set."""
        fields = {k: v for k, v in asdict(self).items() if v is not None}
        return urllib.parse.urlencode(fields)


@dataclass(frozen=True)
class RectInfo:
    """Bounding box of a recognized text line."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RectInfo:
        return cls(
            x=float(raw["x"]),
            y=float(raw["y"]),
            width=float(raw["width"]),
            height=float(raw["height"]),
        )


@dataclass(frozen=True)
class CharInfo:
    """A single recognized character with its box and confidence."""

    x: float
    y: float
    width: float
    height: float
    score: float
    char: str

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CharInfo:
        return cls(
            x=float(raw["x"]),
            y=float(raw["y"]),
            width=float(raw["width"]),
            height=float(raw["height"]),
            score=float(raw["score"]),
            char=str(raw["char"]),
        )


@dataclass(frozen=True)
class OcrNormalData:
    """Recognition result, one entry per text line in each list."""

    line_texts: tuple[str, ...]
    line_rects: tuple[RectInfo, ...]
    line_probs: tuple[float, ...]
    chars: tuple[tuple[CharInfo, ...], ...]
    polygons: tuple[tuple[tuple[int, ...], ...], ...]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> OcrNormalData:
        return cls(
            line_texts=tuple(str(t) for t in raw["line_texts"]),
            line_rects=tuple(RectInfo.from_dict(r) for r in raw["line_rects"]),
            line_probs=tuple(float(p) for p in raw["line_probs"]),
            chars=tuple(
                tuple(CharInfo.from_dict(c) for c in line)
                for line in raw["chars"]
            ),
            polygons=tuple(
                tuple(tuple(_as_int(v) for v in point) for point in polygon)
                for polygon in raw["polygons"]
            ),
        )


@dataclass(frozen=True)
class OcrNormalResponse:
    """OCRNormal response envelope.  ``data`` is None on failure."""

    code: int
    message: str
    request_id: str
    time_elapsed: str
    data: OcrNormalData | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> OcrNormalResponse:
        """Build from decoded JSON.

        Raises:
            KeyError: If a required field is missing.
            TypeError: If ``raw`` is not a mapping.
            ValueError: If a field has the wrong type.
        """
        _require_mapping(raw)
        data = raw.get("data")
        return cls(
            code=int(raw["code"]),
            message=str(raw["message"]),
            request_id=str(raw["request_id"]),
            time_elapsed=str(raw["time_elapsed"]),
            data=OcrNormalData.from_dict(data) if data is not None else None,
        )


# ---------------------------------------------------------------------------
# Text to image
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextToImageRequest:
    """CVProcess text-to-image request."""

    prompt: str
    req_key: str = "high_aes_general_v20"
    model_version: str = "general_v2.0"
    seed: int = -1
    scale: float = 3.5
    ddim_steps: int = 16
    width: int = 512
    height: int = 512
    use_sr: bool = True
    return_url: bool = True

    def to_json(self) -> str:
        """Serialize as compact JSON."""
        return json.dumps(asdict(self), separators=(",", ":"))


@dataclass(frozen=True)
class TextToImageData:
    image_urls: tuple[str, ...]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TextToImageData:
        return cls(image_urls=tuple(str(u) for u in raw["image_urls"]))


@dataclass(frozen=True)
class TextToImageResponse:
    """CVProcess response envelope.  ``data`` is None on failure."""

    code: int
    message: str
    data: TextToImageData | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TextToImageResponse:
        _require_mapping(raw)
        data = raw.get("data")
        return cls(
            code=int(raw["code"]),
            message=str(raw["message"]),
            data=TextToImageData.from_dict(data) if data is not None else None,
        )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class VisualClient:
    """Client for the Visual (CV) service.

    Holds no state beyond its settings; every call signs afresh.
    """

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        region: str = DEFAULT_REGION,
        *,
        endpoint: str = VISUAL_ENDPOINT,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._access_key = access_key
        self._secret_key = secret_key
        self.region = region
        self.endpoint = endpoint
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(
        cls, config: VolceConfig, *, client: httpx.Client | None = None
    ) -> VisualClient:
        """Create a client from loaded configuration."""
        return cls(
            config.access_key,
            config.secret_key,
            config.region,
            endpoint=config.endpoint,
            timeout=config.timeout,
            client=client,
        )

    def ocr_normal(self, req: OcrNormalRequest) -> OcrNormalResponse:
        """Call the OCRNormal (general OCR) action.

        See https://www.volcengine.com/docs/6790/117730
        """
        return send_request(
            self._access_key,
            self._secret_key,
            self.endpoint,
            self.region,
            VISUAL_SERVICE,
            "POST",
            FORM_CONTENT_TYPE,
            OCR_NORMAL_QUERY,
            req.to_form(),
            parse=OcrNormalResponse.from_dict,
            timeout=self.timeout,
            client=self._client,
        )

    def text_to_image(self, req: TextToImageRequest) -> TextToImageResponse:
        """Call the CVProcess text-to-image action."""
        return send_request(
            self._access_key,
            self._secret_key,
            self.endpoint,
            self.region,
            VISUAL_SERVICE,
            "POST",
            JSON_CONTENT_TYPE,
            TEXT_TO_IMAGE_QUERY,
            req.to_json(),
            parse=TextToImageResponse.from_dict,
            timeout=self.timeout,
            client=self._client,
        )
