# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Clients for individual Volcengine services."""

from volce.services.visual import (
    OcrNormalRequest,
    OcrNormalResponse,
    TextToImageRequest,
    TextToImageResponse,
    VisualClient,
)


__all__ = [
    "OcrNormalRequest",
    "OcrNormalResponse",
    "TextToImageRequest",
    "TextToImageResponse",
    "VisualClient",
]
