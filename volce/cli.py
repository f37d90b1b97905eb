# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""volce CLI: call Volcengine APIs from the command line.

Usage:
    volce init
    volce visual ocr-normal --image-url URL
    volce visual ocr-normal --image-file PATH
    volce visual text-to-image --prompt TEXT [--width N] [--height N]

Credentials are read from ``~/.config/volce/volce.yaml`` when it exists,
otherwise from ``VOLCENGINE_ACCESS_KEY`` / ``VOLCENGINE_SECRET_KEY``.

Exit codes:
    0 - Success
    1 - Configuration, transport or decode failure
    2 - Usage error
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from volce.config import STUB_CONFIG, get_config_path, load
from volce.errors import VolceError
from volce.logging import configure_logging
from volce.services.visual import (
    OcrNormalRequest,
    TextToImageRequest,
    VisualClient,
)


logger = logging.getLogger(__name__)


def encode_image_file(path: Path) -> str:
    """Read a local image and return it base64-encoded."""
    return base64.b64encode(path.read_bytes()).decode("ascii")


def _print_json(value: object) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


def cmd_init(args: argparse.Namespace) -> int:
    """Create a stub config file if none exists.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (always 0).
    """
    config_path: Path = args.config or get_config_path()

    if config_path.exists():
        print(f"Config already exists: {config_path}")
        return 0

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(STUB_CONFIG)
    print(f"Created stub config: {config_path}")
    return 0


def cmd_ocr_normal(args: argparse.Namespace) -> int:
    """Handle ``visual ocr-normal``.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code.
    """
    if args.image_file is not None:
        try:
            image_base64 = encode_image_file(args.image_file)
        except OSError as e:
            print(
                f"Error: cannot read image file '{args.image_file}': {e}",
                file=sys.stderr,
            )
            return 1
        request = OcrNormalRequest(image_base64=image_base64)
    else:
        request = OcrNormalRequest(image_url=args.image_url)

    try:
        client = VisualClient.from_config(load(args.config))
        logger.info("Sending OCR request...")
        response = client.ocr_normal(request)
    except VolceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_json(asdict(response))
    return 0 if response.code == 10000 else 1


def cmd_text_to_image(args: argparse.Namespace) -> int:
    """Handle ``visual text-to-image``.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code.
    """
    request = TextToImageRequest(
        prompt=args.prompt,
        seed=args.seed,
        width=args.width,
        height=args.height,
    )

    try:
        client = VisualClient.from_config(load(args.config))
        logger.info("Sending text-to-image request...")
        response = client.text_to_image(request)
    except VolceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if response.data is None:
        print(
            f"Error: {response.message} (code {response.code})",
            file=sys.stderr,
        )
        return 1

    for url in response.data.image_urls:
        print(url)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="volce",
        description="A command line tool for Volcengine APIs",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file (default: ~/.config/volce/volce.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "init",
        help="Create a stub config file",
    )

    visual_parser = subparsers.add_parser(
        "visual",
        help="Commands for the Visual (CV) service",
    )
    visual_subparsers = visual_parser.add_subparsers(
        dest="visual_command", required=True
    )

    ocr_parser = visual_subparsers.add_parser(
        "ocr-normal",
        help="Perform general OCR on an image",
    )
    image_input = ocr_parser.add_mutually_exclusive_group(required=True)
    image_input.add_argument(
        "--image-url",
        help="URL of the image",
    )
    image_input.add_argument(
        "--image-file",
        type=Path,
        help="Path to a local image file",
    )

    t2i_parser = visual_subparsers.add_parser(
        "text-to-image",
        help="Generate an image from a text prompt",
    )
    t2i_parser.add_argument("--prompt", required=True, help="Text prompt")
    t2i_parser.add_argument(
        "--width", type=int, default=512, help="Image width (default: 512)"
    )
    t2i_parser.add_argument(
        "--height", type=int, default=512, help="Image height (default: 512)"
    )
    t2i_parser.add_argument(
        "--seed", type=int, default=-1, help="Random seed (default: -1)"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        argv: Arguments (default: ``sys.argv[1:]``).

    Returns:
        Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(level=logging.DEBUG if args.debug else logging.INFO)

    if args.command == "init":
        return cmd_init(args)
    elif args.visual_command == "ocr-normal":
        return cmd_ocr_normal(args)
    elif args.visual_command == "text-to-image":
        return cmd_text_to_image(args)
    else:
        parser.print_help()
        return 2


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())
