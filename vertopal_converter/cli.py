"""Command-line interface for the Vertopal Converter.

WHY: Users need a quick way to convert a file from the terminal without
writing any Python. The CLI wires the whole upload-to-download workflow
behind a single command, and exposes the format list
lookup for discovering what a format can be converted to.

HOW: argparse parses the input path, target format and options. The
async workflow runs via asyncio.run(). Progress lines go to stderr;
logging is configured with basicConfig (DEBUG with --verbose).
Credentials given on the command line go into a private Config, so the
process-wide configuration is left untouched.

RULES:
- Positional argument: input file path (not needed with --list-formats)
- --to is required for conversions
- Default output path: input path with the target format as extension,
  with a "-converted" suffix if that would overwrite the input
- --server-filename renames the output to the service-provided filename
- Exit code 0 on success, 1 on any VertopalError or failed conversion,
  130 on Ctrl-C
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from vertopal_converter.api.credential import Credential
from vertopal_converter.api.enums import InterfaceSublistMode
from vertopal_converter.api.errors import VertopalError
from vertopal_converter.config import Config
from vertopal_converter.converter import Converter
from vertopal_converter.core.formats import canonicalize_format
from vertopal_converter.io.adapters import FileInput, FileOutput

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr, flushed, so stdout stays pipeable."""
    print(msg, file=sys.stderr, flush=True)


def default_output_path(input_path: Path, output_format: str) -> Path:
    """Return the default destination for converting ``input_path`` to ``output_format``.

    Uses the part of the format before any "-type" qualifier as the
    extension. Never returns the input path itself.
    """
    extension = (canonicalize_format(output_format) or "out").split("-")[0]
    candidate = input_path.with_suffix("." + extension)
    if candidate == input_path:
        candidate = input_path.with_name("{}-converted.{}".format(input_path.stem, extension))
    return candidate


def _build_config(args: argparse.Namespace) -> Config:
    cfg = Config()
    api = {}
    if args.app:
        api["app"] = args.app
    if args.token:
        api["token"] = args.token
    if args.endpoint:
        api["endpoint"] = args.endpoint.rstrip("/")
    if api:
        cfg.update({"api": api})
    if args.retries is not None:
        cfg.update({"connection_settings": {"retries": args.retries}})
    return cfg


async def _run_conversion(args: argparse.Namespace, cfg: Config) -> int:
    input_path = Path(args.input_file)
    output_path = Path(args.output) if args.output else default_output_path(input_path, args.to)

    source = FileInput(input_path)
    destination = FileOutput(output_path)

    async with Converter(credential=Credential.from_config(cfg), config=cfg) as converter:
        conversion = await converter.convert(
            source,
            destination,
            args.to,
            args.input_format,
            on_status=_status,
        )
        await conversion.wait()

        if not conversion.successful():
            _status("Error: conversion failed (status: {})".format(conversion.convert_status))
            return 1

        await conversion.download(use_server_filename=args.server_filename)

    _status("")
    _status("Done! Saved {}".format(destination.path))
    if conversion.credits_used is not None:
        _status("  vCredits used: {}".format(conversion.credits_used))
    return 0


async def _run_list_formats(args: argparse.Namespace, cfg: Config) -> int:
    async with Converter(credential=Credential.from_config(cfg), config=cfg) as converter:
        response = await converter.client.convert_formats(
            InterfaceSublistMode(args.list_formats),
            args.format,
        )
    output = response.get("result", {}).get("output", response)
    print(json.dumps(output, indent=2, sort_keys=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Kept separate from main() so tests can inspect the parser without
    running anything.
    """
    parser = argparse.ArgumentParser(
        prog="vertopal-converter",
        description="Convert files with the Vertopal API.",
    )

    parser.add_argument(
        "input_file",
        nargs="?",
        help="Path to the file to convert.",
    )
    parser.add_argument(
        "--to",
        help="Target format[-type], e.g. 'docx' or 'png'.",
    )
    parser.add_argument(
        "--from",
        dest="input_format",
        default=None,
        help="Source format[-type]. Inferred by the service when omitted.",
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Output file path (default: input path with the new extension).",
    )
    parser.add_argument(
        "--server-filename",
        action="store_true",
        help="Save the result under the filename suggested by the service.",
    )

    parser.add_argument(
        "--list-formats",
        choices=[mode.value for mode in InterfaceSublistMode],
        default=None,
        help="List formats instead of converting: 'outputs' (what --format "
             "converts to) or 'inputs' (what converts to --format).",
    )
    parser.add_argument(
        "--format",
        default=None,
        help="Format to list conversions for (with --list-formats).",
    )

    parser.add_argument("--app", default=None, help="Vertopal application ID.")
    parser.add_argument("--token", default=None, help="Vertopal security token.")
    parser.add_argument("--endpoint", default=None, help="API base URL.")
    parser.add_argument(
        "--retries",
        type=int,
        default=None,
        help="Attempts per request before giving up.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``vertopal-converter`` and ``python -m vertopal_converter``.

    argv=None means use sys.argv; explicit argv is for testing.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_formats is None:
        if not args.input_file:
            parser.error("the input file is required unless --list-formats is given")
        if not args.to:
            parser.error("--to is required")

    try:
        cfg = _build_config(args)
        if args.list_formats is not None:
            code = asyncio.run(_run_list_formats(args, cfg))
        else:
            code = asyncio.run(_run_conversion(args, cfg))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except VertopalError as e:
        logger.debug("Conversion failed", exc_info=True)
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        # Config errors (empty credentials, bad format names, etc.)
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
