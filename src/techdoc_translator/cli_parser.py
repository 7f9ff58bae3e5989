#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# HERE IS THE CHANGELOG FOR THIS VERSION OF THE CODE:
# - Argument parser for techdoc-translate
# - Arguments grouped into input/output, API overrides and protection options
#

"""
cli_parser.py - Command-line argument parsing for techdoc-translate
==================================================================

Handles parsing and validation of command-line arguments.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from .common_constants import SUPPORTED_LANGUAGES, normalize_language
from .text_protection import PATTERN_TYPES

EPILOG = """
Examples:
  techdoc-translate manual.md -t Japanese -o manual.ja.md
  cat notes.txt | techdoc-translate -t en
  techdoc-translate --test-connection --endpoint http://localhost:1234
  techdoc-translate --list-models

Code blocks, tables, paths, URLs, log lines and numeric data are replaced by
placeholders before translation and restored afterwards. Use --protect to
limit protection to some pattern types.
"""


def _add_basic_args(parser: argparse.ArgumentParser) -> None:
    """Add input and output arguments to the parser.

    Args:
        parser: ArgumentParser instance to add arguments to
    """
    parser.add_argument(
        "filepath",
        type=str,
        nargs="?",
        help="Text or markdown file to translate. Use '-' or omit to read from stdin",
    )

    parser.add_argument(
        "--config",
        type=str,
        default="techdoc_config.yml",
        help="Path to configuration file (default: techdoc_config.yml)",
    )

    parser.add_argument(
        "-t",
        "--target-language",
        type=str,
        default="English",
        help=f"Target language: {', '.join(SUPPORTED_LANGUAGES)} (default: English)",
    )

    parser.add_argument(
        "-o",
        "--output",
        type=str,
        help="Write the translation to this file instead of stdout",
    )


def _add_api_args(parser: argparse.ArgumentParser) -> None:
    """Add API-related arguments to the parser.

    Args:
        parser: ArgumentParser instance to add arguments to
    """
    parser.add_argument("--endpoint", type=str, help="API base URL (overrides config)")

    parser.add_argument("--model", type=str, help="Model name (overrides config)")

    parser.add_argument(
        "--temperature",
        type=float,
        help="Sampling temperature (overrides config)",
    )

    parser.add_argument(
        "--max-tokens",
        type=int,
        help="Maximum response tokens per request (overrides config)",
    )

    parser.add_argument(
        "--timeout",
        type=int,
        help="Request timeout in seconds (overrides config)",
    )

    parser.add_argument(
        "--max-retries",
        type=int,
        help="Attempts per request before giving up (overrides config)",
    )

    parser.add_argument(
        "--test-connection",
        action="store_true",
        help="Send a one-token request to the API and exit",
    )

    parser.add_argument(
        "--list-models",
        action="store_true",
        help="List the models served by the API and exit",
    )


def _add_protection_args(parser: argparse.ArgumentParser) -> None:
    """Add chunking and protection arguments to the parser.

    Args:
        parser: ArgumentParser instance to add arguments to
    """
    parser.add_argument(
        "--max-chunk-tokens",
        type=int,
        help="Estimated token budget above which the text is split into chunks (overrides config)",
    )

    parser.add_argument(
        "--protect",
        nargs="+",
        choices=PATTERN_TYPES,
        metavar="TYPE",
        help=f"Only protect these pattern types ({', '.join(PATTERN_TYPES)})",
    )

    parser.add_argument(
        "--show-protected",
        action="store_true",
        help="Print the protected spans and exit without translating",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all command-line options.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="techdoc-translate",
        description="Translate technical documents with a local or remote LLM while keeping code and data intact",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )

    _add_basic_args(parser)
    _add_api_args(parser)
    _add_protection_args(parser)

    return parser


def validate_args(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    """Validate parsed arguments and normalize the target language.

    Args:
        args: Parsed command-line arguments
        parser: ArgumentParser instance for error reporting

    Raises:
        SystemExit: If validation fails
    """
    args.target_language = normalize_language(args.target_language)
    if not args.target_language:
        parser.error("target language must not be empty")

    if args.filepath and args.filepath != "-":
        path = Path(args.filepath)
        if not path.exists():
            parser.error(f"File not found: {args.filepath}")
        if not path.is_file():
            parser.error(f"Not a file: {args.filepath}")

    for name in ("max_chunk_tokens", "max_tokens", "timeout", "max_retries"):
        value = getattr(args, name)
        if value is not None and value < 1:
            parser.error(f"--{name.replace('_', '-')} must be a positive integer")


def config_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Configuration values set on the command line, as a partial config dict."""
    api: dict[str, Any] = {}
    mapping = {
        "endpoint": "default_endpoint",
        "model": "default_model",
        "temperature": "temperature",
        "max_tokens": "max_tokens",
        "timeout": "timeout",
        "max_retries": "retry_attempts",
        "max_chunk_tokens": "chunk_max_tokens",
    }
    for arg_name, key in mapping.items():
        value = getattr(args, arg_name, None)
        if value is not None:
            api[key] = value
    return {"api": api} if api else {}
