#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# HERE IS THE CHANGELOG FOR THIS VERSION OF THE CODE:
# - techdoc-translate entry point
# - Translates a file or stdin, or probes the API (--test-connection, --list-models)
# - Error kinds mapped to exit codes
#

"""
cli.py - Command-line interface for the technical document translator
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .cli_parser import config_overrides, create_parser, validate_args
from .cli_setup import setup_configuration, setup_logging, setup_signal_handler
from .common_print_utils import safe_print
from .file_processors import get_processor, read_file
from .image_manager import ImageManager
from .models import FileTranslationOptions
from .text_protection import debug_protected_patterns, default_protector, get_protection_stats
from .translation_errors import TranslationCancelledError, TranslationError
from .translation_service import TranslationService
from .usage_tracker import global_usage_tracker

EXIT_CODES = {
    "validation": 2,
    "file-read": 3,
    "client-error": 4,
    "api-connection": 5,
    "api-timeout": 6,
    "api-response-format": 7,
    "translation-cancelled": 130,
}

tolog: logging.Logger = logging.getLogger(__name__)


def _read_input(filepath: Optional[str]) -> tuple[bytes, str]:
    if filepath and filepath != "-":
        return read_file(Path(filepath))
    return sys.stdin.buffer.read(), "txt"


def _print_progress(percent: float, message: str) -> None:
    safe_print(f"[cyan]{percent:5.1f}%[/cyan] {message}")


def _show_protected(content: bytes, file_type: str, protect_types: Optional[Sequence[str]]) -> None:
    text = get_processor(file_type).extract_text(content)
    if protect_types:
        result = default_protector.protect_specific_types(text, protect_types)
    else:
        result = default_protector.protect(text)

    stats = get_protection_stats(result.patterns)
    safe_print(debug_protected_patterns(result.patterns), markup=False, highlight=False)
    summary = ", ".join(f"{name}: {count}" for name, count in stats["by_type"].items() if count)
    safe_print(f"[bold]{stats['total']} spans, {stats['protected_chars']} characters protected[/bold] {summary}")


def _write_output(text: str, output: Optional[str]) -> None:
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        safe_print(f"[bold green]Translation saved to {output}[/bold green]")
    else:
        sys.stdout.write(text + "\n")
        sys.stdout.flush()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for the techdoc-translate command."""
    global tolog

    # Set up configuration first
    config_manager, config = setup_configuration(argv)

    # Set up logging based on config
    tolog = setup_logging(config)

    parser = create_parser()
    args = parser.parse_args(argv)
    validate_args(args, parser)

    overrides = config_overrides(args)
    if overrides:
        try:
            config_manager.update_config(overrides)
        except ValueError as e:
            parser.error(str(e))

    service = TranslationService(config_manager=config_manager)
    setup_signal_handler(service, tolog)

    if args.test_connection:
        if service.test_connection():
            safe_print(f"[bold green]Connected to {config_manager.get('api.default_endpoint')}[/bold green]")
            return
        safe_print(f"[bold red]Cannot connect to {config_manager.get('api.default_endpoint')}[/bold red]")
        sys.exit(EXIT_CODES["api-connection"])

    if args.list_models:
        models = service.fetch_available_models()
        if not models:
            safe_print("[bold yellow]No models available[/bold yellow]")
            sys.exit(EXIT_CODES["api-connection"])
        for model in models:
            sys.stdout.write(model + "\n")
        return

    try:
        content, file_type = _read_input(args.filepath)
        if args.show_protected:
            _show_protected(content, file_type, args.protect)
            return

        options = FileTranslationOptions(
            on_progress=_print_progress,
            image_manager=ImageManager(),
            protected_types=args.protect,
        )
        tolog.info(f"Translating {args.filepath or 'stdin'} to {args.target_language}")
        translated = service.translate_file(content, file_type, args.target_language, options)
    except TranslationCancelledError as e:
        safe_print(f"[bold yellow]{e.message}[/bold yellow]")
        sys.exit(EXIT_CODES[e.kind])
    except TranslationError as e:
        tolog.debug("Translation failed", exc_info=True)
        safe_print(f"[bold red]Error ({e.kind}): {e.message}[/bold red]")
        sys.exit(EXIT_CODES.get(e.kind, 1))

    _write_output(translated, args.output)

    usage = global_usage_tracker.get_summary()
    if usage["total_tokens"]:
        safe_print(f"[dim]Tokens used: {usage['total_tokens']} in {usage['request_count']} requests[/dim]")


if __name__ == "__main__":
    main()
