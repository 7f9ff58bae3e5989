#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# HERE IS THE CHANGELOG FOR THIS VERSION OF THE CODE:
# - Configuration and logging setup for the techdoc-translate CLI
# - SIGINT aborts the running translation, a second SIGINT exits
#

"""
cli_setup.py - CLI setup and initialization
==========================================

Handles initialization of configuration, logging and signal handling
for the techdoc-translate command.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple

from .common_print_utils import safe_print
from .config_manager import ConfigManager, set_config_manager
from .translation_service import TranslationService

DEFAULT_CONFIG_FILE = "techdoc_config.yml"


def setup_configuration(argv: Optional[Sequence[str]] = None) -> Tuple[ConfigManager, dict[str, Any]]:
    """Load and validate configuration from config file.

    Args:
        argv: Command-line arguments (default: sys.argv[1:])

    Returns:
        Tuple of (ConfigManager instance, configuration dictionary)
    """
    # Pre-parse to get config file path
    preset_parser = argparse.ArgumentParser(add_help=False)
    preset_parser.add_argument("--config", type=str, default=DEFAULT_CONFIG_FILE)
    preset_args, _ = preset_parser.parse_known_args(argv)

    try:
        config_manager = ConfigManager(config_path=Path(preset_args.config))
    except (ValueError, OSError) as e:
        safe_print(f"[bold red]Configuration error: {e}[/bold red]")
        safe_print("Please fix the configuration file or delete it to regenerate defaults.")
        sys.exit(1)

    set_config_manager(config_manager)
    return config_manager, config_manager.config


def setup_logging(config: dict[str, Any]) -> logging.Logger:
    """Set up logging based on configuration.

    Args:
        config: Configuration dictionary

    Returns:
        Configured logger instance
    """
    log_level = getattr(logging, str(config["logging"]["level"]).upper(), logging.INFO)
    log_format = config["logging"]["format"]

    logging.basicConfig(level=log_level, format=log_format)
    logger = logging.getLogger("techdoc_translator")

    if config["logging"]["file_enabled"]:
        try:
            file_handler = logging.FileHandler(config["logging"]["file_path"], encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(log_format))
            logger.addHandler(file_handler)
        except OSError as e:
            logger.error(f"Failed to set up file logging to {config['logging']['file_path']}: {e}")

    return logger


def setup_signal_handler(service: TranslationService, logger: logging.Logger) -> None:
    """Abort the running translation on the first interrupt, exit on the second.

    Args:
        service: Translation service to abort
        logger: Logger instance
    """

    def signal_handler(sig: int, frame: Any) -> None:
        if service.abort():
            logger.info("Interrupt received. Cancelling translation (press Ctrl+C again to exit).")
            return
        logger.info("Interrupt received. Exiting.")
        sys.exit(130)

    signal.signal(signal.SIGINT, signal_handler)
