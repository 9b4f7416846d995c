#!/usr/bin/env python3
"""
GeoFuse - Main Entry Point
Process entry point with logging setup
"""

import sys
import logging
from typing import Optional

from geofuse.geo_core.constants import DEFAULT_LOG_FORMAT, NOISY_LOGGERS


def setup_logging(level: str = 'WARNING', log_file: Optional[str] = None):
    """Configure logging for the application.

    Log records go to stderr so that JSON written to stdout stays clean.
    """
    log_level = getattr(logging, str(level).upper(), logging.WARNING)

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format=DEFAULT_LOG_FORMAT,
        handlers=handlers
    )
    logging.getLogger('geofuse').setLevel(log_level)

    # Set third-party loggers to WARNING to reduce noise
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def main():
    """Main entry point"""
    try:
        # Import CLI lazily so logging can be configured by the CLI itself
        from geofuse.geo_cli.cli import main_cli

        return main_cli()

    except KeyboardInterrupt:
        print("\nCancelled by user", file=sys.stderr)
        return 130

    except Exception as e:
        logging.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
