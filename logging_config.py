"""
Logging configuration for cleaner output.

Usage:
    import logging_config
    logging_config.setup()
"""

import logging
import sys


def setup(level=logging.INFO):
    """
    Configure logging for cleaner, more readable output.

    - Uses shorter timestamp format (HH:MM:SS instead of full datetime)
    - Keeps web3 and urllib3 request chatter out of the console
    """

    # Root logger - minimal format
    root = logging.getLogger()
    root.setLevel(level)

    # Clear existing handlers
    root.handlers.clear()

    # Create console handler with clean format
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)

    # Minimal format: time + level + message
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S"
    )
    console.setFormatter(formatter)
    root.addHandler(console)

    # Suppress noisy loggers
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    # Application loggers follow the requested level
    logging.getLogger("__main__").setLevel(level)
    logging.getLogger("arbitpy_ledger").setLevel(level)


def setup_minimal():
    """
    Even more minimal logging - only warnings and errors.
    Good for production or when you only care about problems.
    """
    setup(level=logging.WARNING)


def setup_debug():
    """
    Verbose logging for debugging.
    Shows everything including web3 provider requests.
    """
    setup(level=logging.DEBUG)
    logging.getLogger("web3").setLevel(logging.DEBUG)
