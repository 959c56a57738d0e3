"""Utility modules for the moveset CLI.

- logging: file + console logging setup
"""

from .logging import setup_logging

__all__ = ["setup_logging"]
