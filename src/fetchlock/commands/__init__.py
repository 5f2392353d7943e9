"""CLI command implementations for fetchlock.

This package contains the implementation of each CLI command,
separated from the CLI framework setup in cli.py.
"""

from .config import config_app, config_init
from .get import get
from .locks import locks_app, locks_clean, locks_list

__all__ = [
    "config_app",
    "config_init",
    "get",
    "locks_app",
    "locks_clean",
    "locks_list",
]
