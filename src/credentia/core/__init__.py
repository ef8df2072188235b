"""
credentia core layer.

Errors, options and logging shared across the user workflows.
"""

from . import error
from . import log
from . import config

__all__ = [
    "error",
    "log",
    "config",
]
