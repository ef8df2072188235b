"""
credentia - password, registration and login core.

Top-level public API exports the most commonly used types.
"""

from __future__ import annotations

from .app import (
    UserService,
    PasswordCodec,
    RawHints,
    ResolvedUser,
    Entity,
    EntityStore,
    MemoryStore,
    SQLiteStore,
)
from .core.config import Options, FieldSpec
from .core.error import CredentiaError

__all__ = [
    "UserService",
    "PasswordCodec",
    "RawHints",
    "ResolvedUser",
    "Entity",
    "EntityStore",
    "MemoryStore",
    "SQLiteStore",
    "Options",
    "FieldSpec",
    "CredentiaError",
    "__version__",
]

__version__ = "0.1.0"
