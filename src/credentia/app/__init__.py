"""Application-layer public API for credentia."""

# ---- Service ----
from .user import UserService

# ---- Workflows ----
from .password import PasswordCodec
from .resolver import UserResolver, RawHints, ResolvedUser, Identity
from .register import RegistrationWorkflow
from .login import LoginSessionIssuer
from .change import ChangePasswordWorkflow
from .reset import ResetWorkflow

# ---- Results ----
from .results import (
    Rejection,
    PasswordResult,
    VerifyResult,
    RegistrationResult,
    LoginResult,
    ChangeResult,
    ConfirmResult,
    ResetResult,
)

# ---- Storage ----
from .store import Entity, EntityStore, MemoryStore, USER, LOGIN, RESET
from .db import SQLiteStore


__all__ = [
    # service
    "UserService",

    # workflows
    "PasswordCodec",
    "UserResolver",
    "RawHints",
    "ResolvedUser",
    "Identity",
    "RegistrationWorkflow",
    "LoginSessionIssuer",
    "ChangePasswordWorkflow",
    "ResetWorkflow",

    # results
    "Rejection",
    "PasswordResult",
    "VerifyResult",
    "RegistrationResult",
    "LoginResult",
    "ChangeResult",
    "ConfirmResult",
    "ResetResult",

    # storage
    "Entity",
    "EntityStore",
    "MemoryStore",
    "SQLiteStore",
    "USER",
    "LOGIN",
    "RESET",
]
