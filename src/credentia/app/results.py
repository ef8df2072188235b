"""Result models returned by the user workflows.

A result with ok=False is an expected business outcome (a rejection).
Errors are raised, never returned.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Callable, Optional

from .store import Entity


@dataclass
class Rejection:
    """A negative outcome that the caller branches on."""
    why: str
    ok: bool = False


@dataclass
class PasswordResult:
    ok: bool
    why: Optional[str] = None
    hash: Optional[str] = None
    salt: Optional[str] = None
    rounds: Optional[int] = None
    scheme: Optional[str] = None


@dataclass
class VerifyResult:
    ok: bool


@dataclass
class RegistrationResult:
    ok: bool
    why: Optional[str] = None
    user: Optional[Entity] = None
    nick: Optional[str] = None


@dataclass
class LoginResult:
    ok: bool
    why: Optional[str] = None
    user: Optional[Entity] = None
    login: Optional[Entity] = None
    reason: Optional[str] = None


@dataclass
class ChangeResult:
    ok: bool
    why: Optional[str] = None
    user: Optional[Entity] = None


@dataclass
class ConfirmResult:
    ok: bool
    why: Optional[str] = None
    user: Optional[Entity] = None


@dataclass
class ResetResult:
    ok: bool
    why: Optional[str] = None
    user: Optional[Entity] = None
    reset: Optional[Entity] = None


def to_dict(
    result: Any, shape: Callable[[Entity], dict[str, Any]] | None = None
) -> dict[str, Any]:
    """
    Plain dict of a result, dropping empty fields.

    Entities go through shape when given, e.g. to drop hidden fields.
    """
    out: dict[str, Any] = {}
    for f in fields(result):
        value = getattr(result, f.name)
        if value is None:
            continue
        if isinstance(value, Entity):
            value = shape(value) if shape is not None else dict(value)
        out[f.name] = value
    return out
