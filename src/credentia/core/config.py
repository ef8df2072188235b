"""Options shared by all user workflows."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace as _replace
from typing import Any, Callable, Mapping, Optional
import hashlib

from .error import ConfigError


@dataclass(frozen=True)
class FieldSpec:
    """Visibility of one entity field."""
    name: str
    hide: bool = False


USER_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("pass", hide=True),
    FieldSpec("hash", hide=True),
    FieldSpec("salt", hide=True),
    FieldSpec("rounds", hide=True),
    FieldSpec("scheme", hide=True),
    FieldSpec("confirmcode", hide=True),
)

# legacy and camelCase spellings accepted by Options.from_mapping
_ALIASES = {
    "keyLength": "key_length",
    "keylength": "key_length",
    "saltLength": "salt_length",
    "saltlength": "salt_length",
    "mustRepeat": "must_repeat",
    "mustrepeat": "must_repeat",
    "confirmRequired": "confirm_required",
    "confirm": "confirm_required",
    "legacyVerificationEnabled": "legacy_verification",
    "oldsha": "legacy_verification",
    "resetPeriod": "reset_period",
    "resetperiod": "reset_period",
}

# legacy keys given in milliseconds; reset_period is in seconds
_MILLIS = frozenset({"resetPeriod", "resetperiod"})


@dataclass(frozen=True)
class Options:
    """
    Read-only configuration threaded into each component.

    rounds is the iteration count used for new hashes only. Stored
    records keep their own rounds and are verified with those.
    """
    role: str = "user"
    rounds: int = 11111
    key_length: int = 128
    salt_length: int = 16
    digest: str = "sha512"
    autopass: bool = True
    must_repeat: bool = False
    confirm_required: bool = False
    legacy_verification: bool = False
    reset_period: int = 24 * 60 * 60
    password_check: Optional[Callable[[str], Optional[str]]] = None
    user_fields: tuple[FieldSpec, ...] = USER_FIELDS
    login_fields: tuple[FieldSpec, ...] = ()
    reset_fields: tuple[FieldSpec, ...] = ()

    def __post_init__(self) -> None:
        for name in ("rounds", "key_length", "salt_length", "reset_period"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(name, "must be a positive integer")

        if self.digest not in hashlib.algorithms_available:
            raise ConfigError("digest", f"unknown digest '{self.digest}'")

        if self.password_check is not None and not callable(self.password_check):
            raise ConfigError("password_check", "must be callable")

        for name in ("user_fields", "login_fields", "reset_fields"):
            specs = tuple(_field_spec(name, f) for f in getattr(self, name))
            object.__setattr__(self, name, specs)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Options":
        """Build Options from a plain mapping, e.g. parsed from a config file."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if key in _MILLIS and isinstance(value, int) and not isinstance(value, bool):
                value = value // 1000
            if name not in known:
                raise ConfigError(key, "unknown option")
            if name.endswith("_fields") and isinstance(value, Mapping):
                value = value.get("fields", ())
            kwargs[name] = value
        return cls(**kwargs)

    def replace(self, **changes: Any) -> "Options":
        """Return a new Options value with the given fields changed."""
        return _replace(self, **changes)

    def hidden(self, collection: str) -> frozenset[str]:
        """Names of the hidden fields of a collection."""
        specs = {
            "sys/user": self.user_fields,
            "sys/login": self.login_fields,
            "sys/reset": self.reset_fields,
        }.get(collection, ())
        return frozenset(s.name for s in specs if s.hide)


def _field_spec(option: str, value: Any) -> FieldSpec:
    if isinstance(value, FieldSpec):
        return value
    if isinstance(value, str):
        return FieldSpec(value)
    if isinstance(value, Mapping) and "name" in value:
        return FieldSpec(str(value["name"]), bool(value.get("hide", False)))
    raise ConfigError(option, f"invalid field spec {value!r}")
