from __future__ import annotations


class CredentiaError(Exception):
    """
    Base exception class for all credentia errors.

    Attributes:
        code: Stable error code for programmatic handling.
        message: Human-readable error message.
    """

    def __init__(self, code: str, message: str) -> None:
        self.code: str = code
        self.message: str = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code} -> {self.message}"


# =========================
# Config
# =========================

class ConfigError(CredentiaError):
    """Raised when an option value is invalid or unknown."""

    def __init__(self, name: str, reason: str = "invalid value") -> None:
        self.name = name
        super().__init__("CF01", f"Invalid option '{name}': {reason}.")


# =========================
# User / Password
# =========================

class NoPasswordError(CredentiaError):
    """Raised when no password is given and autopass is disabled."""

    def __init__(self, whence: str | None = None) -> None:
        self.whence = whence
        super().__init__("U01", "No password was given.")


class NoPasswordRepeatError(CredentiaError):
    """Raised when the password repeat is required but missing."""

    def __init__(self, whence: str | None = None) -> None:
        self.whence = whence
        super().__init__("U02", "No password repeat was given.")


class MissingIdentityError(CredentiaError):
    """Raised when no identity hint (email, nick, username, id) is present."""

    def __init__(self) -> None:
        super().__init__("U03", "One of email, nick, username or id is required.")


class UserNotFoundError(CredentiaError):
    """Raised when a user lookup must succeed but found nothing."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__("U04", f"User not found. '{field}={value}'")


class HashingError(CredentiaError):
    """Raised when the key derivation engine fails."""

    def __init__(self, detail: str = "") -> None:
        super().__init__("H01", f"Password hashing failed. {detail}".rstrip())


# =========================
# Store
# =========================

class StoreError(CredentiaError):
    """Base class for entity store errors."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(code, message)


class StoreConnectionInvalidError(StoreError):
    """Raised when the store connection is missing or closed."""

    def __init__(self, detail: str = "") -> None:
        super().__init__("DB01", f"Store connection is invalid. {detail}".rstrip())


class StoreOperationalError(StoreError):
    """Raised when a store operation fails."""

    def __init__(self, detail: str = "") -> None:
        super().__init__("DB02", f"Store operation failed. {detail}".rstrip())


class StoreIntegrityError(StoreError):
    """Raised when a store-level unique constraint is violated."""

    def __init__(self, collection: str = "", field: str = "", value: str = "", *, detail: str = "") -> None:
        self.collection = collection
        self.field = field
        self.value = value
        if field:
            detail = f"'{collection}.{field}={value}'"
        super().__init__("DB03", f"Unique constraint violated. {detail}".rstrip())


class StoreProgrammingError(StoreError):
    """Raised when the store receives an invalid query."""

    def __init__(self, detail: str = "") -> None:
        super().__init__("DB04", f"Invalid store query. {detail}".rstrip())
