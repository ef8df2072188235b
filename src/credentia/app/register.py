"""User registration and confirmation."""

from __future__ import annotations

from typing import Any, Mapping

from .password import PasswordCodec
from .results import ConfirmResult, RegistrationResult
from .resolver import clean_text
from .store import USER, Entity, EntityStore, new_id, now_iso
from ..core.config import Options
from ..core.error import StoreIntegrityError
from ..core.log import AuthLogger

RESERVED = frozenset({
    "role", "cmd", "nick", "email", "name", "active", "username",
    "password", "repeat", "rounds", "salt", "pass", "hash", "scheme",
    "id", "confirmed", "confirmcode",
})
MARKER = "$"


def extra_fields(fields: Mapping[str, Any], reserved: frozenset[str]) -> dict[str, Any]:
    """Copy caller fields that are neither reserved nor marked."""
    return {
        k: v for k, v in fields.items()
        if k not in reserved and MARKER not in k
    }


class RegistrationWorkflow:
    """
    Creates user records.

    The nick/email checks are advisory. Two concurrent registrations
    can both pass them; the store's unique keys decide, and a
    violation is reported as the same rejection.
    """

    def __init__(
        self,
        options: Options,
        store: EntityStore,
        codec: PasswordCodec,
        logger: AuthLogger,
    ) -> None:
        self.options = options
        self.store = store
        self.codec = codec
        self.logger = logger

    async def register(self, fields: Mapping[str, Any]) -> RegistrationResult:
        email = clean_text(fields.get("email"))
        nick = clean_text(fields.get("nick")) or clean_text(fields.get("username")) or email
        if not nick and not email:
            self.logger.reject("register", "nick_or_email_missing")
            return RegistrationResult(ok=False, why="nick_or_email_missing")

        active = fields.get("active")
        user = Entity(
            USER,
            nick=nick,
            email=email,
            name=fields.get("name") or "",
            active=True if active is None else bool(active),
            when=now_iso(),
        )
        if self.options.confirm_required:
            user["confirmed"] = bool(fields.get("confirmed", False))
            user["confirmcode"] = new_id(16)

        user.update(extra_fields(fields, RESERVED))

        if nick and await self.store.find_one(USER, "nick", nick) is not None:
            self.logger.reject("register", "nick-exists", nick=nick)
            return RegistrationResult(ok=False, why="nick-exists", nick=nick)
        if email and await self.store.find_one(USER, "email", email) is not None:
            self.logger.reject("register", "email-exists", nick=nick)
            return RegistrationResult(ok=False, why="email-exists", nick=nick)

        out = await self.codec.derive(
            fields.get("password"),
            fields.get("repeat"),
            whence=f"register/user={nick}",
        )
        if not out.ok:
            self.logger.reject("register", out.why or "", nick=nick)
            return RegistrationResult(ok=False, why=out.why, nick=nick)

        user["salt"] = out.salt
        user["hash"] = out.hash
        user["rounds"] = out.rounds
        user["scheme"] = out.scheme

        try:
            saved = await self.store.create(USER, user)
        except StoreIntegrityError as e:
            if e.field not in ("nick", "email"):
                raise
            why = f"{e.field}-exists"
            self.logger.reject("register", why, nick=nick)
            return RegistrationResult(ok=False, why=why, nick=nick)

        self.logger.event("register", user=saved.id, nick=nick)
        return RegistrationResult(ok=True, user=saved)

    async def confirm(self, code: str) -> ConfirmResult:
        """Mark the user holding this confirm code as confirmed."""
        user = await self.store.find_one(USER, "confirmcode", code) if code else None
        if user is None:
            self.logger.reject("confirm", "confirm-code-not-found")
            return ConfirmResult(ok=False, why="confirm-code-not-found")

        user["confirmed"] = True
        user = await self.store.save(user)
        self.logger.event("confirm", user=user.id, nick=user.get("nick"))
        return ConfirmResult(ok=True, user=user)

