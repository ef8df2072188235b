"""Change a user's password."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from .password import PasswordCodec
from .resolver import Identity, UserResolver
from .results import ChangeResult
from .store import Entity, EntityStore
from ..core.log import AuthLogger


class ChangePasswordWorkflow:
    def __init__(
        self,
        store: EntityStore,
        codec: PasswordCodec,
        resolver: UserResolver,
        logger: AuthLogger,
    ) -> None:
        self.store = store
        self.codec = codec
        self.resolver = resolver
        self.logger = logger

    async def change_password(
        self,
        identity: Union[Identity, Entity, Mapping[str, Any]],
        password: Optional[str],
        repeat: Optional[str] = None,
    ) -> ChangeResult:
        """
        Hash password and store it on the user.

        Raw hints that match no user raise UserNotFoundError.
        Nothing is saved unless the new hash was derived.
        """
        user = await self.resolver.resolve(identity, fail_missing=True)
        nick = user.get("nick")

        out = await self.codec.derive(password, repeat, whence=f"change/user={user.id},{nick}")
        if not out.ok:
            self.logger.reject("change_password", out.why or "", nick=nick)
            return ChangeResult(ok=False, why=out.why)

        user = user.copy()
        user.pop("pass", None)
        user["salt"] = out.salt
        user["hash"] = out.hash
        user["rounds"] = out.rounds
        user["scheme"] = out.scheme
        user = await self.store.save(user)

        self.logger.event("change_password", user=user.id, nick=nick)
        return ChangeResult(ok=True, user=user)
