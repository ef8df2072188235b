"""Login sessions: issue, check and end."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from .password import PasswordCodec
from .register import extra_fields
from .resolver import Identity, UserResolver
from .results import LoginResult, Rejection
from .store import LOGIN, USER, Entity, EntityStore, new_id, now_iso
from ..core.config import Options
from ..core.log import AuthLogger

RESERVED = frozenset({"role", "cmd", "password"})


class LoginSessionIssuer:
    """
    Authenticates users and records one login entity per success.

    Login entities are an append-only history; logout only marks
    them inactive.
    """

    def __init__(
        self,
        options: Options,
        store: EntityStore,
        codec: PasswordCodec,
        resolver: UserResolver,
        logger: AuthLogger,
    ) -> None:
        self.options = options
        self.store = store
        self.codec = codec
        self.resolver = resolver
        self.logger = logger

    async def login(
        self,
        identity: Union[Identity, Entity, Mapping[str, Any]],
        password: Optional[str] = None,
        auto: bool = False,
        **extra: Any,
    ) -> LoginResult:
        user = await self.resolver.resolve(identity)
        if isinstance(user, Rejection):
            self.logger.reject("login", user.why)
            return LoginResult(ok=False, why=user.why)

        nick = user.get("nick")
        if not user.get("active"):
            self.logger.reject("login", "not-active", nick=nick)
            return LoginResult(ok=False, why="not-active", user=user)

        if self.options.confirm_required and not user.get("confirmed"):
            self.logger.reject("login", "not-confirmed", nick=nick)
            return LoginResult(ok=False, why="not-confirmed", user=user)

        if auto:
            reason = "auto"
        else:
            out = await self.codec.verify(
                password,
                user.get("hash") or user.get("pass"),
                user.get("salt"),
                user.get("rounds") or self.options.rounds,
                user.get("scheme"),
            )
            if not out.ok:
                self.logger.reject("login", "invalid-password", nick=nick)
                return LoginResult(ok=False, why="invalid-password")
            reason = "password"

        login = Entity(LOGIN, extra_fields(extra, RESERVED))
        login.update(
            id=new_id(),
            nick=nick,
            user=user.id,
            when=now_iso(),
            active=True,
            reason=reason,
        )
        login = await self.store.create(LOGIN, login)

        self.logger.event("login", user=user.id, nick=nick, reason=reason)
        return LoginResult(ok=True, user=user, login=login, reason=reason)

    async def auth(self, token: str) -> LoginResult:
        """Return the active login for token with its user."""
        login = await self.store.find_one(LOGIN, "id", token) if token else None
        if login is None:
            return LoginResult(ok=False, why="login-not-found")
        if not login.get("active"):
            return LoginResult(ok=False, why="login-inactive", login=login)

        user = await self.store.find_one(USER, "id", login.get("user"))
        if user is None:
            return LoginResult(ok=False, why="user-not-found", login=login)
        return LoginResult(ok=True, user=user, login=login, reason=login.get("reason"))

    async def logout(self, token: str) -> LoginResult:
        """Deactivate the login for token."""
        login = await self.store.find_one(LOGIN, "id", token) if token else None
        if login is None:
            self.logger.reject("logout", "login-not-found")
            return LoginResult(ok=False, why="login-not-found")

        login["active"] = False
        login["ended"] = now_iso()
        login = await self.store.save(login)

        user = await self.store.find_one(USER, "id", login.get("user"))
        self.logger.event("logout", user=login.get("user"), nick=login.get("nick"))
        return LoginResult(ok=True, user=user, login=login)
