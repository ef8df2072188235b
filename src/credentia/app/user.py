"""User service: the call contract for the user workflows."""

from __future__ import annotations

from concurrent.futures import Executor
from typing import Any, Mapping, Optional, Union

from .change import ChangePasswordWorkflow
from .db import SQLiteStore
from .login import LoginSessionIssuer
from .password import PasswordCodec
from .register import RegistrationWorkflow
from .reset import ResetWorkflow
from .resolver import Identity, UserResolver
from .results import (
    ChangeResult,
    ConfirmResult,
    LoginResult,
    PasswordResult,
    RegistrationResult,
    ResetResult,
    VerifyResult,
    to_dict,
)
from .store import Entity, EntityStore
from ..core.config import Options
from ..core.log import AuthLogger

IdentityLike = Union[Identity, Entity, Mapping[str, Any]]


# --------------------
# UserService
# --------------------

class UserService:
    """
    User credential service.

    Wires the password codec, resolver and workflows from one Options
    value and one entity store. All operations are coroutines; business
    rejections come back as results with ok=False, failures are raised.

    store may be an EntityStore or a path to an SQLite file.
    """

    def __init__(
        self,
        store: Union[EntityStore, str],
        options: Optional[Options] = None,
        *,
        log_path: Optional[str] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.options = options or Options()
        self.store = SQLiteStore(store) if isinstance(store, str) else store
        self.logger = AuthLogger(log_path, name=self.options.role)

        self.codec = PasswordCodec(self.options, executor=executor)
        self.resolver = UserResolver(self.store)
        self.registration = RegistrationWorkflow(self.options, self.store, self.codec, self.logger)
        self.sessions = LoginSessionIssuer(
            self.options, self.store, self.codec, self.resolver, self.logger
        )
        self.changer = ChangePasswordWorkflow(self.store, self.codec, self.resolver, self.logger)
        self.resets = ResetWorkflow(
            self.options, self.store, self.resolver, self.changer, self.logger
        )

    # ---- password ----

    async def encrypt_password(
        self, password: Optional[str] = None, repeat: Optional[str] = None
    ) -> PasswordResult:
        """Hash a password. Mismatched repeat gives ok=False, why=password_mismatch."""
        return await self.codec.derive(password, repeat, whence="encrypt_password")

    async def verify_password(
        self, proposed: str, hash: str, salt: str, rounds: int, scheme: Optional[str] = None
    ) -> VerifyResult:
        """Check a proposed password against stored hash material."""
        return await self.codec.verify(proposed, hash, salt, rounds, scheme)

    # ---- users ----

    async def register(self, fields: Mapping[str, Any]) -> RegistrationResult:
        """
        Register a new user.

        Expected fields: nick/username and/or email, password, optional
        repeat, name, active, plus any extra attributes.
        """
        return await self.registration.register(fields)

    async def confirm(self, code: str) -> ConfirmResult:
        return await self.registration.confirm(code)

    async def change_password(
        self, identity: IdentityLike, password: Optional[str], repeat: Optional[str] = None
    ) -> ChangeResult:
        return await self.changer.change_password(identity, password, repeat)

    async def resolve(self, identity: IdentityLike, *, fail_missing: bool = False):
        return await self.resolver.resolve(identity, fail_missing=fail_missing)

    # ---- sessions ----

    async def login(
        self,
        identity: IdentityLike,
        password: Optional[str] = None,
        auto: bool = False,
        **extra: Any,
    ) -> LoginResult:
        """Authenticate and record a login. auto=True skips the password check."""
        return await self.sessions.login(identity, password, auto, **extra)

    async def auth(self, token: str) -> LoginResult:
        return await self.sessions.auth(token)

    async def logout(self, token: str) -> LoginResult:
        return await self.sessions.logout(token)

    # ---- resets ----

    async def create_reset(self, identity: IdentityLike) -> ResetResult:
        return await self.resets.create_reset(identity)

    async def load_reset(self, token: str) -> ResetResult:
        return await self.resets.load_reset(token)

    async def execute_reset(
        self, token: str, password: Optional[str], repeat: Optional[str] = None
    ) -> ResetResult:
        return await self.resets.execute_reset(token, password, repeat)

    # ---- output shaping ----

    def safe(self, entity: Entity) -> dict[str, Any]:
        """Copy of entity without the fields its collection hides."""
        return entity.safe(self.options.hidden(entity.collection))

    def output(self, result: Any) -> dict[str, Any]:
        """
        Plain dict of a workflow result for callers outside the service.

        Empty fields are dropped and entities lose their hidden fields.
        """
        return to_dict(result, self.safe)

    def close(self) -> None:
        self.logger.close()
        if isinstance(self.store, SQLiteStore):
            self.store.rip_connection()
