"""Password reset tokens."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from .change import ChangePasswordWorkflow
from .resolver import Identity, UserResolver
from .results import Rejection, ResetResult
from .store import RESET, USER, Entity, EntityStore, new_id, now_iso
from ..core.config import Options
from ..core.log import AuthLogger


def _age_seconds(when: Any) -> float | None:
    if not when:
        return None
    try:
        ts = datetime.fromisoformat(str(when).replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return (datetime.now(timezone.utc) - ts).total_seconds()


class ResetWorkflow:
    """
    Issues single-use reset tokens and applies them.

    A token is valid while active and younger than Options.reset_period.
    """

    def __init__(
        self,
        options: Options,
        store: EntityStore,
        resolver: UserResolver,
        changer: ChangePasswordWorkflow,
        logger: AuthLogger,
    ) -> None:
        self.options = options
        self.store = store
        self.resolver = resolver
        self.changer = changer
        self.logger = logger

    async def create_reset(self, identity: Union[Identity, Entity, Mapping[str, Any]]) -> ResetResult:
        user = await self.resolver.resolve(identity)
        if isinstance(user, Rejection):
            self.logger.reject("create_reset", user.why)
            return ResetResult(ok=False, why=user.why)

        reset = await self.store.create(
            RESET,
            Entity(
                RESET,
                id=new_id(),
                user=user.id,
                nick=user.get("nick"),
                when=now_iso(),
                active=True,
            ),
        )
        self.logger.event("create_reset", user=user.id, nick=user.get("nick"))
        return ResetResult(ok=True, user=user, reset=reset)

    async def load_reset(self, token: str) -> ResetResult:
        reset = await self.store.find_one(RESET, "id", token) if token else None
        if reset is None:
            return ResetResult(ok=False, why="reset-not-found")
        if not reset.get("active"):
            return ResetResult(ok=False, why="reset-not-active", reset=reset)

        age = _age_seconds(reset.get("when"))
        if age is None or age > self.options.reset_period:
            return ResetResult(ok=False, why="reset-stale", reset=reset)

        user = await self.store.find_one(USER, "id", reset.get("user"))
        if user is None:
            return ResetResult(ok=False, why="user-not-found", reset=reset)
        return ResetResult(ok=True, user=user, reset=reset)

    async def execute_reset(
        self,
        token: str,
        password: Optional[str],
        repeat: Optional[str] = None,
    ) -> ResetResult:
        """Change the password of the token's user and consume the token."""
        out = await self.load_reset(token)
        if not out.ok:
            self.logger.reject("execute_reset", out.why or "")
            return out

        # claim the token before deriving so a concurrent call cannot use it too
        claimed = await self.store.update_if(RESET, out.reset.id, "active", True, False)
        if claimed is None:
            self.logger.reject("execute_reset", "reset-not-active")
            return ResetResult(ok=False, why="reset-not-active", user=out.user, reset=out.reset)

        try:
            changed = await self.changer.change_password(out.user, password, repeat)
        except Exception:
            await self.store.update_if(RESET, claimed.id, "active", False, True)
            raise
        if not changed.ok:
            reset = await self.store.update_if(RESET, claimed.id, "active", False, True)
            return ResetResult(ok=False, why=changed.why, user=out.user, reset=reset or claimed)

        claimed["used"] = now_iso()
        reset = await self.store.save(claimed)

        self.logger.event("execute_reset", user=changed.user.id, nick=changed.user.get("nick"))
        return ResetResult(ok=True, user=changed.user, reset=reset)
