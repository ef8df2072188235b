"""Resolve identity hints to a stored user."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .results import Rejection
from .store import USER, Entity, EntityStore
from ..core.error import MissingIdentityError, UserNotFoundError


@dataclass(frozen=True)
class RawHints:
    """Identity hints as supplied by a caller."""
    email: Optional[str] = None
    nick: Optional[str] = None
    username: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RawHints":
        uid = data.get("id")
        user = data.get("user")
        if not uid and user is not None and not isinstance(user, Mapping):
            uid = user
        return cls(
            email=clean_text(data.get("email")),
            nick=clean_text(data.get("nick")),
            username=clean_text(data.get("username")),
            id=clean_text(uid),
        )

    def query(self) -> tuple[str, str]:
        """
        Pick the (field, value) pair to look the user up by.

        email wins over nick unless both are the same non-email value.
        """
        email, nick = self.email, self.nick
        if email and nick:
            if email != nick or "@" in email:
                return "email", email
            return "nick", nick
        if email:
            return "email", email
        if nick:
            return "nick", nick
        if self.username:
            return "nick", self.username
        if self.id:
            return "id", self.id
        raise MissingIdentityError()


@dataclass(frozen=True)
class ResolvedUser:
    """A user record the caller already holds."""
    user: Entity


Identity = Union[RawHints, ResolvedUser]


def as_identity(value: Union[Identity, Entity, Mapping[str, Any]]) -> Identity:
    """Normalize caller input into an Identity."""
    if isinstance(value, (RawHints, ResolvedUser)):
        return value
    if isinstance(value, Entity) and value.collection == USER:
        return ResolvedUser(value)
    if isinstance(value, Mapping):
        user = value.get("user")
        if isinstance(user, Entity) and user.collection == USER:
            return ResolvedUser(user)
        return RawHints.from_mapping(value)
    raise TypeError(f"unsupported identity: {type(value).__name__}")


class UserResolver:
    def __init__(self, store: EntityStore) -> None:
        self.store = store

    async def resolve(
        self,
        identity: Union[Identity, Entity, Mapping[str, Any]],
        *,
        fail_missing: bool = False,
    ) -> Union[Entity, Rejection]:
        """
        Return the user for identity.

        A missing user is Rejection("user-not-found"), or raises
        UserNotFoundError when fail_missing is set.
        """
        identity = as_identity(identity)
        if isinstance(identity, ResolvedUser):
            return identity.user

        field, value = identity.query()
        user = await self.store.find_one(USER, field, value)
        if user is not None:
            return user

        if fail_missing:
            raise UserNotFoundError(field, value)
        return Rejection(why="user-not-found")


def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None
