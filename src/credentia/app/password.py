"""Password hashing and verification."""

from __future__ import annotations

from concurrent.futures import Executor
from typing import Optional
import asyncio
import base64
import binascii
import functools
import hashlib
import hmac
import secrets

from .results import PasswordResult, VerifyResult
from ..core.config import Options
from ..core.error import HashingError, NoPasswordError, NoPasswordRepeatError
from ..core.log import get_logger

logger = get_logger("password")

SCHEME_PREFIX = "pbkdf2-"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(text: str) -> bytes | None:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError, TypeError):
        return None


def _legacy_hash(proposed: str, salt: str) -> str:
    return hashlib.sha1((proposed + salt).encode("utf-8")).hexdigest()


def _same(a: str | bytes, b: str | bytes) -> bool:
    if isinstance(a, str):
        a = a.encode("utf-8")
    if isinstance(b, str):
        b = b.encode("utf-8")
    return hmac.compare_digest(a, b)


class PasswordCodec:
    """
    Derives and verifies salted PBKDF2 password hashes.

    New hashes use the configured rounds, key length and digest.
    Verification uses the parameters stored with the record, so
    raising Options.rounds never invalidates existing hashes.

    Key derivation is CPU bound and runs on `executor`
    (the loop's default executor when None).
    """

    def __init__(self, options: Options, *, executor: Executor | None = None) -> None:
        self.options = options
        self.executor = executor

    @property
    def scheme(self) -> str:
        return SCHEME_PREFIX + self.options.digest

    async def derive(
        self,
        password: Optional[str] = None,
        repeat: Optional[str] = None,
        *,
        whence: Optional[str] = None,
    ) -> PasswordResult:
        """
        Hash a new password.

        A missing password is generated when autopass is on. A password
        that differs from its repeat is rejected, not raised.
        """
        opts = self.options

        if password is None:
            if not opts.autopass:
                raise NoPasswordError(whence)
            password = secrets.token_urlsafe(opts.salt_length)

        if repeat is None:
            if opts.must_repeat:
                raise NoPasswordRepeatError(whence)
            repeat = password

        if password != repeat:
            return PasswordResult(ok=False, why="password_mismatch")

        if opts.password_check is not None:
            why = opts.password_check(password)
            if why:
                return PasswordResult(ok=False, why=why)

        salt = secrets.token_bytes(opts.salt_length)
        key = await self._pbkdf2(opts.digest, password, salt, opts.rounds, opts.key_length)

        return PasswordResult(
            ok=True,
            hash=_b64(key),
            salt=_b64(salt),
            rounds=opts.rounds,
            scheme=self.scheme,
        )

    async def verify(
        self,
        proposed: str,
        stored_hash: str,
        stored_salt: str,
        stored_rounds: int,
        stored_scheme: Optional[str] = None,
    ) -> VerifyResult:
        """
        Check a proposed password against stored credential material.

        A mismatch, including undecodable stored material, is ok=False.
        """
        if proposed is None or not stored_hash or stored_salt is None:
            return VerifyResult(ok=False)

        ok = await self._verify_primary(proposed, stored_hash, stored_salt, stored_rounds, stored_scheme)

        if not ok and self.options.legacy_verification:
            ok = _same(_legacy_hash(proposed, stored_salt), stored_hash)
            if ok:
                logger.debug("password matched legacy sha1 scheme")

        return VerifyResult(ok=ok)

    async def _verify_primary(
        self,
        proposed: str,
        stored_hash: str,
        stored_salt: str,
        stored_rounds: int,
        stored_scheme: Optional[str],
    ) -> bool:
        scheme = stored_scheme or self.scheme
        if not scheme.startswith(SCHEME_PREFIX):
            return False

        try:
            rounds = int(stored_rounds)
        except (TypeError, ValueError):
            return False
        if rounds <= 0:
            return False

        expected = _unb64(stored_hash)
        salt = _unb64(stored_salt)
        if not expected or salt is None:
            return False

        key = await self._pbkdf2(scheme[len(SCHEME_PREFIX):], proposed, salt, rounds, len(expected))
        return _same(key, expected)

    async def _pbkdf2(self, digest: str, password: str, salt: bytes, rounds: int, key_length: int) -> bytes:
        loop = asyncio.get_running_loop()
        fn = functools.partial(
            hashlib.pbkdf2_hmac, digest, password.encode("utf-8"), salt, rounds, key_length
        )
        try:
            return await loop.run_in_executor(self.executor, fn)
        except (ValueError, OverflowError) as e:
            raise HashingError(str(e)) from e
