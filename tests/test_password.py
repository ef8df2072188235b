from __future__ import annotations

import base64
import hashlib
from concurrent.futures import ThreadPoolExecutor

import pytest

from credentia.app.password import PasswordCodec
from credentia.core.error import HashingError, NoPasswordError, NoPasswordRepeatError

from conftest import fast_options, run


def test_encrypt_password():
    codec = PasswordCodec(fast_options())
    out = run(codec.derive("test", "test"))
    assert out.ok is True
    assert out.salt
    assert len(base64.b64decode(out.hash)) == 128
    assert out.rounds == 10
    assert out.scheme == "pbkdf2-sha512"

    assert run(codec.verify("test", out.hash, out.salt, out.rounds)).ok is True
    assert run(codec.verify("wrong", out.hash, out.salt, out.rounds)).ok is False


def test_hash_length_follows_key_length():
    codec = PasswordCodec(fast_options(key_length=256))
    out = run(codec.derive("test"))
    assert len(base64.b64decode(out.hash)) == 256
    assert run(codec.verify("test", out.hash, out.salt, out.rounds)).ok is True


def test_salts_and_hashes_are_unique():
    codec = PasswordCodec(fast_options())
    a = run(codec.derive("same"))
    b = run(codec.derive("same"))
    assert a.salt != b.salt
    assert a.hash != b.hash


def test_mismatch_is_rejection():
    codec = PasswordCodec(fast_options())
    out = run(codec.derive("a", "b"))
    assert out.ok is False
    assert out.why == "password_mismatch"
    assert out.hash is None


def test_no_password_without_autopass():
    codec = PasswordCodec(fast_options(autopass=False))
    with pytest.raises(NoPasswordError):
        run(codec.derive())


def test_autopass_generates_password():
    codec = PasswordCodec(fast_options())
    out = run(codec.derive())
    assert out.ok is True
    assert out.hash


def test_must_repeat():
    codec = PasswordCodec(fast_options(must_repeat=True))
    with pytest.raises(NoPasswordRepeatError):
        run(codec.derive("pw"))
    assert run(codec.derive("pw", "pw")).ok is True


def test_password_check_hook():
    codec = PasswordCodec(
        fast_options(password_check=lambda p: "password_too_short" if len(p) < 4 else None)
    )
    out = run(codec.derive("abc"))
    assert out.ok is False
    assert out.why == "password_too_short"
    assert run(codec.derive("abcd")).ok is True


def test_rounds_travel_with_record():
    old = PasswordCodec(fast_options(rounds=10))
    out = run(old.derive("pw"))

    new = PasswordCodec(fast_options(rounds=50))
    assert run(new.verify("pw", out.hash, out.salt, out.rounds)).ok is True
    assert run(new.verify("pw", out.hash, out.salt, 50)).ok is False


def test_legacy_sha1_fallback():
    stored = hashlib.sha1(("pw" + "a1b2c3d4").encode("utf-8")).hexdigest()

    plain = PasswordCodec(fast_options())
    assert run(plain.verify("pw", stored, "a1b2c3d4", 10)).ok is False

    legacy = PasswordCodec(fast_options(legacy_verification=True))
    assert run(legacy.verify("pw", stored, "a1b2c3d4", 10)).ok is True
    assert run(legacy.verify("nope", stored, "a1b2c3d4", 10)).ok is False


def test_legacy_fallback_keeps_primary_hashes_working():
    codec = PasswordCodec(fast_options(legacy_verification=True))
    out = run(codec.derive("pw"))
    assert run(codec.verify("pw", out.hash, out.salt, out.rounds)).ok is True
    assert run(codec.verify("px", out.hash, out.salt, out.rounds)).ok is False


@pytest.mark.parametrize(
    "hash_, salt, rounds",
    [
        ("not base64 !!", "c2FsdA==", 10),
        ("aGFzaA==", "not base64 !!", 10),
        ("aGFzaA==", "c2FsdA==", 0),
        ("aGFzaA==", "c2FsdA==", "many"),
        ("", "c2FsdA==", 10),
    ],
)
def test_malformed_material_is_mismatch(hash_, salt, rounds):
    codec = PasswordCodec(fast_options())
    assert run(codec.verify("pw", hash_, salt, rounds)).ok is False


def test_unknown_scheme_digest_is_hashing_error():
    codec = PasswordCodec(fast_options())
    out = run(codec.derive("pw"))
    with pytest.raises(HashingError):
        run(codec.verify("pw", out.hash, out.salt, out.rounds, "pbkdf2-nope"))


def test_custom_executor():
    with ThreadPoolExecutor(max_workers=2) as pool:
        codec = PasswordCodec(fast_options(), executor=pool)
        out = run(codec.derive("pw"))
        assert run(codec.verify("pw", out.hash, out.salt, out.rounds)).ok is True
