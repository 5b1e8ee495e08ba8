from datetime import timedelta

from jose import jwt

from app.core.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    hash_password_async,
    verify_password,
    verify_password_async,
)


def test_password_hash_is_salted_bcrypt():
    first = get_password_hash("hunter2")
    second = get_password_hash("hunter2")
    assert first.startswith("$2b$")
    assert first != second
    assert "hunter2" not in first


def test_verify_password():
    hashed = get_password_hash("correct horse")
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_verify_password_with_malformed_hash_returns_false():
    assert not verify_password("secret", "not-a-bcrypt-hash")
    assert not verify_password("secret", "")
    assert not verify_password("secret", None)
    assert not verify_password("", get_password_hash("secret"))


async def test_async_helpers_round_trip():
    hashed = await hash_password_async("s3cret")
    assert await verify_password_async("s3cret", hashed)
    assert not await verify_password_async("other", hashed)


def test_access_token_subject():
    token = create_access_token({"sub": "user-42"})
    assert decode_access_token(token) == "user-42"


def test_expired_or_tampered_access_token_is_rejected():
    expired = create_access_token({"sub": "user-42"}, expires_delta=timedelta(seconds=-10))
    assert decode_access_token(expired) is None

    forged = jwt.encode({"sub": "user-42"}, "some-other-secret-key-0123456789abcdef", algorithm="HS256")
    assert decode_access_token(forged) is None
    assert decode_access_token("garbage") is None


def test_access_token_without_subject_is_rejected():
    assert decode_access_token(create_access_token({"scope": "drive"})) is None
