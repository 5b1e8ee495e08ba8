import base64
import string
from unittest import mock

from app.core.tokens import constant_time_equal, generate_csrf_token, generate_share_token


def test_share_tokens_are_unique():
    tokens = {generate_share_token() for _ in range(1000)}
    assert len(tokens) == 1000


def test_share_token_is_64_hex_characters():
    token = generate_share_token()
    assert len(token) == 64
    assert set(token) <= set(string.hexdigits.lower())


def test_csrf_token_is_base64_of_32_bytes():
    token = generate_csrf_token()
    assert len(token) == 44
    assert len(base64.b64decode(token)) == 32
    assert generate_csrf_token() != token


def test_constant_time_equal_matches_identical_strings():
    token = generate_share_token()
    assert constant_time_equal(token, str(token))


def test_constant_time_equal_rejects_same_length_different_content():
    assert not constant_time_equal("abcdef", "abcdeg")
    assert not constant_time_equal("Xbcdef", "abcdef")


def test_constant_time_equal_rejects_length_mismatch_without_comparing():
    with mock.patch("app.core.tokens.hmac.compare_digest") as compare_digest:
        assert not constant_time_equal("abc", "abcd")
        compare_digest.assert_not_called()


def test_constant_time_equal_rejects_empty_input():
    assert not constant_time_equal("", "")
    assert not constant_time_equal("", "abc")
    assert not constant_time_equal("abc", None)
    assert not constant_time_equal(None, None)


def test_constant_time_equal_handles_non_ascii():
    assert constant_time_equal("päss", "päss")
    # Same character count, different byte length
    assert not constant_time_equal("päss", "pass")
