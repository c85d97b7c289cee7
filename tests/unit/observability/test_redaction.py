"""Redaction and bounding of captured bodies."""

import pytest

from baseline_api.observability.redaction import (
    MASK,
    NO_BODY,
    TRUNCATION_MARKER,
    CapturedBody,
    is_allowed_content_type,
    is_sensitive_key,
    redact,
)

ALLOWED = ("application/json", "text/", "application/x-www-form-urlencoded")


def test_json_password_is_masked():
    assert redact('{"username":"a","password":"p"}') == '{"username":"a","password":"***"}'


def test_sensitive_match_is_substring_and_case_insensitive():
    out = redact('{"ApiToken":"x","client_SECRET":"y","newPassword":"z","note":"keep"}')
    assert out == '{"ApiToken":"***","client_SECRET":"***","newPassword":"***","note":"keep"}'


def test_non_ascii_survives_reserialization():
    assert redact('{"name":"Zoë","token":"t"}') == '{"name":"Zoë","token":"***"}'


@pytest.mark.parametrize("text", ["{not valid json", "[1, 2, 3]", "plain words", '"a string"'])
def test_unparseable_or_non_flat_text_is_unchanged(text):
    assert redact(text) == text


def test_form_encoded_password_is_masked():
    out = redact("user=a&password=hunter2", "application/x-www-form-urlencoded")
    assert out == f"user=a&password={MASK}"


def test_malformed_form_is_unchanged():
    assert redact("no-equals-sign", "application/x-www-form-urlencoded") == "no-equals-sign"


@pytest.mark.parametrize("key", ["password", "PASSWORD", "access_token", "secretKey"])
def test_sensitive_keys(key):
    assert is_sensitive_key(key)


def test_ordinary_key_is_not_sensitive():
    assert not is_sensitive_key("username")


def test_content_type_allow_list_prefix_match():
    assert is_allowed_content_type("application/json; charset=utf-8", ALLOWED)
    assert is_allowed_content_type("TEXT/plain", ALLOWED)
    assert not is_allowed_content_type("image/png", ALLOWED)
    assert not is_allowed_content_type(None, ALLOWED)


def test_large_body_is_truncated_at_bound_with_marker():
    body = CapturedBody.bounded(b"a" * 10_000, "text/plain", 8192)
    assert body.truncated
    rendered = body.render()
    assert rendered == "a" * 8192 + TRUNCATION_MARKER


def test_small_body_is_captured_verbatim():
    data = b"b" * 100
    body = CapturedBody.bounded(data, "text/plain", 8192)
    assert not body.truncated
    assert body.render() == data.decode()


def test_more_flag_marks_truncation_even_within_bound():
    body = CapturedBody.bounded(b"abc", "text/plain", 8192, more=True)
    assert body.render() == "abc" + TRUNCATION_MARKER


def test_truncated_json_falls_back_to_bounded_unredacted_text():
    data = b'{"password":"' + b"x" * 50 + b'"}'
    rendered = CapturedBody.bounded(data, "application/json", 20).render()
    assert rendered == data[:20].decode() + TRUNCATION_MARKER


def test_empty_body_renders_as_none():
    assert CapturedBody.bounded(b"", "application/json", 8192).render() == NO_BODY


def test_multibyte_split_at_bound_does_not_raise():
    data = "é".encode() * 10
    rendered = CapturedBody.bounded(data, "text/plain", 5).render()
    assert rendered.endswith(TRUNCATION_MARKER)
