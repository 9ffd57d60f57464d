"""Unit tests for TokenCodec: round trip, tampering, expiry, kind separation."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.core.auth import TokenCodec, TokenKind
from app.core.errors import InvalidSignature, KindMismatch, MalformedToken, TokenError, TokenExpired
from tests.conftest import FakeClock

SECRET = "unit-test-secret"
START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FakeClock(START)


@pytest.fixture
def codec(clock):
    return TokenCodec(
        SECRET,
        access_lifetime=timedelta(minutes=30),
        refresh_lifetime=timedelta(days=30),
        clock=clock,
    )


def _tamper_signature(token: str) -> str:
    header, payload, signature = token.split(".")
    i = len(signature) // 2
    replacement = "A" if signature[i] != "A" else "B"
    return ".".join([header, payload, signature[:i] + replacement + signature[i + 1 :]])


def test_issue_and_verify_roundtrip(codec: TokenCodec):
    token, expires_at = codec.issue("user-1", TokenKind.ACCESS)
    assert isinstance(token, str)
    assert expires_at == START + timedelta(minutes=30)
    issued = codec.verify(token, TokenKind.ACCESS)
    assert issued.subject_id == "user-1"
    assert issued.kind is TokenKind.ACCESS
    assert issued.expires_at == expires_at


def test_refresh_lifetime_is_used(codec: TokenCodec):
    _, expires_at = codec.issue("user-1", TokenKind.REFRESH)
    assert expires_at == START + timedelta(days=30)


def test_tokens_issued_in_same_instant_differ(codec: TokenCodec):
    first, _ = codec.issue("user-1", TokenKind.REFRESH)
    second, _ = codec.issue("user-1", TokenKind.REFRESH)
    assert first != second


def test_kind_mismatch_both_directions(codec: TokenCodec):
    access, _ = codec.issue("user-1", TokenKind.ACCESS)
    refresh, _ = codec.issue("user-1", TokenKind.REFRESH)
    with pytest.raises(KindMismatch):
        codec.verify(access, TokenKind.REFRESH)
    with pytest.raises(KindMismatch):
        codec.verify(refresh, TokenKind.ACCESS)


def test_expired_after_lifetime(codec: TokenCodec, clock: FakeClock):
    token, _ = codec.issue("user-1", TokenKind.ACCESS)
    clock.advance(timedelta(minutes=29, seconds=59))
    assert codec.verify(token, TokenKind.ACCESS).subject_id == "user-1"
    clock.advance(timedelta(seconds=1))
    # now == exp counts as expired
    with pytest.raises(TokenExpired):
        codec.verify(token, TokenKind.ACCESS)


def test_tampered_signature_rejected(codec: TokenCodec):
    token, _ = codec.issue("user-1", TokenKind.ACCESS)
    with pytest.raises(InvalidSignature):
        codec.verify(_tamper_signature(token), TokenKind.ACCESS)


def test_forged_claims_rejected_even_if_plausible(codec: TokenCodec):
    """Same claims signed with another key: signature check wins over valid kind/expiry."""
    exp = int((START + timedelta(minutes=5)).timestamp())
    forged = jwt.encode({"sub": "admin", "type": "access", "exp": exp}, "other-secret", algorithm="HS256")
    with pytest.raises(InvalidSignature):
        codec.verify(forged, TokenKind.ACCESS)


def test_tampered_expired_token_reports_signature(codec: TokenCodec, clock: FakeClock):
    token, _ = codec.issue("user-1", TokenKind.ACCESS)
    clock.advance(timedelta(days=1))
    with pytest.raises(InvalidSignature):
        codec.verify(_tamper_signature(token), TokenKind.ACCESS)


BASE64URL_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


def _replace_char(segment: str, i: int) -> str:
    replacement = "A" if segment[i] != "A" else "B"
    return segment[:i] + replacement + segment[i + 1 :]


@pytest.mark.parametrize("segment_index", [0, 1])
def test_any_altered_header_or_payload_byte_is_invalid_signature(codec: TokenCodec, segment_index: int):
    token, _ = codec.issue("user-1", TokenKind.ACCESS)
    parts = token.split(".")
    for i in range(len(parts[segment_index])):
        altered = list(parts)
        altered[segment_index] = _replace_char(parts[segment_index], i)
        with pytest.raises(InvalidSignature):
            codec.verify(".".join(altered), TokenKind.ACCESS)


def test_every_other_last_signature_char_is_rejected(codec: TokenCodec):
    """The last base64url char carries unused bits; any other spelling must still fail."""
    token, _ = codec.issue("user-1", TokenKind.ACCESS)
    head, last = token[:-1], token[-1]
    for c in BASE64URL_ALPHABET:
        if c == last:
            continue
        with pytest.raises(InvalidSignature):
            codec.verify(head + c, TokenKind.ACCESS)
    assert codec.verify(token, TokenKind.ACCESS).subject_id == "user-1"


def test_well_shaped_garbage_is_invalid_signature(codec: TokenCodec):
    with pytest.raises(InvalidSignature):
        codec.verify("a.b.c", TokenKind.ACCESS)


@pytest.mark.parametrize("raw", ["", "invalid-token", "a.b", "a..c", "a.b.c.", "a.b.c!", "not.a.jwt.at.all"])
def test_malformed_strings(codec: TokenCodec, raw: str):
    with pytest.raises(MalformedToken):
        codec.verify(raw, TokenKind.ACCESS)


def test_validly_signed_token_without_kind_is_malformed(codec: TokenCodec):
    exp = int((START + timedelta(minutes=5)).timestamp())
    token = jwt.encode({"sub": "user-1", "exp": exp}, SECRET, algorithm="HS256")
    with pytest.raises(MalformedToken):
        codec.verify(token, TokenKind.ACCESS)


def test_all_failures_share_base_class(codec: TokenCodec):
    for exc in (MalformedToken, InvalidSignature, TokenExpired, KindMismatch):
        assert issubclass(exc, TokenError)


def test_codec_requires_secret_and_positive_lifetimes():
    with pytest.raises(RuntimeError):
        TokenCodec("", access_lifetime=timedelta(minutes=1), refresh_lifetime=timedelta(days=1))
    with pytest.raises(ValueError):
        TokenCodec(SECRET, access_lifetime=timedelta(0), refresh_lifetime=timedelta(days=1))


def test_distinct_secrets_do_not_cross_verify(clock: FakeClock):
    a = TokenCodec("secret-a", access_lifetime=timedelta(minutes=5), refresh_lifetime=timedelta(days=1), clock=clock)
    b = TokenCodec("secret-b", access_lifetime=timedelta(minutes=5), refresh_lifetime=timedelta(days=1), clock=clock)
    token, _ = a.issue("user-1", TokenKind.ACCESS)
    with pytest.raises(InvalidSignature):
        b.verify(token, TokenKind.ACCESS)
