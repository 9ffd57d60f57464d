"""Password hashing and JWT creation/verification."""

import enum
import hashlib
import hmac
import json
import math
import re
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from functools import lru_cache

import bcrypt
from jose import jwk, jwt
from jose.utils import base64url_decode, base64url_encode

from app.config import settings
from app.core.errors import InvalidSignature, KindMismatch, MalformedToken, TokenExpired

BCRYPT_MAX_BYTES = 72
_B64URL_SEGMENT = re.compile(r"[A-Za-z0-9_-]+")


class TokenKind(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class IssuedToken:
    subject_id: str
    kind: TokenKind
    expires_at: datetime


def hash_token(token: str) -> str:
    """SHA256 hash of a token string for storage."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PasswordHasher:
    """bcrypt hashing. Bytes truncated to 72 (bcrypt limit); no passlib re-encoding."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        pwd_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        return bcrypt.hashpw(pwd_bytes, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time check. False for a mismatch or a malformed hash, never raises."""
        plain_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(plain_bytes, password_hash.encode("utf-8"))
        except ValueError:
            return False

    def verify_dummy(self, password: str) -> bool:
        """Burn the same bcrypt work as a real check; used when the account does not exist."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash(secrets.token_urlsafe(16))
        self.verify(password, self._dummy_hash)
        return False


class TokenCodec:
    """Signs and verifies access/refresh JWTs.

    The secret and lifetimes are passed in explicitly so tests can run with
    their own keys and clocks. Claims: ``sub`` (user id), ``type`` (token kind),
    ``iat``, ``exp`` (integer seconds) and a random ``jti`` so that two tokens
    issued within the same second still differ.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        access_lifetime: timedelta,
        refresh_lifetime: timedelta,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret_key:
            raise RuntimeError("Token signing secret is not configured")
        if access_lifetime <= timedelta(0) or refresh_lifetime <= timedelta(0):
            raise ValueError("Token lifetimes must be positive")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._signing_key = jwk.construct(secret_key, algorithm)
        self._lifetimes = {
            TokenKind.ACCESS: access_lifetime,
            TokenKind.REFRESH: refresh_lifetime,
        }
        self._clock = clock

    def lifetime(self, kind: TokenKind) -> timedelta:
        return self._lifetimes[kind]

    def issue(self, subject_id: str, kind: TokenKind) -> tuple[str, datetime]:
        now = self._clock()
        exp = math.ceil((now + self._lifetimes[kind]).timestamp())
        payload = {
            "sub": str(subject_id),
            "type": kind.value,
            "iat": int(now.timestamp()),
            "exp": exp,
            "jti": secrets.token_hex(8),
        }
        token = jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        return token, datetime.fromtimestamp(exp, tz=timezone.utc)

    def verify(self, token: str, expected_kind: TokenKind) -> IssuedToken:
        """Decode ``token`` or raise the matching TokenError.

        Checks run in a fixed order: shape, signature, claims, expiry, kind.
        The signature is checked over the raw ``header.payload`` text before
        anything is decoded, so an altered byte in any segment is reported as
        InvalidSignature. Only a string that is not three base64url segments
        is MalformedToken at that stage.
        """
        parts = token.split(".") if isinstance(token, str) else []
        if len(parts) != 3 or not all(_B64URL_SEGMENT.fullmatch(p) for p in parts):
            raise MalformedToken()
        header_seg, payload_seg, signature_seg = parts

        signing_input = f"{header_seg}.{payload_seg}".encode("ascii")
        expected = base64url_encode(self._signing_key.sign(signing_input)).decode("ascii")
        # Compared as encoded text: a signature segment with altered padding bits differs too.
        if not hmac.compare_digest(expected, signature_seg):
            raise InvalidSignature()

        try:
            header = json.loads(base64url_decode(header_seg.encode("ascii")))
            claims = json.loads(base64url_decode(payload_seg.encode("ascii")))
        except ValueError as e:
            raise MalformedToken() from e
        if not isinstance(header, dict) or header.get("alg") != self._algorithm or not isinstance(claims, dict):
            raise MalformedToken()

        subject_id = claims.get("sub")
        exp = claims.get("exp")
        try:
            kind = TokenKind(claims.get("type"))
        except ValueError as e:
            raise MalformedToken() from e
        if not isinstance(subject_id, str) or not subject_id or not isinstance(exp, int):
            raise MalformedToken()

        # now >= exp is expired
        if self._clock().timestamp() >= exp:
            raise TokenExpired()
        if kind != expected_kind:
            raise KindMismatch()
        return IssuedToken(
            subject_id=subject_id,
            kind=kind,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )


@lru_cache
def get_token_codec() -> TokenCodec:
    return TokenCodec(
        settings.secret_key,
        access_lifetime=timedelta(minutes=settings.access_token_expire_minutes),
        refresh_lifetime=timedelta(days=settings.refresh_token_expire_days),
        algorithm=settings.jwt_algorithm,
    )


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher()
