"""
Security utilities: signed access tokens and password hashing
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from joserfc import jwt as jose_jwt
from joserfc.jwk import OctKey
from joserfc.errors import JoseError
from pwdlib import PasswordHash
from pwdlib.hashers.bcrypt import BcryptHasher
import structlog

from bug_tracker.core.config import settings
from bug_tracker.core.errors import ExpiredToken, MalformedToken
from bug_tracker.core.rbac import Principal

logger = structlog.get_logger()

ACCESS_TOKEN_TYPE = "access"

pwd_context = PasswordHash((BcryptHasher(),))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    """Verified token content. ``role`` is a routing hint, not an authorization source."""

    subject: str
    role: Optional[str]
    issued_at: datetime
    expires_at: datetime


class TokenCodec:
    """
    Issues and verifies signed, time-limited identity tokens.

    Pure with respect to the signing key and the clock: both ``issue`` and
    ``verify`` accept an explicit ``now`` and otherwise ask ``clock``.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=1),
        issuer: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
        logger: Any = None,
    ) -> None:
        self._key = OctKey.import_key(secret_key)
        self._algorithm = algorithm
        self._lifetime = lifetime
        self._issuer = issuer
        self._clock = clock
        self._logger = logger or structlog.get_logger()

    @classmethod
    def from_settings(cls, config=settings, **kwargs) -> "TokenCodec":
        return cls(
            config.JWT_SECRET_KEY,
            algorithm=config.JWT_ALGORITHM,
            lifetime=timedelta(minutes=config.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
            issuer=config.JWT_ISSUER,
            **kwargs,
        )

    @property
    def lifetime(self) -> timedelta:
        return self._lifetime

    def issue(self, principal: Principal, now: Optional[datetime] = None) -> str:
        """
        Create an access token for ``principal``

        Args:
            principal: Subject of the token
            now: Issue time; whole seconds only, so ``exp`` is exact

        Returns:
            Encoded JWT
        """
        issued_at = (now or self._clock()).replace(microsecond=0)
        expires_at = issued_at + self._lifetime

        claims = {
            "sub": str(principal.id),
            "role": principal.role.value,
            "type": ACCESS_TOKEN_TYPE,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        if self._issuer:
            claims["iss"] = self._issuer

        token = jose_jwt.encode({"alg": self._algorithm}, claims, self._key)
        self._logger.debug("Access token issued", subject=claims["sub"], expires=expires_at.isoformat())
        return token

    def verify(self, token: str, now: Optional[datetime] = None) -> TokenClaims:
        """
        Verify signature, structure and expiry of ``token``

        Raises:
            ExpiredToken: ``now`` is past the ``exp`` claim
            MalformedToken: bad signature, undecodable token, wrong type or missing claims
        """
        try:
            payload = jose_jwt.decode(token, self._key, algorithms=[self._algorithm]).claims
        except (JoseError, ValueError) as exc:
            self._logger.warning("JWT verification failed", error=str(exc))
            raise MalformedToken("Invalid token") from exc

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            self._logger.warning("Invalid token type", actual=payload.get("type"))
            raise MalformedToken("Invalid token type")

        subject = payload.get("sub")
        exp = payload.get("exp")
        if not subject or not isinstance(exp, (int, float)):
            self._logger.warning("Token missing required claims")
            raise MalformedToken("Invalid token: missing claims")

        if self._issuer and payload.get("iss") not in (None, self._issuer):
            self._logger.warning("Token issuer is not trusted", issuer=payload.get("iss"))
            raise MalformedToken("Untrusted token issuer")

        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
        current = now or self._clock()
        if current > expires_at:
            self._logger.info("Token expired", subject=subject, expired_at=expires_at.isoformat())
            raise ExpiredToken("Token expired")

        iat = payload.get("iat")
        issued_at = datetime.fromtimestamp(iat, tz=timezone.utc) if isinstance(iat, (int, float)) else expires_at - self._lifetime

        return TokenClaims(
            subject=str(subject),
            role=payload.get("role"),
            issued_at=issued_at,
            expires_at=expires_at,
        )


token_codec = TokenCodec.from_settings()


BCRYPT_MAX_BYTES = 72


def _bcrypt_input(password: str) -> str:
    """Cut a password to the bytes bcrypt actually hashes"""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) <= BCRYPT_MAX_BYTES:
        return password
    return password_bytes[:BCRYPT_MAX_BYTES].decode("utf-8", errors="ignore")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    The candidate is cut exactly like it was when hashed.

    Returns:
        True if password matches, False otherwise
    """
    try:
        return pwd_context.verify(_bcrypt_input(plain_password), hashed_password)
    except Exception as e:
        logger.error("Password verification error", error=str(e))
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password

    Bcrypt only looks at the first 72 bytes, so longer input is truncated.
    """
    truncated = _bcrypt_input(password)
    if truncated != password:
        logger.warning("Password truncated to 72 bytes for bcrypt")

    return pwd_context.hash(truncated)
