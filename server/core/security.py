# server/core/security.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable
import binascii
from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode
from passlib.context import CryptContext
from core.errors import Expired, InvalidSignature, Malformed


logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 10
DEFAULT_TOKEN_TTL = timedelta(hours=24)


# -------------------------------
# Password hashing
# -------------------------------

def make_password_context(rounds: int = DEFAULT_BCRYPT_ROUNDS) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


class PasswordHasher:
    """
    Salted one-way password hashing backed by passlib's bcrypt handler.
    Verification is constant-time.
    """

    def __init__(self, context: CryptContext | None = None):
        self.context = context or make_password_context()

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        return self.context.verify(password, hashed_password)

    def dummy_verify(self) -> None:
        # Spends the same time as a real verify when there is no user to check.
        self.context.dummy_verify()


# -------------------------------
# Session tokens
# -------------------------------

class TokenService:
    """
    Issues and verifies stateless JWT session tokens.

    The token carries the user id in ``sub`` and expires ``ttl`` after
    issuance. Verification only checks the signature and the expiry,
    nothing is looked up server-side, so tokens cannot be revoked.
    ``clock`` supplies "now" both when stamping a new token and when
    checking expiry.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] | None = None,
    ):
        if not secret_key:
            raise ValueError("A non-empty signing secret is required")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def issue(self, user_id: int) -> str:
        issued_at = self.clock()
        claims = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        if not token or token.count(".") != 2:
            raise Malformed()
        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError:
            raise Malformed()

        # The signature is compared after decoding, so spare padding bits in
        # the last character would go unnoticed. Only the canonical encoding
        # is accepted.
        if not _is_canonical(token.rsplit(".", 1)[1]):
            raise InvalidSignature()

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            logger.debug("Token rejected: %s", e)
            raise InvalidSignature()

        expires_at = payload.get("exp")
        if not isinstance(expires_at, (int, float)):
            raise Malformed("Token has no expiry")
        if self.clock().timestamp() > expires_at:
            raise Expired()

        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError):
            raise Malformed("Token subject is not a user id")


def _is_canonical(segment: str) -> bool:
    try:
        return base64url_encode(base64url_decode(segment.encode("ascii"))).decode("ascii") == segment
    except (UnicodeError, binascii.Error, TypeError):
        return False
