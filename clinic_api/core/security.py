"""
Core security utilities for authentication and password handling.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext
import logging

from ..config import Settings, MIN_SECRET_LENGTH
from ..auth.exceptions import InvalidTokenException, TokenConfigurationError

# Set up logging
logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


class PasswordHasher:
    """
    Password hashing with bcrypt via passlib.

    The cost factor comes from settings (12 rounds in production, 10 otherwise).
    """
    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            str: Hashed password
        """
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """
        Verify a password against a hash.

        Args:
            plain_password: Plain text password
            hashed_password: Hashed password to compare against

        Returns:
            bool: True if password matches hash; False when no hash is stored
        """
        if not hashed_password or plain_password is None:
            return False
        return self._context.verify(plain_password, hashed_password)


@dataclass(frozen=True)
class TokenClaims:
    """Verified token payload."""
    user_id: str
    token_type: str
    expires_at: datetime
    raw: Dict[str, Any]


class TokenIssuer:
    """
    Issues and verifies signed access and refresh tokens.

    Access and refresh tokens are signed with distinct secrets so that one
    can never be replayed as the other.
    """
    def __init__(self, settings: Settings):
        self.settings = settings
        self.algorithm = settings.algorithm

    def _secret_for(self, token_type: str) -> str:
        if token_type == ACCESS_TOKEN:
            secret = self.settings.access_token_secret
        else:
            secret = self.settings.refresh_token_secret
        if not secret:
            logger.error(f"Cannot sign {token_type} token: secret is not configured")
            raise TokenConfigurationError(f"{token_type.capitalize()} token secret is not configured")
        if self.settings.is_production and len(secret) < MIN_SECRET_LENGTH:
            logger.error(f"Cannot sign {token_type} token: secret shorter than {MIN_SECRET_LENGTH} characters")
            raise TokenConfigurationError(f"{token_type.capitalize()} token secret is too weak")
        return secret

    def access_token_lifetime(self) -> timedelta:
        return timedelta(minutes=self.settings.access_token_lifetime_minutes)

    def refresh_token_lifetime(self) -> timedelta:
        return timedelta(days=self.settings.refresh_token_lifetime_days)

    def _issue(self, user_id: str, token_type: str, lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {
            "id": str(user_id),
            "type": token_type,
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(to_encode, self._secret_for(token_type), algorithm=self.algorithm)

    def issue_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a short-lived access token.

        Args:
            user_id: Credential identifier carried in the "id" claim
            expires_delta: Optional custom lifetime

        Returns:
            str: Encoded JWT token
        """
        return self._issue(user_id, ACCESS_TOKEN, expires_delta or self.access_token_lifetime())

    def issue_refresh_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a refresh token for token renewal.

        Args:
            user_id: Credential identifier carried in the "id" claim
            expires_delta: Optional custom lifetime (default: 7 days in production)

        Returns:
            str: Encoded refresh token
        """
        return self._issue(user_id, REFRESH_TOKEN, expires_delta or self.refresh_token_lifetime())

    def verify(self, token: str, token_type: str = ACCESS_TOKEN) -> TokenClaims:
        """
        Verify signature and expiry together and return the claims.

        Expiry is one verification outcome among others: an expired token
        raises InvalidTokenException with ``expired=True``.

        Raises:
            InvalidTokenException: Bad signature, malformed, wrong type or expired
        """
        if not token:
            raise InvalidTokenException("Token is missing")
        try:
            payload = jwt.decode(token, self._secret_for(token_type), algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise InvalidTokenException("Token has expired", expired=True)
        except JWTError:
            raise InvalidTokenException()

        user_id = payload.get("id")
        if not user_id or payload.get("type") != token_type:
            raise InvalidTokenException()
        return TokenClaims(
            user_id=str(user_id),
            token_type=token_type,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            raw=payload,
        )

    @staticmethod
    def decode_unverified(token: str) -> Optional[Dict[str, Any]]:
        """
        Read claims without checking the signature.

        Only for diagnostics; never decide anything on this payload.
        """
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            return None
