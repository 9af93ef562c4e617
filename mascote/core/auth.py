"""
JWT identity tokens and credential hashing
"""

from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from passlib.context import CryptContext
from typing import Dict, Optional

from mascote.core.config import Settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_secret(secret: str) -> str:
    """Hash a login secret for storage in the client table"""
    return pwd_context.hash(secret)


def verify_secret(secret: str, credential_hash: str) -> bool:
    """Check a login secret against its stored hash"""
    if not secret or not credential_hash:
        return False
    try:
        return pwd_context.verify(secret, credential_hash)
    except ValueError:
        # Malformed or unknown hash format
        return False


class TokenIssuer:
    """Issues and verifies time-bounded bearer tokens carrying a client id"""

    def __init__(self, settings: Settings):
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_minutes = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    def create_access_token(
        self,
        client_id: str,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create JWT access token for a client"""
        now = datetime.now(timezone.utc)
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.expire_minutes)

        to_encode = {
            "sub": client_id,
            "exp": now + expires_delta,
            "iat": now,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def decode_access_token(self, token: str) -> Optional[Dict]:
        """Decode and validate JWT token"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

    def verify_token(self, token: str) -> Optional[str]:
        """Verify token and return the client id if valid"""
        payload = self.decode_access_token(token)
        if payload is None:
            return None

        client_id = payload.get("sub")
        if not isinstance(client_id, str) or not client_id:
            return None
        return client_id
