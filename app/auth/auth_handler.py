import os
import jwt
import time
from typing import Dict, Optional

JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production-with-a-32-byte-secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXP_DELTA_SECONDS = os.getenv("JWT_EXP_DELTA_SECONDS", "86400")

EXPIRED = "expired"
INVALID = "invalid"


class TokenError(Exception):
    """Raised by decode_jwt; reason is EXPIRED or INVALID."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def token_response(token: str, expires_in: int) -> Dict[str, object]:
    return {
        "access_token": token,
        "token_type": "bearer",
        "expires_in": expires_in,
    }


def sign_jwt(user_id: int, role: str) -> Dict[str, object]:
    """Generate a JWT token for a given user ID."""
    expires_in = int(JWT_EXP_DELTA_SECONDS)
    payload = {
        "user_id": user_id,
        "role": role,
        "expires": time.time() + expires_in,
    }
    token = jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)
    return token_response(token, expires_in)


def decode_jwt(token: str) -> dict:
    """Decode a JWT token and return its payload, raising TokenError when it is unusable."""
    try:
        decoded_token = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenError(EXPIRED)
    except jwt.InvalidTokenError:
        raise TokenError(INVALID)

    expires: Optional[float] = decoded_token.get("expires")
    if expires is None or "user_id" not in decoded_token:
        raise TokenError(INVALID)
    if expires < time.time():
        raise TokenError(EXPIRED)
    return decoded_token
