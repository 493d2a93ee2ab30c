from fastapi import Request
from fastapi.security import HTTPBearer

from auth.auth_handler import decode_jwt, TokenError, EXPIRED
from services.exceptions import AuthenticationError

UNAUTHORIZED_MESSAGE = "غير مصرح لك بالوصول إلى هذا المورد"
INVALID_TOKEN_MESSAGE = "رمز غير صحيح"
EXPIRED_TOKEN_MESSAGE = "انتهت صلاحية الرمز"


class JWTBearer(HTTPBearer):
    """Validates the bearer token and returns its payload."""

    def __init__(self):
        # errors are raised here so they share the Arabic envelope
        super().__init__(auto_error=False)

    async def __call__(self, request: Request) -> dict:
        credentials = await super().__call__(request)
        if not credentials or credentials.scheme.lower() != "bearer":
            raise AuthenticationError(UNAUTHORIZED_MESSAGE)

        try:
            payload = decode_jwt(credentials.credentials)
        except TokenError as e:
            raise AuthenticationError(EXPIRED_TOKEN_MESSAGE if e.reason == EXPIRED else INVALID_TOKEN_MESSAGE)

        request.state.user_id = payload["user_id"]
        return payload
