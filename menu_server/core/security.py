"""
Operator identity
Login happens elsewhere; this module only issues and verifies the bearer
tokens that identify who performed a change
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .exceptions import AuthenticationError
from ..config.settings import settings


class SecurityManager:
    """Issues and decodes operator JWTs"""

    def __init__(self, secret: str = None, algorithm: str = None, expire_hours: int = None):
        self.secret = secret or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm
        self.expire_hours = expire_hours or settings.jwt_expire_hours

    def create_jwt_token(self, operator_id: int, additional_claims: Dict[str, Any] = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(operator_id),
            "iat": now,
            "exp": now + timedelta(hours=self.expire_hours),
        }
        if additional_claims:
            payload.update(additional_claims)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}")

    def get_operator_id_from_token(self, token: str) -> int:
        payload = self.decode_jwt_token(token)
        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError):
            raise AuthenticationError("Token missing operator id")


security_manager = SecurityManager()

_bearer = HTTPBearer(auto_error=False)


async def get_operator_id(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer)
) -> int:
    """Extract the operator id from the Authorization header"""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        return security_manager.get_operator_id_from_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=e.message)


def create_access_token(operator_id: int) -> str:
    return security_manager.create_jwt_token(operator_id)
