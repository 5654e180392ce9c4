from typing import Optional
from jose import JWTError, jwt
from app.config import settings


def verify_token(token: str, expected_type: str = "access") -> Optional[dict]:
    """Verify a JWT issued by the login service and return its payload if valid"""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        token_type: str = payload.get("type")
        if token_type != expected_type:
            return None
        return payload
    except JWTError:
        return None
