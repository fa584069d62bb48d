from datetime import datetime, timedelta, timezone
from typing import Any, Dict
import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from mapsy.core.config import settings
from mapsy.core.exceptions import AuthError

def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False

def create_access_token(user_id: str, email: str, expires_delta: timedelta = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.jwt_expires_days))
    payload = {
        "userId": user_id,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthError("Token has expired", code="TOKEN_EXPIRED")
    except JWTError:
        raise AuthError("Invalid token", code="INVALID_TOKEN")
    if not payload.get("userId"):
        raise AuthError("Invalid token payload", code="INVALID_TOKEN")
    return payload
