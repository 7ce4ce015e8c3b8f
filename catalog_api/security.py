import logging
from datetime import datetime, timedelta, timezone

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)


def hash_password(plain: str) -> str:
    return generate_password_hash(plain)


def verify_password(plain: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, plain)


class TokenExpired(Exception):
    pass


class TokenInvalid(Exception):
    pass


class TokenService:
    """Issues and verifies signed session tokens bound to a user id.

    The token carries only ``userId`` plus ``iat``/``exp``; role and active
    status are looked up again on every request so a deactivated user is
    locked out before the token expires.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expires_minutes: int = 30):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.lifetime = timedelta(minutes=expires_minutes)

    def issue(self, user_id: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userId": user_id,
            "iat": now,
            "exp": now + self.lifetime,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpired("Token has expired")
        except jwt.InvalidTokenError:
            raise TokenInvalid("Token is invalid")

        user_id = payload.get("userId")
        if not isinstance(user_id, int):
            raise TokenInvalid("Token is invalid")
        return user_id
