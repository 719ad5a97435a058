from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from errors import Unauthorized


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PasswordHasher:
    """Salted bcrypt hashes with a tunable work factor."""

    def __init__(self, rounds: int = 10):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        return self.pwd_context.verify(password, hashed)


class SessionTokens:
    """Signed bearer tokens carrying the account id in the ``id`` claim."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(days=1)):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, account_id: str, now: Optional[datetime] = None) -> str:
        now = now or _now()
        payload = {"id": account_id, "iat": now, "exp": now + self.ttl}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        """Return the account id of a valid token, raise Unauthorized otherwise."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            raise Unauthorized() from exc
        account_id = payload.get("id")
        if not account_id:
            raise Unauthorized()
        return account_id
