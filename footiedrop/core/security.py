import secrets
import uuid
from datetime import datetime, timedelta, timezone
from jose import jwt
from passlib.context import CryptContext

from footiedrop.core.config import settings

pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")

OTP_MIN = 1000
OTP_MAX = 9999

def hash_password(p: str) -> str:
    return pwd_ctx.hash(p)

def verify_password(p: str, hashed: str) -> bool:
    return pwd_ctx.verify(p, hashed)

def sign_token(payload: dict, secret: str, ttl: timedelta) -> str:
    """Sign `payload` as a JWT that expires `ttl` from now.

    A random `jti` is always added so two tokens signed for the same payload
    within the same second are still different strings.
    """
    now = datetime.now(timezone.utc)
    claims = dict(payload)
    claims.setdefault("jti", uuid.uuid4().hex)
    claims["iat"] = int(now.timestamp())
    claims["exp"] = int((now + ttl).timestamp())
    return jwt.encode(claims, secret, algorithm=settings.JWT_ALG)

def verify_token(token: str, secret: str) -> dict:
    # raises jose.ExpiredSignatureError / jose.JWTError
    return jwt.decode(token, secret, algorithms=[settings.JWT_ALG])

def gen_otp() -> str:
    # uniform over [1000, 9999]
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))
