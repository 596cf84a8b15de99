# weconnect/UAA/utils.py
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional

import structlog
from cryptography.fernet import Fernet, InvalidToken
from jose import jwt, JWTError
from passlib.context import CryptContext

logger = structlog.get_logger(__name__)

BCRYPT_ROUNDS = 12
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
PASSWORD_SYMBOLS = set("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


# --- Password utilities ---
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError) as e:
        logger.warning("password_verify_failed", error=str(e))
        return False


def password_policy_errors(password: str) -> List[str]:
    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"password must be at most {PASSWORD_MAX_LENGTH} characters")
    if not any(c.isupper() for c in password):
        errors.append("password must include an uppercase letter")
    if not any(c.islower() for c in password):
        errors.append("password must include a lowercase letter")
    if not any(c.isdigit() for c in password):
        errors.append("password must include a digit")
    if not any(c in PASSWORD_SYMBOLS for c in password):
        errors.append("password must include a special character")
    return errors


def assert_password_policy(password: str) -> None:
    errors = password_policy_errors(password)
    if errors:
        raise ValueError("; ".join(errors))


def validate_email(email: str) -> bool:
    if len(email) > 254 or not _EMAIL_RE.match(email):
        return False
    parts = email.split("@")
    if len(parts) != 2 or "." not in parts[1]:
        return False
    tld = parts[1].rsplit(".", 1)[-1]
    return len(tld) >= 2


# --- JWT helpers ---
def _now_ts() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def create_access_token(
    user_id: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
) -> Dict[str, Any]:
    jti = str(uuid.uuid4())
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=7))
    payload = {"userId": user_id, "sub": user_id, "jti": jti, "iat": _now_ts(), "exp": int(expire.timestamp())}
    token = jwt.encode(payload, secret_key, algorithm=algorithm)
    logger.debug("create_access_token", sub=user_id, jti=jti, exp=payload["exp"])
    return {"token": token, "jti": jti, "exp": payload["exp"]}


def decode_token(token: str, secret_key: str, algorithm: str = "HS256") -> Dict[str, Any]:
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        logger.info("token_decode_failed", error=str(e))
        raise


# --- Redis-based access token blacklist ---
async def blacklist_access_jti(redis_client, jti: str, expires_at_ts: int) -> None:
    ttl = max(0, expires_at_ts - _now_ts())
    if ttl <= 0:
        return
    await redis_client.set(f"bl:{jti}", "1", ex=ttl)
    logger.info("access_jti_blacklisted", jti=jti, ttl=ttl)


async def is_access_jti_blacklisted(redis_client, jti: str) -> bool:
    return await redis_client.exists(f"bl:{jti}") == 1


# --- Platform token encryption ---
def build_fernet(key: Optional[str]) -> Fernet:
    if not key:
        # dev fallback (not for production): tokens stored with it are unreadable after a restart
        logger.warning("token_encryption_key_missing_using_ephemeral_key")
        key = Fernet.generate_key().decode()
    return Fernet(key.encode())


def encrypt_token(fernet: Fernet, plaintext: Optional[str]) -> Optional[str]:
    if plaintext is None:
        return None
    return fernet.encrypt(plaintext.encode()).decode()


def decrypt_token(fernet: Fernet, ciphertext: Optional[str]) -> Optional[str]:
    if not ciphertext:
        return None
    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        logger.warning("token_decrypt_failed")
        return None
