from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
from uuid import UUID
from jose import jwt
from passlib.context import CryptContext
import hashlib

from infrastructure.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__ident="2b"
)

def _prepare_password(password: str) -> str:
    """
    bcrypt only reads the first 72 bytes, so longer client passwords are
    reduced to their SHA256 hex digest before hashing.
    """
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > 72:
        return hashlib.sha256(password_bytes).hexdigest()
    return password

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(_prepare_password(plain_password), hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(_prepare_password(password))

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign ``data`` as a JWT with an ``exp`` claim"""
    to_encode = data.copy()
    lifetime = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + lifetime})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def create_client_token(client_id: UUID, roles: Iterable[str] = ()) -> str:
    """Bearer token identifying a client; roles are informational only"""
    return create_access_token({"sub": str(client_id), "roles": list(roles)})

def decode_access_token(token: str) -> dict:
    """Decode and verify a JWT, raising jose.JWTError when invalid"""
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])

def read_client_id(token: str) -> UUID:
    """Client id carried in the ``sub`` claim.

    Raises JWTError for a bad signature or expired token and ValueError
    when the subject is missing or not a UUID.
    """
    payload = decode_access_token(token)
    subject = payload.get("sub")
    if subject is None:
        raise ValueError("Token has no subject")
    return UUID(subject)
