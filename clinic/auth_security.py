"""
Credenziali dello staff: hash bcrypt (passlib) e token di sessione JWT.

Il token porta l'id dell'utente in `sub` e lo username in chiaro, così la
dashboard in modalità API sa chi ha fatto l'accesso senza un'altra chiamata.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import JWT_ALG, JWT_EXPIRE_MINUTES, JWT_SECRET

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def issue_token(user_id: str, username: str, ttl: timedelta | None = None) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "username": username,
        "iat": issued,
        "exp": issued + (ttl if ttl is not None else timedelta(minutes=JWT_EXPIRE_MINUTES)),
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALG)


def clean_token(token: str) -> str:
    # header copiati a mano: spazi e virgolette di troppo
    return token.strip().strip('"').strip("'")


def token_user_id(token: str) -> str | None:
    """Id dell'utente del token; None se il token è illeggibile, scaduto o firmato con un'altra chiave."""
    try:
        claims = jwt.decode(clean_token(token), JWT_SECRET, algorithms=[JWT_ALG])
    except JWTError:
        return None
    return claims.get("sub") or None
