from __future__ import annotations

import logging
from typing import Any, Protocol

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .auth_service import authenticate
from .config import API_BASE

logger = logging.getLogger(__name__)

USERNAME_PROVIDER = "username"


class AuthenticationError(Exception):
    """Login fallito. Nessun dettaglio su quale campo fosse errato."""


class AuthProvider(Protocol):
    def sign_in(self, provider: str, params: dict[str, Any]) -> None: ...


def _credentials(provider: str, params: dict[str, Any]) -> tuple[str, str]:
    if provider != USERNAME_PROVIDER:
        raise AuthenticationError(f"Provider non supportato: {provider}")
    return str(params.get("username") or ""), str(params.get("password") or "")


class LocalAuthProvider:
    """Verifica le credenziali direttamente sulla tabella utenti."""

    def __init__(self, factory: sessionmaker | None = None) -> None:
        self.factory = factory
        self.user_id: str | None = None

    def sign_in(self, provider: str, params: dict[str, Any]) -> None:
        username, password = _credentials(provider, params)
        try:
            user = authenticate(username, password, factory=self.factory)
        except SQLAlchemyError as e:
            logger.exception("Verifica credenziali non riuscita")
            raise AuthenticationError("Login fallito.") from e
        if user is None:
            raise AuthenticationError("Credenziali non valide.")
        self.user_id = user.id


class ApiAuthProvider:
    """Login via API REST (OAuth2 password form), conserva il token JWT."""

    def __init__(self, api_base: str = API_BASE, timeout: float = 10) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.token: str | None = None

    def sign_in(self, provider: str, params: dict[str, Any]) -> None:
        username, password = _credentials(provider, params)
        # OAuth2PasswordRequestForm => x-www-form-urlencoded
        try:
            r = requests.post(
                f"{self.api_base}/api/auth/login",
                data={"username": username, "password": password},
                timeout=self.timeout,
            )
            r.raise_for_status()
            self.token = r.json()["access_token"]
        except (requests.RequestException, KeyError, ValueError) as e:
            logger.info("Login via API fallito: %s", type(e).__name__)
            raise AuthenticationError("Login fallito.") from e


def build_provider(backend: str, factory: sessionmaker | None = None) -> AuthProvider:
    if backend == "api":
        return ApiAuthProvider()
    if backend == "local":
        return LocalAuthProvider(factory=factory)
    raise ValueError(f"AUTH_BACKEND non valido: {backend}")
