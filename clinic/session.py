"""
Session gate e form di login.

La sessione è un oggetto esplicito passato ai collaboratori (niente stato
globale): autenticata o no, più lo stato del login in corso.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

from .auth_provider import USERNAME_PROVIDER, AuthenticationError, AuthProvider
from .notifications import NotificationRelay
from .validation import FormErrors, validate_credentials

logger = logging.getLogger(__name__)

T = TypeVar("T")

WELCOME_TITLE = "Benvenuto"
WELCOME_DESCRIPTION = "Accesso effettuato."
LOGIN_FAILED_TITLE = "Errore di accesso"
LOGIN_FAILED_DESCRIPTION = "Controlla username e password."


class SessionGate:
    def __init__(self) -> None:
        self._authenticated = False
        self.username: str | None = None

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    def authenticate(self, username: str) -> None:
        self._authenticated = True
        self.username = username

    def sign_out(self) -> None:
        self._authenticated = False
        self.username = None

    def render(self, dashboard: Callable[[], T], sign_in: Callable[[], T]) -> T:
        """Rende esattamente uno dei due sottoalberi."""
        if self._authenticated:
            return dashboard()
        return sign_in()


class SignInForm:
    def __init__(self, gate: SessionGate, provider: AuthProvider, relay: NotificationRelay) -> None:
        self.gate = gate
        self.provider = provider
        self.relay = relay
        self.username = ""
        self.password = ""
        self.errors = FormErrors()
        self.is_loading = False

    def set_username(self, value: str) -> None:
        self.username = value
        if self.errors.username:
            self.errors.clear("username")

    def set_password(self, value: str) -> None:
        self.password = value
        if self.errors.password:
            self.errors.clear("password")

    def validate(self) -> bool:
        result = validate_credentials(self.username, self.password)
        self.errors = result.errors
        return result.is_valid

    def submit(self) -> bool:
        if self.is_loading or not self.validate():
            return False

        self.is_loading = True
        try:
            self.provider.sign_in(
                USERNAME_PROVIDER,
                {"username": self.username, "password": self.password},
            )
        except AuthenticationError:
            logger.info("Login rifiutato per %s", self.username.strip().lower())
            self.relay.failure(LOGIN_FAILED_TITLE, LOGIN_FAILED_DESCRIPTION)
            return False
        finally:
            self.is_loading = False

        self.gate.authenticate(self.username.strip().lower())
        self.password = ""
        self.relay.success(WELCOME_TITLE, WELCOME_DESCRIPTION)
        return True

    def forgot_password(self) -> None:
        self.relay.success("Presto disponibile", "Questa funzione sarà aggiunta a breve.")

    def contact_support(self) -> None:
        self.relay.success("Assistenza", "Contatta il supporto tecnico per ricevere aiuto.")
