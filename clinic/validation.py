"""
Validazione delle credenziali prima dell'invio.

Regole (indipendenti, possono fallire entrambe):
- username: obbligatorio, almeno 3 caratteri (spazi esclusi)
- password: obbligatoria, almeno 6 caratteri
"""
from __future__ import annotations

from dataclasses import dataclass, field

USERNAME_MIN_LENGTH = 3
PASSWORD_MIN_LENGTH = 6

USERNAME_REQUIRED = "Inserisci lo username."
USERNAME_TOO_SHORT = f"Lo username deve avere almeno {USERNAME_MIN_LENGTH} caratteri."
PASSWORD_REQUIRED = "Inserisci la password."
PASSWORD_TOO_SHORT = f"La password deve avere almeno {PASSWORD_MIN_LENGTH} caratteri."

FIELDS = ("username", "password")


@dataclass
class FormErrors:
    username: str = ""
    password: str = ""

    def has(self, name: str) -> bool:
        return bool(getattr(self, name))

    def clear(self, name: str) -> None:
        """Azzera l'errore di un solo campo (reset alla modifica, non ri-validazione)."""
        if name not in FIELDS:
            raise ValueError(f"Campo sconosciuto: {name}")
        setattr(self, name, "")

    def any(self) -> bool:
        return any(self.has(name) for name in FIELDS)


@dataclass(frozen=True)
class ValidationResult:
    errors: FormErrors = field(default_factory=FormErrors)

    @property
    def is_valid(self) -> bool:
        return not self.errors.any()

    @property
    def username_error(self) -> str:
        return self.errors.username

    @property
    def password_error(self) -> str:
        return self.errors.password


def validate_username(username: str) -> str:
    value = username.strip()
    if not value:
        return USERNAME_REQUIRED
    if len(value) < USERNAME_MIN_LENGTH:
        return USERNAME_TOO_SHORT
    return ""


def validate_password(password: str) -> str:
    if not password:
        return PASSWORD_REQUIRED
    if len(password) < PASSWORD_MIN_LENGTH:
        return PASSWORD_TOO_SHORT
    return ""


def validate_credentials(username: str, password: str) -> ValidationResult:
    return ValidationResult(
        FormErrors(username=validate_username(username), password=validate_password(password))
    )
