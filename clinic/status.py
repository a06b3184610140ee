"""
Macchina a stati dell'appuntamento.

Grafo completo: da qualunque stato si può tornare a uno qualsiasi dei tre
(la UI permette di riselezionare ogni valore). Nessun retry automatico.
"""
from __future__ import annotations

import logging

from .live import LiveStore, MutationError
from .models import AppointmentStatus
from .notifications import NotificationRelay

logger = logging.getLogger(__name__)

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    s: frozenset(AppointmentStatus) for s in AppointmentStatus
}

STATUS_LABELS = {
    AppointmentStatus.PENDING: "In attesa",
    AppointmentStatus.COMPLETED: "Completato",
    AppointmentStatus.CANCELLED: "Annullato",
}

UPDATED_TITLE = "Appuntamento aggiornato"
UPDATED_DESCRIPTION = "Stato dell'appuntamento aggiornato."
FAILED_TITLE = "Errore"
FAILED_DESCRIPTION = "Impossibile aggiornare lo stato dell'appuntamento."


def parse_status(value: AppointmentStatus | str) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise ValueError(f"Stato non valido: {value!r}") from None


def can_transition(current: AppointmentStatus | str, target: AppointmentStatus | str) -> bool:
    return parse_status(target) in TRANSITIONS[parse_status(current)]


def change_appointment_status(
    store: LiveStore,
    relay: NotificationRelay,
    appointment_id: str,
    status: AppointmentStatus | str,
) -> bool:
    """
    Use case: cambiare lo stato di un appuntamento.
    - successo: una notifica positiva, il prossimo snapshot riporta il nuovo stato
    - errore: una notifica negativa, lo stato mostrato resta invariato
    """
    try:
        store.mutate("appointments.update", {"id": appointment_id, "status": status})
    except MutationError as e:
        logger.warning("Cambio stato %s -> %s fallito (%s)", appointment_id, status, e.reason)
        relay.failure(FAILED_TITLE, FAILED_DESCRIPTION)
        return False

    relay.success(UPDATED_TITLE, UPDATED_DESCRIPTION)
    return True
