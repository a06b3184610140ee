"""
Live query sulle tre collezioni (appuntamenti, pazienti, medici).

Ogni sottoscrizione riceve subito lo snapshot corrente e poi uno snapshot
completo a ogni modifica della collezione. Le versioni sono monotone per
collezione: una sottoscrizione non accetta mai uno snapshot più vecchio di
quello che ha già. Nessun ordine è garantito tra collezioni diverse.

Le mutazioni (solo lo stato dell'appuntamento) sono atomiche: commit e nuovo
snapshot, oppure rollback, `MutationError` e nessuna pubblicazione.
"""
from __future__ import annotations

import enum
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .db import db_session
from .models import AppointmentStatus
from .services import appointments_flat, doctors_flat, patients_flat, set_appointment_status

logger = logging.getLogger(__name__)


class Collection(str, enum.Enum):
    APPOINTMENTS = "appointments"
    PATIENTS = "patients"
    DOCTORS = "doctors"


LOADERS: dict[Collection, Callable[[sessionmaker | None], list[dict]]] = {
    Collection.APPOINTMENTS: appointments_flat,
    Collection.PATIENTS: patients_flat,
    Collection.DOCTORS: doctors_flat,
}


@dataclass(frozen=True)
class Snapshot:
    collection: Collection
    version: int
    records: tuple[dict, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"collection": self.collection.value, "version": self.version, "records": list(self.records)}


class MutationError(Exception):
    """Mutazione fallita: nessun effetto parziale, lo stato precedente resta visibile."""

    def __init__(self, message: str, reason: str = "error") -> None:
        super().__init__(message)
        self.reason = reason


SnapshotCallback = Callable[[Snapshot], None]

_CLOSED = object()


class Subscription:
    """
    Richiesta permanente su una collezione.

    Con callback: ogni snapshot viene passato alla callback.
    Senza callback: gli snapshot si leggono iterando (bloccante, termina con close()).
    """

    def __init__(self, store: "LiveStore", collection: Collection, callback: SnapshotCallback | None = None) -> None:
        self.collection = collection
        self.latest: Snapshot | None = None
        self.closed = False
        self._store = store
        self._callback = callback
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.RLock()

    @property
    def records(self) -> tuple[dict, ...]:
        # prima del primo snapshot: vuoto, mai errore
        latest = self.latest
        return latest.records if latest is not None else ()

    def deliver(self, snapshot: Snapshot) -> bool:
        with self._lock:
            if self.closed:
                return False
            if self.latest is not None and snapshot.version <= self.latest.version:
                return False
            self.latest = snapshot
            if self._callback is None:
                self._queue.put(snapshot)
            else:
                self._callback(snapshot)
            return True

    def get(self, timeout: float | None = None) -> Snapshot | None:
        """Prossimo snapshot in coda (solo senza callback); None se chiusa o timeout."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            self._queue.put(_CLOSED)
            return None
        return item

    def __iter__(self) -> Iterator[Snapshot]:
        while True:
            item = self.get()
            if item is None:
                return
            yield item

    def close(self) -> None:
        with self._lock:
            if self.closed:
                return
            self.closed = True
        self._store._unsubscribe(self)
        self._queue.put(_CLOSED)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class LiveStore:
    """
    Store delle live query.

    Le mutazioni fatte tramite lo store pubblicano subito. Le scritture di altri
    processi (CLI, API, altri writer sullo stesso DB) arrivano con il polling:
    con `poll_interval` un thread in background rilegge le collezioni a
    intervalli e pubblica solo quelle cambiate.
    """

    def __init__(self, factory: sessionmaker | None = None, poll_interval: float | None = None) -> None:
        self.factory = factory
        self._poll_stop = threading.Event()
        self._poller: threading.Thread | None = None
        self._lock = threading.Lock()
        # una lettura alla volta per collezione: versione e contenuto restano coerenti
        self._read_locks = {c: threading.Lock() for c in Collection}
        self._subs: dict[Collection, list[Subscription]] = {c: [] for c in Collection}
        self._versions: dict[Collection, int] = {c: 0 for c in Collection}
        self._current: dict[Collection, Snapshot | None] = {c: None for c in Collection}
        self._mutations: dict[str, Callable[[dict[str, Any]], None]] = {
            "appointments.update": self._mutate_appointment_update,
        }
        if poll_interval:
            self.start_polling(poll_interval)

    # =========================
    # Polling (scritture esterne)
    # =========================
    def start_polling(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("L'intervallo di polling deve essere positivo")
        with self._lock:
            if self._poller is not None and self._poller.is_alive():
                return
            self._poll_stop.clear()
            self._poller = threading.Thread(
                target=self._poll_loop, args=(interval,), name="live-store-poller", daemon=True
            )
            self._poller.start()
        logger.info("Polling delle collezioni ogni %ss", interval)

    def stop_polling(self, timeout: float | None = 5) -> None:
        with self._lock:
            poller, self._poller = self._poller, None
        if poller is None:
            return
        self._poll_stop.set()
        if poller is not threading.current_thread():
            poller.join(timeout)

    @property
    def polling(self) -> bool:
        poller = self._poller
        return poller is not None and poller.is_alive()

    def _poll_loop(self, interval: float) -> None:
        while not self._poll_stop.wait(interval):
            try:
                self.refresh()
            except SQLAlchemyError:
                # DB momentaneamente non disponibile: si riprova al giro successivo
                logger.exception("Polling delle collezioni fallito")

    # =========================
    # Sottoscrizioni
    # =========================
    def subscribe(self, collection: Collection | str, callback: SnapshotCallback | None = None) -> Subscription:
        collection = Collection(collection)
        sub = Subscription(self, collection, callback)
        with self._lock:
            self._subs[collection].append(sub)

        try:
            snap = self._read(collection)
        except Exception:
            self._unsubscribe(sub)
            raise
        try:
            sub.deliver(snap)
        except Exception:
            # la sottoscrizione resta valida: chi l'ha aperta la chiude con close()
            logger.exception("Callback della sottoscrizione su %s fallita", collection.value)
        logger.debug("Sottoscrizione aperta su %s (v%s)", collection.value, snap.version)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subs[sub.collection]
            if sub in subs:
                subs.remove(sub)

    def subscriber_count(self, collection: Collection | str) -> int:
        with self._lock:
            return len(self._subs[Collection(collection)])

    def snapshot(self, collection: Collection | str) -> Snapshot:
        """Snapshot corrente (legge dal DB, pubblica se è cambiato)."""
        return self._read(Collection(collection))

    def refresh(self, collection: Collection | str | None = None) -> None:
        """Rilegge le collezioni e pubblica solo quelle cambiate (scritture esterne allo store)."""
        targets = [Collection(collection)] if collection is not None else list(Collection)
        for c in targets:
            self._read(c)

    def close(self) -> None:
        self.stop_polling()
        with self._lock:
            subs = [s for c in Collection for s in self._subs[c]]
        for s in subs:
            s.close()

    def _read(self, collection: Collection) -> Snapshot:
        with self._read_locks[collection]:
            records = tuple(LOADERS[collection](self.factory))
            with self._lock:
                current = self._current[collection]
                if current is not None and current.records == records:
                    return current
                self._versions[collection] += 1
                snap = Snapshot(collection, self._versions[collection], records)
                self._current[collection] = snap
                subs = list(self._subs[collection])

        logger.info("Snapshot %s v%s (%s record)", collection.value, snap.version, len(records))
        for s in subs:
            try:
                s.deliver(snap)
            except Exception:
                logger.exception("Callback della sottoscrizione su %s fallita", collection.value)
        return snap

    # =========================
    # Mutazioni
    # =========================
    def mutate(self, operation: str, args: dict[str, Any]) -> None:
        handler = self._mutations.get(operation)
        if handler is None:
            raise MutationError(f"Operazione sconosciuta: {operation}", reason="unknown_operation")
        handler(args)

    def _mutate_appointment_update(self, args: dict[str, Any]) -> None:
        try:
            appointment_id = args["id"]
            status = args["status"]
        except KeyError as e:
            raise MutationError(f"Argomento mancante: {e.args[0]}", reason="invalid_args") from e
        self.update_appointment_status(appointment_id, status)

    def update_appointment_status(self, appointment_id: str, status: AppointmentStatus | str) -> None:
        try:
            new_status = AppointmentStatus(status)
        except ValueError as e:
            raise MutationError(f"Stato non valido: {status}", reason="invalid_status") from e

        try:
            with db_session(self.factory) as s:
                app = set_appointment_status(s, appointment_id, new_status)
                if app is None:
                    raise MutationError(f"Appuntamento {appointment_id} non trovato", reason="not_found")
        except SQLAlchemyError as e:
            logger.exception("Aggiornamento stato appuntamento %s fallito", appointment_id)
            raise MutationError("Errore del database", reason="store_error") from e

        logger.info("Appuntamento %s -> %s", appointment_id, new_status.value)
        try:
            self._read(Collection.APPOINTMENTS)
        except SQLAlchemyError:
            # il commit è già avvenuto: lo snapshot arriverà con il prossimo refresh
            logger.exception("Rilettura appuntamenti dopo l'aggiornamento di %s fallita", appointment_id)
