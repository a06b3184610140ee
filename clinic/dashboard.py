from __future__ import annotations

from dataclasses import asdict, dataclass

from .live import Collection, LiveStore, Snapshot, SnapshotCallback
from .models import AppointmentStatus


@dataclass(frozen=True)
class DashboardStats:
    total_appointments: int = 0
    completed_appointments: int = 0
    total_patients: int = 0
    total_doctors: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def compute_stats(
    appointments: tuple[dict, ...] | list[dict],
    patients: tuple[dict, ...] | list[dict],
    doctors: tuple[dict, ...] | list[dict],
) -> DashboardStats:
    """Conteggi sempre derivati dagli snapshot correnti, mai memorizzati."""
    return DashboardStats(
        total_appointments=len(appointments),
        completed_appointments=sum(1 for a in appointments if a["status"] == AppointmentStatus.COMPLETED.value),
        total_patients=len(patients),
        total_doctors=len(doctors),
    )


class DashboardView:
    """
    Vista della dashboard: tre sottoscrizioni indipendenti.
    close() le chiude tutte (logout / uscita dalla pagina).
    """

    def __init__(self, store: LiveStore, on_change: SnapshotCallback | None = None) -> None:
        self.store = store
        self._on_change = on_change
        self._subs = {c: store.subscribe(c, self._handle) for c in Collection}

    def _handle(self, snapshot: Snapshot) -> None:
        if self._on_change is not None:
            self._on_change(snapshot)

    def records(self, collection: Collection | str) -> tuple[dict, ...]:
        return self._subs[Collection(collection)].records

    @property
    def appointments(self) -> tuple[dict, ...]:
        return self.records(Collection.APPOINTMENTS)

    @property
    def patients(self) -> tuple[dict, ...]:
        return self.records(Collection.PATIENTS)

    @property
    def doctors(self) -> tuple[dict, ...]:
        return self.records(Collection.DOCTORS)

    def stats(self) -> DashboardStats:
        return compute_stats(self.appointments, self.patients, self.doctors)

    @property
    def closed(self) -> bool:
        return all(s.closed for s in self._subs.values())

    def close(self) -> None:
        for s in self._subs.values():
            s.close()
