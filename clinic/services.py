from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from .db import Base, db_session, engine
from .models import Appointment, AppointmentStatus, Doctor, Patient


# =========================
# Bootstrap DB
# =========================
def init_db(bind=None) -> None:
    """Crea le tabelle se non esistono."""
    # registra la tabella utenti nel metadata
    from . import auth_models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


# =========================
# Scritture esterne (anagrafiche e agenda)
# =========================
def create_patient(
    name: str,
    phone: str | None = None,
    age: int | None = None,
    phone_number: str | None = None,
    factory: sessionmaker | None = None,
) -> str:
    with db_session(factory) as s:
        p = Patient(name=name.strip(), phone=phone, phone_number=phone_number, age=age)
        s.add(p)
        s.flush()
        return p.id


def create_doctor(
    name: str,
    specialization: str,
    available_days: list[str] | None = None,
    factory: sessionmaker | None = None,
) -> str:
    with db_session(factory) as s:
        d = Doctor(name=name.strip(), specialization=specialization.strip(), available_days=available_days)
        s.add(d)
        s.flush()
        return d.id


def create_appointment(
    patient_id: str,
    doctor_id: str,
    day: date,
    time: str,
    status: AppointmentStatus = AppointmentStatus.PENDING,
    factory: sessionmaker | None = None,
) -> str:
    """Crea un appuntamento copiando i nomi di paziente e medico (denormalizzati)."""
    with db_session(factory) as s:
        patient = s.get(Patient, patient_id)
        doctor = s.get(Doctor, doctor_id)
        if not patient or not doctor:
            raise ValueError("Paziente o medico inesistente.")

        app = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            patient_name=patient.name,
            doctor_name=doctor.name,
            date=day,
            time=time,
            status=AppointmentStatus(status),
        )
        s.add(app)
        s.flush()
        return app.id


def set_appointment_status(s: Session, appointment_id: str, status: AppointmentStatus) -> Appointment | None:
    """Scrive solo il campo stato. None se l'appuntamento non esiste."""
    app = s.get(Appointment, appointment_id)
    if app is None:
        return None
    app.status = status
    return app


# =========================
# Query "flat" (dict serializzabili, niente lazy-load)
# =========================
def appointments_flat(factory: sessionmaker | None = None) -> list[dict]:
    with db_session(factory) as s:
        rows = s.scalars(select(Appointment).order_by(Appointment.date, Appointment.time, Appointment.id)).all()
        return [
            {
                "id": a.id,
                "patient_id": a.patient_id,
                "patient_name": a.patient_name,
                "doctor_id": a.doctor_id,
                "doctor_name": a.doctor_name,
                "date": a.date.isoformat(),
                "time": a.time,
                "status": a.status.value,
            }
            for a in rows
        ]


def patients_flat(factory: sessionmaker | None = None) -> list[dict]:
    with db_session(factory) as s:
        rows = s.scalars(select(Patient).order_by(Patient.name, Patient.id)).all()
        return [
            {"id": p.id, "name": p.name, "phone": p.contact_phone, "age": p.age}
            for p in rows
        ]


def doctors_flat(factory: sessionmaker | None = None) -> list[dict]:
    with db_session(factory) as s:
        rows = s.scalars(select(Doctor).order_by(Doctor.name, Doctor.id)).all()
        return [
            {
                "id": d.id,
                "name": d.name,
                "specialization": d.specialization,
                "available_days": list(d.available_days) if d.available_days is not None else None,
            }
            for d in rows
        ]
