from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from .db import db_session
from .models import Appointment, AppointmentStatus, Doctor, Patient


def seed_base(factory: sessionmaker | None = None, today: date | None = None) -> None:
    """
    Popola dati minimi (idempotente):
    - medici
    - pazienti (uno con il campo telefono storico `phone_number`)
    - qualche appuntamento
    """
    today = today or date.today()

    with db_session(factory) as s:
        # Medici
        medici = [
            ("Mario Rossi", "Medicina Generale", ["monday", "wednesday", "friday"]),
            ("Laura Bianchi", "Cardiologia", ["tuesday", "thursday"]),
            ("Paolo Verdi", "Dermatologia", None),
        ]
        for name, spec, days in medici:
            exists = s.execute(
                select(Doctor).where(Doctor.name == name, Doctor.specialization == spec)
            ).scalar_one_or_none()
            if exists is None:
                s.add(Doctor(name=name, specialization=spec, available_days=days))

        # Pazienti
        pazienti = [
            ("Giulia Esposito", {"phone": "+39 333 1234567"}, 34),
            ("Luca Romano", {"phone_number": "+39 347 7654321"}, 58),
            ("Anna Colombo", {"phone": "+39 320 1112223"}, 27),
        ]
        for name, contact, age in pazienti:
            if s.execute(select(Patient).where(Patient.name == name)).scalar_one_or_none() is None:
                s.add(Patient(name=name, age=age, **contact))

        s.flush()

        if s.execute(select(Appointment.id).limit(1)).first() is not None:
            return

        def doctor(name: str) -> Doctor:
            return s.execute(select(Doctor).where(Doctor.name == name)).scalar_one()

        def patient(name: str) -> Patient:
            return s.execute(select(Patient).where(Patient.name == name)).scalar_one()

        agenda = [
            ("Giulia Esposito", "Mario Rossi", 0, "09:00", AppointmentStatus.PENDING),
            ("Luca Romano", "Laura Bianchi", 1, "10:30", AppointmentStatus.PENDING),
            ("Anna Colombo", "Paolo Verdi", -1, "15:00", AppointmentStatus.COMPLETED),
        ]
        for p_name, d_name, offset, hhmm, status in agenda:
            p, d = patient(p_name), doctor(d_name)
            s.add(
                Appointment(
                    patient_id=p.id,
                    doctor_id=d.id,
                    patient_name=p.name,
                    doctor_name=d.name,
                    date=today + timedelta(days=offset),
                    time=hhmm,
                    status=status,
                )
            )
