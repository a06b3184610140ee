from __future__ import annotations

import datetime as dt
import enum
import uuid

from sqlalchemy import JSON, Date, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def new_uuid() -> str:
    return str(uuid.uuid4())


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Doctor(Base):
    __tablename__ = "doctors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    specialization: Mapped[str] = mapped_column(String(120), nullable=False)
    # es. ["monday", "wednesday"]; NULL se non impostato
    available_days: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    appointments: Mapped[list["Appointment"]] = relationship(back_populates="doctor")

    def __repr__(self) -> str:
        return f"Doctor({self.name}, {self.specialization})"


class Patient(Base):
    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    # due nomi storici per lo stesso dato: vanno accettati entrambi
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)

    appointments: Mapped[list["Appointment"]] = relationship(back_populates="patient")

    @property
    def contact_phone(self) -> str | None:
        return self.phone or self.phone_number

    def __repr__(self) -> str:
        return f"Patient({self.name})"


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    patient_id: Mapped[str] = mapped_column(ForeignKey("patients.id"), nullable=False)
    doctor_id: Mapped[str] = mapped_column(ForeignKey("doctors.id"), nullable=False)

    # denormalizzati: la dashboard non fa join
    patient_name: Mapped[str] = mapped_column(String(120), nullable=False)
    doctor_name: Mapped[str] = mapped_column(String(120), nullable=False)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM

    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, values_callable=lambda e: [m.value for m in e]),
        default=AppointmentStatus.PENDING,
        nullable=False,
    )

    patient: Mapped["Patient"] = relationship(back_populates="appointments")
    doctor: Mapped["Doctor"] = relationship(back_populates="appointments")
