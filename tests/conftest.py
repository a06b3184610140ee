import os
import time
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('SEED_ON_STARTUP', '0')

from clinic.db import Base  # noqa: E402
from clinic.live import LiveStore  # noqa: E402
from clinic.models import AppointmentStatus  # noqa: E402
from clinic.services import create_appointment, create_doctor, create_patient, init_db  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)


@pytest.fixture
def store(factory):
    store = LiveStore(factory)
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def clinic_data(factory):
    """Due medici, due pazienti (uno con il campo telefono storico), tre appuntamenti."""
    rossi = create_doctor('Mario Rossi', 'Medicina Generale', ['monday', 'friday'], factory=factory)
    bianchi = create_doctor('Laura Bianchi', 'Cardiologia', None, factory=factory)
    giulia = create_patient('Giulia Esposito', phone='+39 333 1234567', age=34, factory=factory)
    luca = create_patient('Luca Romano', phone_number='+39 347 7654321', age=58, factory=factory)

    first = create_appointment(giulia, rossi, date(2026, 3, 2), '09:00', factory=factory)
    second = create_appointment(luca, bianchi, date(2026, 3, 2), '10:30', factory=factory)
    third = create_appointment(
        giulia, bianchi, date(2026, 3, 3), '15:00', status=AppointmentStatus.COMPLETED, factory=factory
    )

    return {
        'doctors': {'rossi': rossi, 'bianchi': bianchi},
        'patients': {'giulia': giulia, 'luca': luca},
        'appointments': {'first': first, 'second': second, 'third': third},
    }


@pytest.fixture
def file_engines(tmp_path):
    """Due engine indipendenti sullo stesso file SQLite, come due processi diversi."""
    url = f"sqlite:///{tmp_path / 'clinic.sqlite'}"
    engines = [create_engine(url, connect_args={'check_same_thread': False}, future=True) for _ in range(2)]
    init_db(bind=engines[0])
    try:
        yield engines
    finally:
        for engine in engines:
            engine.dispose()


@pytest.fixture
def file_factories(file_engines):
    return [
        sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)
        for engine in file_engines
    ]


@pytest.fixture
def wait_until():
    """Attende (con timeout) una condizione che arriva da un altro thread."""

    def wait(predicate, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.02)
        return predicate()

    return wait
