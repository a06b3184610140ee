from __future__ import annotations

import argparse

from .auth_service import create_user
from .config import configure_logging
from .dashboard import compute_stats
from .db import engine
from .live import Collection, LiveStore
from .models import AppointmentStatus
from .notifications import NotificationRelay, PrintSink
from .seed import seed_base
from .services import init_db
from .status import STATUS_LABELS, change_appointment_status


def build_store() -> LiveStore:
    return LiveStore()


def cmd_init(args: argparse.Namespace) -> None:
    seed_base(factory=args.store.factory)
    print("DB inizializzato e seed completato.")


def cmd_db_path(args: argparse.Namespace) -> None:
    print("ENGINE URL:", engine.url)
    print("DB FILE   :", engine.url.database)


def cmd_list(args: argparse.Namespace) -> None:
    records = args.store.snapshot(args.entity).records
    if not records:
        print("Nessun elemento.")
        return

    if args.entity == Collection.APPOINTMENTS.value:
        for a in records:
            label = STATUS_LABELS[AppointmentStatus(a["status"])]
            print(f"{a['id']} | {a['date']} {a['time']} | {a['patient_name']} | dr. {a['doctor_name']} | {label}")
    elif args.entity == Collection.PATIENTS.value:
        for p in records:
            print(f"{p['id']} | {p['name']} | tel. {p['phone'] or '-'} | {p['age'] if p['age'] is not None else '-'} anni")
    elif args.entity == Collection.DOCTORS.value:
        for d in records:
            days = ", ".join(d["available_days"] or []) or "-"
            print(f"{d['id']} | dr. {d['name']} | {d['specialization']} | giorni: {days}")


def cmd_stats(args: argparse.Namespace) -> None:
    store = args.store
    stats = compute_stats(
        store.snapshot(Collection.APPOINTMENTS).records,
        store.snapshot(Collection.PATIENTS).records,
        store.snapshot(Collection.DOCTORS).records,
    )
    print(f"Appuntamenti totali : {stats.total_appointments}")
    print(f"Completati          : {stats.completed_appointments}")
    print(f"Pazienti            : {stats.total_patients}")
    print(f"Medici              : {stats.total_doctors}")


def cmd_set_status(args: argparse.Namespace) -> None:
    relay = NotificationRelay(PrintSink())
    ok = change_appointment_status(args.store, relay, args.appointment_id, args.status)
    if not ok:
        raise SystemExit(1)


def cmd_add_user(args: argparse.Namespace) -> None:
    try:
        user_id = create_user(args.username, args.password, factory=args.store.factory)
    except ValueError as e:
        print(f"Errore: {e}")
        raise SystemExit(2)
    print(f"Utente creato: {user_id}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="clinic-cli", description="CLI Clinic Dashboard")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Crea DB e carica seed")
    p_init.set_defaults(func=cmd_init)

    p_path = sub.add_parser("db-path", help="Mostra il DB in uso")
    p_path.set_defaults(func=cmd_db_path)

    p_list = sub.add_parser("list", help="Lista entità")
    p_list.add_argument("entity", choices=[c.value for c in Collection])
    p_list.set_defaults(func=cmd_list)

    p_stats = sub.add_parser("stats", help="Conteggi della dashboard")
    p_stats.set_defaults(func=cmd_stats)

    p_status = sub.add_parser("set-status", help="Cambia lo stato di un appuntamento")
    p_status.add_argument("appointment_id")
    p_status.add_argument("status", choices=[s.value for s in AppointmentStatus])
    p_status.set_defaults(func=cmd_set_status)

    p_user = sub.add_parser("add-user", help="Crea utente per il login")
    p_user.add_argument("username")
    p_user.add_argument("password")
    p_user.set_defaults(func=cmd_add_user)

    return p


def main(argv: list[str] | None = None) -> None:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    args.store = build_store()
    init_db()  # garantisce tabelle
    args.func(args)


if __name__ == "__main__":
    main()
