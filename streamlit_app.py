from __future__ import annotations

from datetime import date

import streamlit as st

from clinic.auth_provider import build_provider
from clinic.config import AUTH_BACKEND, LIVE_POLL_SECONDS, configure_logging
from clinic.dashboard import DashboardView
from clinic.live import LiveStore
from clinic.models import AppointmentStatus
from clinic.notifications import NotificationRelay, Severity
from clinic.seed import seed_base
from clinic.services import init_db
from clinic.session import SessionGate, SignInForm
from clinic.status import STATUS_LABELS, change_appointment_status

st.set_page_config(page_title="Clinic Dashboard", layout="wide")

configure_logging()

# ogni quanti secondi ridisegnare la dashboard con gli ultimi snapshot ricevuti
LIVE_RERUN_SECONDS = 3

WEEKDAYS = {
    "monday": "Lunedì",
    "tuesday": "Martedì",
    "wednesday": "Mercoledì",
    "thursday": "Giovedì",
    "friday": "Venerdì",
    "saturday": "Sabato",
    "sunday": "Domenica",
}



# Toast

class StreamlitToastSink:
    def announce(self, title: str, description: str, severity: Severity) -> None:
        icon = "⚠️" if severity == Severity.DESTRUCTIVE else "✅"
        st.toast(f"**{title}**  \n{description}", icon=icon)



# Risorse condivise e stato di sessione

@st.cache_resource
def get_store() -> LiveStore:
    init_db()
    seed_base()
    # il polling porta nella dashboard anche le scritture di CLI, API e altri processi
    return LiveStore(poll_interval=LIVE_POLL_SECONDS or None)


store = get_store()
relay = NotificationRelay(StreamlitToastSink())

if "gate" not in st.session_state:
    st.session_state["gate"] = SessionGate()
if "login_form" not in st.session_state:
    st.session_state["login_form"] = SignInForm(st.session_state["gate"], build_provider(AUTH_BACKEND), relay)

gate: SessionGate = st.session_state["gate"]
form: SignInForm = st.session_state["login_form"]
form.relay = relay  # il sink va legato al run corrente


def get_view() -> DashboardView:
    view = st.session_state.get("dashboard_view")
    if view is None or view.closed:
        view = DashboardView(store)
        st.session_state["dashboard_view"] = view
    return view


def do_logout() -> None:
    view = st.session_state.pop("dashboard_view", None)
    if view is not None:
        view.close()
    gate.sign_out()
    st.session_state.pop("login_form", None)
    st.session_state.pop("login_pass", None)
    st.rerun()



# Login

def render_sign_in() -> None:
    _, col, _ = st.columns([1, 1.2, 1])
    with col:
        st.title("Gestione Clinica")
        st.caption("Accedi per entrare nel sistema.")

        st.text_input(
            "Username",
            key="login_user",
            on_change=lambda: form.set_username(st.session_state["login_user"]),
            disabled=form.is_loading,
        )
        if form.errors.username:
            st.error(form.errors.username)

        st.text_input(
            "Password",
            type="password",
            key="login_pass",
            on_change=lambda: form.set_password(st.session_state["login_pass"]),
            disabled=form.is_loading,
        )
        if form.errors.password:
            st.error(form.errors.password)

        if st.button("Accedi", key="login_btn", type="primary", use_container_width=True):
            form.set_username(st.session_state.get("login_user", ""))
            form.set_password(st.session_state.get("login_pass", ""))
            if form.submit() or form.errors.any():
                st.rerun()

        c1, c2 = st.columns(2)
        if c1.button("Password dimenticata?", key="forgot_btn"):
            form.forgot_password()
        if c2.button("Serve aiuto?", key="help_btn"):
            form.contact_support()



# Dashboard

def _on_status_change(appointment_id: str, key: str) -> None:
    change_appointment_status(store, relay, appointment_id, st.session_state[key])


def render_appointments(view: DashboardView) -> None:
    st.subheader("Appuntamenti")
    if not view.appointments:
        st.info("Nessun appuntamento.")
        return

    options = [s.value for s in AppointmentStatus]
    for a in view.appointments:
        key = f"status_{a['id']}"
        # il widget mostra sempre lo stato dell'ultimo snapshot
        st.session_state[key] = a["status"]

        with st.container(border=True):
            c1, c2 = st.columns([3, 1])
            c1.markdown(f"**{a['patient_name']}**")
            c1.caption(f"{date.fromisoformat(a['date']).strftime('%d/%m/%Y')} - {a['time']} | Medico: {a['doctor_name']}")
            c2.selectbox(
                "Stato",
                options=options,
                format_func=lambda v: STATUS_LABELS[AppointmentStatus(v)],
                key=key,
                on_change=_on_status_change,
                args=(a["id"], key),
                label_visibility="collapsed",
            )


def render_patients(view: DashboardView) -> None:
    st.subheader("Pazienti")
    if not view.patients:
        st.info("Nessun paziente presente.")
        return

    for p in view.patients:
        age = f"{p['age']} anni" if p["age"] is not None else "-"
        st.write(f"- **{p['name']}** | Telefono: {p['phone'] or '-'} | Età: {age}")


def render_doctors(view: DashboardView) -> None:
    st.subheader("Medici")
    if not view.doctors:
        st.info("Nessun medico presente.")
        return

    for d in view.doctors:
        days = ", ".join(WEEKDAYS.get(x, x) for x in (d["available_days"] or [])) or "-"
        st.write(f"- **Dr. {d['name']}** | Specializzazione: {d['specialization']} | Giorni disponibili: {days}")


def render_reports() -> None:
    st.subheader("Report e statistiche")
    c1, c2 = st.columns(2)
    for col, title in zip(
        (c1, c2, c1, c2),
        ("Appuntamenti settimanali", "Pazienti per età", "Statistiche medici", "Soddisfazione pazienti"),
    ):
        with col, st.container(border=True):
            st.markdown(f"**{title}**")
            st.caption("[grafico non ancora disponibile]")


@st.fragment(run_every=LIVE_RERUN_SECONDS)
def render_live(view: DashboardView) -> None:
    stats = view.stats()
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Appuntamenti totali", stats.total_appointments)
    m2.metric("Appuntamenti completati", stats.completed_appointments)
    m3.metric("Pazienti", stats.total_patients)
    m4.metric("Medici", stats.total_doctors)

    tab1, tab2, tab3, tab4 = st.tabs(["Appuntamenti", "Pazienti", "Medici", "Report"])
    with tab1:
        render_appointments(view)
    with tab2:
        render_patients(view)
    with tab3:
        render_doctors(view)
    with tab4:
        render_reports()


def render_dashboard() -> None:
    with st.sidebar:
        st.header("Accesso")
        st.write(f"Utente: **{gate.username}**")
        if st.button("Logout", key="logout_btn"):
            do_logout()

    st.title("Gestione Clinica")
    render_live(get_view())



# UI

gate.render(render_dashboard, render_sign_in)
