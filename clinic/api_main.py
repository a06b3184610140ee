from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, WebSocket, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlalchemy.orm import sessionmaker

from .auth_models import User
from .auth_security import issue_token, token_user_id
from .auth_service import authenticate, create_user, get_user_by_id
from .config import LIVE_POLL_SECONDS, SEED_ON_STARTUP, configure_logging
from .dashboard import compute_stats
from .live import Collection, LiveStore, MutationError, Snapshot
from .models import AppointmentStatus
from .seed import seed_base
from .services import init_db

configure_logging()
logger = logging.getLogger(__name__)

# OAuth2 Bearer (Authorization: Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

app = FastAPI(title="Clinic Dashboard API", version="1.0.0")

_store = LiveStore()


def get_store() -> LiveStore:
    return _store


def get_factory() -> sessionmaker | None:
    # None => SessionLocal (DATABASE_URL)
    return None



# Startup

@app.on_event("startup")
def startup() -> None:
    init_db()
    if SEED_ON_STARTUP:
        seed_base()
    _store.refresh()
    if LIVE_POLL_SECONDS > 0:
        _store.start_polling(LIVE_POLL_SECONDS)


@app.on_event("shutdown")
def shutdown() -> None:
    _store.close()



# Schemi

class RegisterIn(BaseModel):
    username: str
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MeOut(BaseModel):
    id: str
    username: str
    is_active: bool


class StatusIn(BaseModel):
    status: AppointmentStatus



# Dipendenze auth

def get_current_user(token: str = Depends(oauth2_scheme), factory=Depends(get_factory)) -> User:
    user_id = token_user_id(token)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token non valido")

    u = get_user_by_id(user_id, factory=factory)
    if not u or not u.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Utente non valido")
    return u



# AUTH endpoints

@app.post("/api/auth/register", response_model=dict)
def register(payload: RegisterIn, factory=Depends(get_factory)) -> dict[str, Any]:
    try:
        user_id = create_user(payload.username, payload.password, factory=factory)
        return {"ok": True, "user_id": user_id}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/auth/login", response_model=TokenOut)
def login(form: OAuth2PasswordRequestForm = Depends(), factory=Depends(get_factory)) -> TokenOut:
    u = authenticate(form.username, form.password, factory=factory)
    if not u:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenziali non valide")

    return TokenOut(access_token=issue_token(u.id, u.username))


@app.get("/api/me", response_model=MeOut)
def me(user: User = Depends(get_current_user)) -> MeOut:
    return MeOut(id=user.id, username=user.username, is_active=user.is_active)



# Collezioni (JWT)

@app.get("/api/appointments")
def api_appointments(user: User = Depends(get_current_user), store: LiveStore = Depends(get_store)) -> list[dict]:
    return list(store.snapshot(Collection.APPOINTMENTS).records)


@app.get("/api/patients")
def api_patients(user: User = Depends(get_current_user), store: LiveStore = Depends(get_store)) -> list[dict]:
    return list(store.snapshot(Collection.PATIENTS).records)


@app.get("/api/doctors")
def api_doctors(user: User = Depends(get_current_user), store: LiveStore = Depends(get_store)) -> list[dict]:
    return list(store.snapshot(Collection.DOCTORS).records)


@app.get("/api/stats")
def api_stats(user: User = Depends(get_current_user), store: LiveStore = Depends(get_store)) -> dict[str, int]:
    stats = compute_stats(
        store.snapshot(Collection.APPOINTMENTS).records,
        store.snapshot(Collection.PATIENTS).records,
        store.snapshot(Collection.DOCTORS).records,
    )
    return stats.to_dict()


@app.patch("/api/appointments/{appointment_id}/status")
def api_update_status(
    appointment_id: str,
    payload: StatusIn,
    user: User = Depends(get_current_user),
    store: LiveStore = Depends(get_store),
) -> dict[str, Any]:
    try:
        store.mutate("appointments.update", {"id": appointment_id, "status": payload.status})
    except MutationError as e:
        if e.reason == "not_found":
            raise HTTPException(status_code=404, detail="Appuntamento non trovato")
        raise HTTPException(status_code=503, detail="Aggiornamento non riuscito")

    return {"ok": True, "id": appointment_id, "status": payload.status.value}



# Live query (WebSocket): uno snapshot completo per ogni modifica

@app.websocket("/api/live/{collection}")
async def live_collection(
    websocket: WebSocket,
    collection: str,
    token: str = "",
    store: LiveStore = Depends(get_store),
    factory=Depends(get_factory),
) -> None:
    await websocket.accept()

    # le letture sul DB girano nel threadpool, mai sul loop
    user_id = token_user_id(token)
    user = await run_in_threadpool(get_user_by_id, user_id, factory=factory) if user_id else None
    if user is None or not user.is_active:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        target = Collection(collection)
    except ValueError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    loop = asyncio.get_running_loop()
    pending: asyncio.Queue[Snapshot] = asyncio.Queue()

    def push(snapshot: Snapshot) -> None:
        # arriva da un altro thread (threadpool, poller, endpoint sync)
        loop.call_soon_threadsafe(pending.put_nowait, snapshot)

    sub = await run_in_threadpool(store.subscribe, target, push)
    logger.info("Live %s aperto", target.value)
    receiver = None
    try:
        receiver = asyncio.ensure_future(websocket.receive())
        while True:
            getter = asyncio.ensure_future(pending.get())
            done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if getter in done:
                await websocket.send_json(getter.result().to_dict())
            else:
                getter.cancel()
            if receiver in done:
                # i messaggi del client sono ignorati, conta solo la disconnessione
                if receiver.result()["type"] == "websocket.disconnect":
                    break
                receiver = asyncio.ensure_future(websocket.receive())
    finally:
        if receiver is not None:
            receiver.cancel()
        sub.close()
        logger.info("Live %s chiuso", target.value)
