"""
Clinic dashboard.

Struttura:
- config.py        : variabili d'ambiente (.env) e logging
- db.py            : engine e sessioni SQLAlchemy
- models.py        : modelli ORM (pazienti, medici, appuntamenti) e enum di stato
- services.py      : query "flat" e scritture esterne
- live.py          : live query: snapshot completi a ogni modifica + mutazioni
- dashboard.py     : vista composta (tre sottoscrizioni) e conteggi aggregati
- status.py        : macchina a stati dell'appuntamento
- notifications.py : relay delle notifiche (toast)
- validation.py    : validazione credenziali
- session.py       : session gate e form di login
- api_main.py      : API REST/WebSocket (FastAPI)
- cli.py           : CLI di servizio
"""
