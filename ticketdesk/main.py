# Role: FastAPI app bootstrap. Loads environment config early, registers routers, and exposes health/docs endpoints.

from fastapi import FastAPI

import ticketdesk.config
ticketdesk.config.load_env()

from ticketdesk.api.actions import router as actions_router
from ticketdesk.api.chat import router as chat_router
from ticketdesk.api.state import router as state_router

app = FastAPI(title="Ticket Desk API", version="0.1.0")
app.include_router(chat_router)
app.include_router(actions_router)
app.include_router(state_router)


@app.get("/")
def root() -> dict:
    # Role: quick discoverability for clients (where are docs/health).
    return {
        "message": "Ticket Desk API is running",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
