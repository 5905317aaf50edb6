"""Entrypoint for the FastAPI application."""

import os

from dotenv import load_dotenv

# Local development reads backend/.env; deployed environments inject variables.
env_path = os.path.join(os.path.dirname(__file__), "../.env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=os.path.abspath(env_path))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import clients, expenses, health, invoices, sessions
from .core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Worklog Billing", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/api")
    app.include_router(clients.router, prefix="/api")
    app.include_router(sessions.router, prefix="/api")
    app.include_router(expenses.router, prefix="/api")
    app.include_router(invoices.router, prefix="/api")

    return app


app = create_app()
