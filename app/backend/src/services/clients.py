"""Service layer functions for managing clients."""

from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

from app.backend.src.models import Client
from app.backend.src.schemas.client import ClientCreate, ClientUpdate
from app.backend.src.services.errors import ConflictError, UnknownClientError
from app.backend.src.services.storage import sanitize_file_name

LOGGER = structlog.get_logger(__name__)


def get_client_or_error(session: Session, name: str) -> Client:
    client = session.query(Client).filter(Client.name == name).one_or_none()
    if client is None:
        raise UnknownClientError(name)
    return client


def list_clients(session: Session) -> list[Client]:
    """Return all clients ordered by name."""

    return session.query(Client).order_by(Client.name.asc()).all()


def create_client(session: Session, payload: ClientCreate) -> Client:
    """Create a client; names are unique, including once sanitized for invoice numbers."""

    name = payload.name.strip()
    if session.query(Client).filter(Client.name == name).one_or_none() is not None:
        raise ConflictError(f"client {name!r} already exists")
    token = sanitize_file_name(name)
    for existing in session.query(Client.name).all():
        if sanitize_file_name(existing.name) == token:
            raise ConflictError(
                f"client {name!r} clashes with {existing.name!r} in invoice numbers"
            )

    client = Client(**payload.model_dump(exclude={"name"}), name=name)
    session.add(client)
    session.commit()
    session.refresh(client)
    LOGGER.info("client_created", client_name=name, hourly_rate=str(client.hourly_rate))
    return client


def update_client(session: Session, name: str, payload: ClientUpdate) -> Client:
    """Apply the fields set on ``payload``. Existing sessions keep their rate snapshot."""

    client = get_client_or_error(session, name)
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(client, field, value)
    session.add(client)
    session.commit()
    session.refresh(client)
    LOGGER.info("client_updated", client_name=name, fields=sorted(changes))
    return client


__all__ = ["create_client", "get_client_or_error", "list_clients", "update_client"]
