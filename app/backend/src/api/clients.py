"""Client management endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.models import Client
from app.backend.src.schemas.client import ClientCreate, ClientRead, ClientUpdate
from app.backend.src.services import clients as client_service
from app.backend.src.services.errors import BillingError

from .errors import http_error

router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> Client:
    try:
        return client_service.create_client(session, payload)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.get("", response_model=list[ClientRead])
def list_clients(session: Annotated[Session, Depends(get_session_dependency)]) -> list[Client]:
    return client_service.list_clients(session)


@router.get("/{name}", response_model=ClientRead)
def get_client(name: str, session: Annotated[Session, Depends(get_session_dependency)]) -> Client:
    try:
        return client_service.get_client_or_error(session, name)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.patch("/{name}", response_model=ClientRead)
def update_client(
    name: str,
    payload: ClientUpdate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> Client:
    """Update rate, retainer or billing profile fields."""

    try:
        return client_service.update_client(session, name, payload)
    except BillingError as exc:
        raise http_error(exc) from exc
