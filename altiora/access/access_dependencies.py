"""
FastAPI dependencies wiring the access-control components together.

Options live on app.state and are handed to each component explicitly.
"""

from fastapi import Depends, Request

from altiora.access.access_models import AccessControlOptions
from altiora.access.access_services import AccessControlService
from altiora.access.access_store import AccessListStore
from altiora.access.registration_gate import RegistrationGate
from altiora.core.db_manager import get_db


def get_access_options(request: Request) -> AccessControlOptions:
    return request.app.state.access_options


def get_access_store() -> AccessListStore:
    return AccessListStore(get_db())


def get_access_service(
    store: AccessListStore = Depends(get_access_store),
    options: AccessControlOptions = Depends(get_access_options),
) -> AccessControlService:
    return AccessControlService(store, options)


def get_registration_gate(
    store: AccessListStore = Depends(get_access_store),
    options: AccessControlOptions = Depends(get_access_options),
) -> RegistrationGate:
    return RegistrationGate(store, options)
