from fastapi import Depends

from ..services import LedgerService
from .db import SessionFactory, get_session_factory

def get_ledger_service(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> LedgerService:
    return LedgerService(session_factory)
