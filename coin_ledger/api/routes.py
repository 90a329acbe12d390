from fastapi import APIRouter, Depends, Path

from ..core.dependencies import get_ledger_service
from ..models import (
    AccountListResponse,
    TransferListResponse,
    TransferRequest,
)
from ..models.schemas import MAX_INT64
from ..services import LedgerService


router = APIRouter(prefix="/api/v1/accounts", tags=["accounts"])

@router.get("", response_model=AccountListResponse)
def list_accounts(
    service: LedgerService = Depends(get_ledger_service),
) -> AccountListResponse:
    return AccountListResponse(accounts=service.list_accounts())

@router.get(
    "/{account_number}/transfers",
    response_model=TransferListResponse,
    response_model_exclude_none=True,
)
def list_transfers(
    account_number: int = Path(..., ge=0, le=MAX_INT64),
    service: LedgerService = Depends(get_ledger_service),
) -> TransferListResponse:
    return TransferListResponse(transfers=service.list_transfers(account_number))

transfer_router = APIRouter(prefix="/api/v1/transfers", tags=["transfers"])

@transfer_router.post("", response_model=dict)
def create_transfer(
    payload: TransferRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> dict:
    service.transfer_money(payload.id, payload.source, payload.dest, payload.amount)
    return {}

__all__ = ["router", "transfer_router"]
