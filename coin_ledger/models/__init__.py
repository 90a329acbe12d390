from .db import Account as AccountModel
from .db import Transfer as TransferModel
from .schemas import (
    DIRECTION_INCOMING,
    DIRECTION_OUTGOING,
    AccountListResponse,
    AccountResponse,
    TransferListResponse,
    TransferRequest,
    TransferResponse,
)

__all__ = [
    "DIRECTION_INCOMING",
    "DIRECTION_OUTGOING",
    "AccountListResponse",
    "AccountResponse",
    "TransferListResponse",
    "TransferRequest",
    "TransferResponse",
    "AccountModel",
    "TransferModel",
]
