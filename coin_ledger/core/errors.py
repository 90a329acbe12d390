from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    DATABASE = "database"
    INVALID_ACCOUNT = "invalid_account"
    NOT_ENOUGH_MONEY = "not_enough_money"
    TRANSFER_ALREADY_COMPLETE = "transfer_already_complete"
    INVALID_TRANSFER = "invalid_transfer"


class LedgerError(Exception):
    """Base class for every error raised by the ledger services.

    Errors compare by kind and payload, so a freshly built
    ``InvalidAccountError(7)`` equals the one raised by the engine.
    """

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def _payload(self) -> tuple[Any, ...]:
        return ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LedgerError):
            return NotImplemented
        return self.kind == other.kind and self._payload() == other._payload()

    def __hash__(self) -> int:
        return hash((self.kind, self._payload()))

    def __str__(self) -> str:
        return self.message


class DatabaseError(LedgerError):
    """Wraps any failure coming from the store. The driver error is kept in ``cause``."""

    kind = ErrorKind.DATABASE

    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__("error occurred when trying to work with database")
        self.cause = cause
        self.__cause__ = cause


class InvalidAccountError(LedgerError):
    """Raised when a referenced account does not exist."""

    kind = ErrorKind.INVALID_ACCOUNT

    def __init__(self, account_number: int) -> None:
        super().__init__(f"account with number [{account_number}] not found")
        self.account_number = account_number

    def _payload(self) -> tuple[Any, ...]:
        return (self.account_number,)


class NotEnoughMoneyError(LedgerError):
    """Raised when the source balance cannot cover the transfer."""

    kind = ErrorKind.NOT_ENOUGH_MONEY

    def __init__(self) -> None:
        super().__init__("source account does not have enough money")


class TransferAlreadyCompleteError(LedgerError):
    """Raised when a transfer id has already been applied."""

    kind = ErrorKind.TRANSFER_ALREADY_COMPLETE

    def __init__(self) -> None:
        super().__init__("transfer already complete")


class InvalidTransferError(LedgerError):
    """Raised for requests that can never succeed (zero amount, self transfer)."""

    kind = ErrorKind.INVALID_TRANSFER

    def __init__(self, reason: str) -> None:
        super().__init__(reason)


class TransactionTimeoutError(Exception):
    """Session deadline passed. Surfaces wrapped in ``DatabaseError``."""
