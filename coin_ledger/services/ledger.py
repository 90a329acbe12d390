from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from ..core.db import StorageSession
from ..core.errors import (
    DatabaseError,
    InvalidAccountError,
    InvalidTransferError,
    LedgerError,
    NotEnoughMoneyError,
    TransferAlreadyCompleteError,
)
from ..models import (
    DIRECTION_INCOMING,
    DIRECTION_OUTGOING,
    AccountResponse,
    TransferResponse,
)
from .repository import LedgerRepository


logger = logging.getLogger(__name__)

SessionFactoryType = Callable[[], StorageSession]


class LedgerService:
    """Account listing, transfer history and the transfer engine.

    Each public call opens its own storage session from ``session_factory``
    and releases it before returning, so one service instance can be shared
    between request threads.
    """

    def __init__(
        self,
        session_factory: SessionFactoryType,
        repository_class: type[LedgerRepository] = LedgerRepository,
    ) -> None:
        self.session_factory = session_factory
        self.repository_class = repository_class

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _transfer_to_response(
        self, row: tuple[UUID, int, int, int, datetime], account_number: int
    ) -> TransferResponse:
        transfer_id, amount, source, dest, created_at = row
        if source == account_number:
            return TransferResponse(
                id=transfer_id,
                account=account_number,
                to_account=dest,
                amount=amount,
                direction=DIRECTION_OUTGOING,
                created_at=created_at,
            )
        return TransferResponse(
            id=transfer_id,
            account=account_number,
            from_account=source,
            amount=amount,
            direction=DIRECTION_INCOMING,
            created_at=created_at,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def list_accounts(self) -> list[AccountResponse]:
        with self.session_factory() as session:
            return self.repository_class(session).list_accounts()

    def list_transfers(self, account_number: int) -> list[TransferResponse]:
        with self.session_factory() as session:
            repository = self.repository_class(session)
            if not repository.account_exists(account_number):
                raise InvalidAccountError(account_number)
            return [
                self._transfer_to_response(row, account_number)
                for row in repository.list_transfers(account_number)
            ]

    def transfer_money(
        self,
        transfer_id: UUID,
        source: int,
        dest: int,
        amount: int,
    ) -> None:
        """Move ``amount`` from ``source`` to ``dest`` exactly once per ``transfer_id``.

        Runs in a single transaction: lock both accounts, reject duplicates,
        check the source balance, update both balances and append the
        transfer record, then commit. Any error leaves the session through
        ``release`` and is rolled back. There is no internal retry; calling
        again with the same id after an ambiguous failure either applies the
        transfer or raises ``TransferAlreadyCompleteError``.
        """
        if amount <= 0:
            raise InvalidTransferError("transfer amount must be greater than zero")
        if source == dest:
            raise InvalidTransferError("cannot transfer to the same account")

        try:
            with self.session_factory() as session:
                repository = self.repository_class(session)

                source_account, dest_account = repository.read_pair(source, dest)
                if source_account is None:
                    raise InvalidAccountError(source)
                if dest_account is None:
                    raise InvalidAccountError(dest)

                if repository.is_duplicate(transfer_id):
                    raise TransferAlreadyCompleteError()

                if source_account.balance < amount:
                    raise NotEnoughMoneyError()

                repository.apply_transfer(source, dest, amount)
                repository.record_transfer(transfer_id, source, dest, amount)
                session.commit()
        except LedgerError as exc:
            self._log_failure(exc, transfer_id, source, dest, amount)
            raise

        logger.info(
            "transfer.completed",
            extra={
                "transfer_id": str(transfer_id),
                "source_account": source,
                "dest_account": dest,
                "amount": amount,
            },
        )

    def _log_failure(
        self,
        error: LedgerError,
        transfer_id: UUID,
        source: int,
        dest: int,
        amount: int,
    ) -> None:
        extra = {
            "transfer_id": str(transfer_id),
            "source_account": source,
            "dest_account": dest,
            "amount": amount,
            "reason": error.kind.value,
        }
        if isinstance(error, DatabaseError):
            logger.warning("transfer.failed", extra=extra)
        else:
            logger.info("transfer.rejected", extra=extra)
