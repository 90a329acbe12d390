from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, insert, or_, update
from sqlalchemy.engine import Result
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from ..core.db import StorageSession
from ..core.errors import (
    DatabaseError,
    InvalidAccountError,
    TransferAlreadyCompleteError,
)
from ..models import AccountModel, AccountResponse, TransferModel


class _NoDataReturned(Exception):
    """A count query came back without a row."""


def _scalar_count(result: Result) -> int:
    row = result.first()
    if row is None:
        raise DatabaseError(_NoDataReturned("no data returned from database request"))
    return int(row[0])


class LedgerRepository:
    """Data access for the transfer protocol, bound to one storage session."""

    def __init__(self, session: StorageSession) -> None:
        self.session = session

    # Accounts -----------------------------------------------------------
    def read_pair(
        self, source: int, dest: int
    ) -> tuple[Optional[AccountResponse], Optional[AccountResponse]]:
        """Lock and load both accounts of a transfer.

        Both rows are requested by one ``FOR UPDATE`` statement so the
        database acquires the locks for the pair in a single step; two
        transfers over (A, B) and (B, A) cannot deadlock each other here.
        A missing row comes back as ``None``.
        """
        stmt = (
            select(AccountModel.account_number, AccountModel.balance)
            .where(
                or_(
                    AccountModel.account_number == source,
                    AccountModel.account_number == dest,
                )
            )
            .with_for_update()
        )

        def _map(result: Result):
            source_account = None
            dest_account = None
            for number, balance in result:
                account = AccountResponse(number=number, balance=balance)
                if number == source:
                    source_account = account
                if number == dest:
                    dest_account = account
            return source_account, dest_account

        return self.session.query(stmt, _map)

    def apply_transfer(self, source: int, dest: int, amount: int) -> None:
        """Debit ``source`` and credit ``dest``. Overdraft checks belong to the caller."""
        debited = self.session.execute(
            update(AccountModel)
            .where(AccountModel.account_number == source)
            .values(balance=AccountModel.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if debited == 0:
            raise InvalidAccountError(source)

        credited = self.session.execute(
            update(AccountModel)
            .where(AccountModel.account_number == dest)
            .values(balance=AccountModel.balance + amount)
            .execution_options(synchronize_session=False)
        )
        if credited == 0:
            raise InvalidAccountError(dest)

    def account_exists(self, account_number: int) -> bool:
        stmt = (
            select(func.count())
            .select_from(AccountModel)
            .where(AccountModel.account_number == account_number)
        )
        return self.session.query(stmt, _scalar_count) > 0

    def list_accounts(self) -> list[AccountResponse]:
        stmt = select(AccountModel.account_number, AccountModel.balance).order_by(
            AccountModel.account_number
        )
        return self.session.query(
            stmt,
            lambda result: [
                AccountResponse(number=number, balance=balance)
                for number, balance in result
            ],
        )

    # Transfers ----------------------------------------------------------
    def is_duplicate(self, transfer_id: UUID) -> bool:
        stmt = (
            select(func.count())
            .select_from(TransferModel)
            .where(TransferModel.transfer_id == transfer_id)
        )
        return self.session.query(stmt, _scalar_count) > 0

    def record_transfer(
        self,
        transfer_id: UUID,
        source: int,
        dest: int,
        amount: int,
    ) -> None:
        stmt = insert(TransferModel.__table__).values(
            transfer_id=transfer_id,
            amount=amount,
            source_account=source,
            dest_account=dest,
            created_at=datetime.now(UTC),
        )
        try:
            inserted = self.session.execute(stmt)
        except DatabaseError as exc:
            # the primary key on transfer_id catches retries that raced past is_duplicate
            if isinstance(exc.cause, IntegrityError):
                raise TransferAlreadyCompleteError() from exc
            raise
        if inserted != 1:
            raise TransferAlreadyCompleteError()

    def list_transfers(self, account_number: int) -> list[tuple[UUID, int, int, int, datetime]]:
        """History rows (id, amount, source, dest, created_at), newest first."""
        stmt = (
            select(
                TransferModel.transfer_id,
                TransferModel.amount,
                TransferModel.source_account,
                TransferModel.dest_account,
                TransferModel.created_at,
            )
            .where(
                or_(
                    TransferModel.source_account == account_number,
                    TransferModel.dest_account == account_number,
                )
            )
            .order_by(TransferModel.created_at.desc())
        )
        return self.session.query(stmt, lambda result: [tuple(row) for row in result])
