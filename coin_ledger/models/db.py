from __future__ import annotations
from datetime import datetime
from uuid import UUID
from sqlalchemy import BigInteger, Column, DateTime, func
from sqlmodel import Field, SQLModel

class Account(SQLModel, table=True):
    __tablename__ = "accounts"

    account_number: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False)
    )
    balance: int = Field(sa_column=Column(BigInteger, nullable=False, default=0))

class Transfer(SQLModel, table=True):
    __tablename__ = "transfers"

    transfer_id: UUID = Field(primary_key=True)
    amount: int = Field(sa_column=Column(BigInteger, nullable=False))
    source_account: int = Field(sa_column=Column(BigInteger, nullable=False, index=True))
    dest_account: int = Field(sa_column=Column(BigInteger, nullable=False, index=True))
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
            index=True,
        )
    )
