import uuid
from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ..core.config import get_settings
from ..core.db import SessionFactory, create_engine_for_url, init_db
from ..main import app
from ..models import AccountModel, TransferModel
from ..services import LedgerService


def seed_accounts(engine: Engine, balances: dict[int, int]) -> None:
    with Session(engine) as session:
        for number, balance in balances.items():
            session.add(AccountModel(account_number=number, balance=balance))
        session.commit()


def read_balances(engine: Engine) -> dict[int, int]:
    with Session(engine) as session:
        return {
            account.account_number: account.balance
            for account in session.exec(select(AccountModel))
        }


def read_transfers(engine: Engine) -> list[TransferModel]:
    with Session(engine) as session:
        return list(session.exec(select(TransferModel)))


@pytest.fixture
def engine(tmp_path) -> Engine:
    engine = create_engine_for_url(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> SessionFactory:
    return SessionFactory(engine, transaction_timeout=5.0)


@pytest.fixture
def service(session_factory: SessionFactory) -> LedgerService:
    return LedgerService(session_factory)


@pytest.fixture
def seeded(engine: Engine) -> Engine:
    seed_accounts(engine, {1: 1000, 2: 2000})
    return engine


@pytest.fixture
def client(tmp_path, monkeypatch) -> TestClient:
    monkeypatch.setenv("LEDGER_DATABASE_URL", f"sqlite:///{tmp_path / 'api.db'}")
    get_settings.cache_clear()

    with TestClient(app) as test_client:
        seed_accounts(app.state.session_factory.engine, {1: 1000, 2: 2000})
        yield test_client

    app.dependency_overrides.clear()
    get_settings.cache_clear()


@pytest.fixture
def api_engine(client: TestClient) -> Engine:
    return client.app.state.session_factory.engine


@pytest.fixture
def make_transfer() -> Callable[..., dict]:
    def _make(source: int = 1, dest: int = 2, amount: int = 250, transfer_id=None) -> dict:
        return {
            "id": str(transfer_id or uuid.uuid4()),
            "source": source,
            "dest": dest,
            "amount": amount,
        }

    return _make
