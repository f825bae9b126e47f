"""
Pytest configuration and fixtures for split_ledger tests.
"""
import os

# Keep the app's own engine in memory; tests use the engine below
os.environ.setdefault("SPLIT_LEDGER_DATABASE_URL", "sqlite://")

import itertools
import pytest
from typing import Dict, List, Sequence, Tuple
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from split_ledger.db.database import Base, get_db
from split_ledger.models import expenses, groups, settlements  # noqa: F401 (registers tables)
from split_ledger.schemas.ledger_schema import (
    ExpenseRecord, PairwiseDebt, SettlementRecord, Split, SplitPolicy
)

_ids = itertools.count(1)


def make_expense(
    payer: str,
    total: int,
    shares: Dict[str, int],
    currency: str = "USD",
    group_id: str = "g1"
) -> ExpenseRecord:
    """Build an expense record from explicit shares in minor units."""
    return ExpenseRecord(
        id=f"e{next(_ids)}",
        group_id=group_id,
        total_amount=total,
        currency=currency,
        payer_id=payer,
        split_policy=SplitPolicy.exact,
        splits=tuple(Split(user_id=user_id, amount=amount) for user_id, amount in shares.items())
    )


def make_settlement(
    from_user: str,
    to_user: str,
    amount: int,
    currency: str = "USD",
    group_id: str = "g1"
) -> SettlementRecord:
    return SettlementRecord(
        id=f"s{next(_ids)}",
        group_id=group_id,
        from_user_id=from_user,
        to_user_id=to_user,
        amount=amount,
        currency=currency
    )


def payments_as_settlements(payments: Sequence[PairwiseDebt]) -> List[SettlementRecord]:
    """Turn suggested payments into settlement records, as if everyone paid."""
    return [
        make_settlement(p.from_user_id, p.to_user_id, p.amount, currency=p.currency)
        for p in payments
    ]


def as_tuples(debts: Sequence[PairwiseDebt]) -> List[Tuple[str, str, int]]:
    return [(d.from_user_id, d.to_user_id, d.amount) for d in debts]


@pytest.fixture
def sample_expenses():
    """A pays 120.00 for A, B, C; B pays 60.00 for B, C; C pays 40.00 for A, C, D."""
    return [
        make_expense("A", 12000, {"A": 4000, "B": 4000, "C": 4000}),
        make_expense("B", 6000, {"B": 3000, "C": 3000}),
        make_expense("C", 4000, {"A": 1334, "C": 1333, "D": 1333}),
    ]


@pytest.fixture
def sample_balances():
    """Balances produced by sample_expenses."""
    return {"A": 6666, "B": -1000, "C": -4333, "D": -1333}


@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    """FastAPI test client bound to the in-memory database."""
    from fastapi.testclient import TestClient
    from split_ledger.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build the access-token header for a user id."""
    from split_ledger.services.auth.jwt_handler import create_access_token

    def _headers(user_id: str) -> Dict[str, str]:
        return {"access-token": create_access_token(user_id)}

    return _headers
