from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockledger.app.db.base import Base
from stockledger.app.db.models.models_v1 import (
    StockDetail,
    PurchaseRecord,
    PurchaseRequest,
)
from stockledger.app.db.models.core_types import DisplayStatus, RequestStatus
from stockledger.app.time_utils import utcnow

COMPANY_ID = "company-test"
KEY = ("Electronics", "Router", "v2")


@pytest.fixture(scope="function")
def engine():
    """
    Base SQLite en mémoire, recréée pour chaque test.

    StaticPool : une seule connexion partagée, sinon chaque connexion
    verrait une base vide.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_record(db_session):
    def _add(
        quantity=10,
        *,
        key=KEY,
        company_id=COMPANY_ID,
        price_per_unit=Decimal("5.00"),
        purchase_date=None,
        stocked_at=None,
        reconciled_at=None,
        unit="pcs",
    ):
        category, name, version = key
        rec = PurchaseRecord(
            company_id=company_id,
            product_category=category,
            item_name=name,
            product_version=version,
            quantity=quantity,
            unit=unit,
            price_per_unit=price_per_unit,
            purchase_date=purchase_date or datetime(2026, 1, 15, 10, 0),
            stocked_at=stocked_at,
            reconciled_at=reconciled_at,
            created_at=utcnow(),
        )
        db_session.add(rec)
        db_session.commit()
        return rec

    return _add


@pytest.fixture
def add_request(db_session):
    def _add(
        quantity_required=5,
        status=RequestStatus.pending,
        *,
        key=KEY,
        company_id=COMPANY_ID,
        updated_at=None,
    ):
        category, name, version = key
        now = utcnow()
        req = PurchaseRequest(
            company_id=company_id,
            product_category=category,
            item_name=name,
            product_version=version,
            quantity_required=quantity_required,
            status=status,
            created_at=now,
            updated_at=updated_at or now,
        )
        db_session.add(req)
        db_session.commit()
        return req

    return _add


@pytest.fixture
def add_stock_detail(db_session):
    def _add(*, key=KEY, company_id=COMPANY_ID, **fields):
        category, name, version = key
        now = utcnow()
        values = dict(
            current_stock=0,
            unit="pcs",
            min_required=0,
            safe_quantity_limit=0,
            display_status=DisplayStatus.suspended,
            pending_quantity=0,
            approved_quantity=0,
            po_created_quantity=0,
            rejected_quantity=0,
            created_at=now,
            updated_at=now,
        )
        values.update(fields)
        sl = StockDetail(
            company_id=company_id,
            product_category=category,
            item_name=name,
            product_version=version,
            **values,
        )
        db_session.add(sl)
        db_session.commit()
        return sl

    return _add
