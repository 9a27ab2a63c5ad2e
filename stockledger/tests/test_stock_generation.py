from datetime import datetime
from decimal import Decimal

from sqlalchemy import select

from stockledger.app.db.models.models_v1 import PurchaseRecord, StockDetail, StockIssue
from stockledger.app.db.models.core_types import DisplayStatus, RequestStatus
from stockledger.services.inventory import generate_stock_details
from stockledger.services.reconciler import sync_stock_details

COMPANY_ID = "company-test"
KEY = ("Electronics", "Router", "v2")


def _entries(db_session, company_id=COMPANY_ID):
    return db_session.execute(
        select(StockDetail).where(StockDetail.company_id == company_id)
    ).scalars().all()


def test_current_stock_is_sum_of_purchase_records(db_session, add_record):
    """
    GIVEN trois achats (4 + 6 + 10) du même produit
    THEN current_stock == 20, et une seconde génération ne double rien
    """
    add_record(4)
    add_record(6)
    add_record(10)

    generate_stock_details(db_session, COMPANY_ID)
    generate_stock_details(db_session, COMPANY_ID)

    entries = _entries(db_session)
    assert len(entries) == 1
    assert entries[0].current_stock == 20


def test_new_entry_defaults_to_suspended_with_zero_thresholds(db_session, add_record):
    add_record(500)

    (sl,) = generate_stock_details(db_session, COMPANY_ID)

    assert sl.min_required == 0
    assert sl.safe_quantity_limit == 0
    assert sl.display_status == DisplayStatus.suspended


def test_unconfigured_entry_is_forced_back_to_suspended(db_session, add_record, add_stock_detail):
    add_stock_detail(display_status=DisplayStatus.displayed)
    add_record(3)

    (sl,) = generate_stock_details(db_session, COMPANY_ID)

    assert sl.display_status == DisplayStatus.suspended


def test_operator_thresholds_are_preserved(db_session, add_record, add_stock_detail):
    add_stock_detail(
        min_required=10,
        safe_quantity_limit=4,
        display_status=DisplayStatus.displayed,
        current_stock=999,
    )
    add_record(7)

    (sl,) = generate_stock_details(db_session, COMPANY_ID)

    assert sl.current_stock == 7
    assert sl.min_required == 10
    assert sl.safe_quantity_limit == 4
    assert sl.display_status == DisplayStatus.displayed


def test_malformed_rows_are_skipped(db_session, add_record):
    add_record(5)
    db_session.add_all(
        [
            PurchaseRecord(company_id=COMPANY_ID, product_category="Electronics", item_name=None,
                           product_version="v2", quantity=8, unit="pcs", price_per_unit=0),
            PurchaseRecord(company_id=COMPANY_ID, product_category="Electronics", item_name="Router",
                           product_version="v2", quantity=0, unit="pcs", price_per_unit=0),
            PurchaseRecord(company_id=COMPANY_ID, product_category="Electronics", item_name="Router",
                           product_version="v2", quantity=-3, unit="pcs", price_per_unit=0),
        ]
    )
    db_session.commit()

    entries = generate_stock_details(db_session, COMPANY_ID)

    assert len(entries) == 1
    assert entries[0].current_stock == 5


def test_latest_purchase_wins_by_date_not_insertion_order(db_session, add_record):
    add_record(1, purchase_date=datetime(2026, 3, 1), price_per_unit=Decimal("9.00"))
    add_record(1, purchase_date=datetime(2026, 1, 1), price_per_unit=Decimal("2.00"))

    (sl,) = generate_stock_details(db_session, COMPANY_ID)

    assert sl.last_purchase_date == datetime(2026, 3, 1)
    assert sl.price_per_unit == Decimal("9.00")


def test_request_quantities_are_bucketed_by_status(db_session, add_record, add_request):
    add_record(10)
    add_request(2, RequestStatus.pending)
    add_request(3, RequestStatus.pending)
    add_request(4, RequestStatus.approved)
    add_request(5, RequestStatus.po_created)
    add_request(6, RequestStatus.rejected)

    (sl,) = generate_stock_details(db_session, COMPANY_ID)

    assert sl.pending_quantity == 5
    assert sl.approved_quantity == 4
    assert sl.po_created_quantity == 5
    assert sl.rejected_quantity == 6


def test_last_request_status_uses_most_recent_update(db_session, add_record, add_request):
    add_record(10)
    add_request(1, RequestStatus.approved, updated_at=datetime(2026, 5, 2))
    add_request(1, RequestStatus.pending, updated_at=datetime(2026, 5, 1))

    (sl,) = generate_stock_details(db_session, COMPANY_ID)

    assert sl.last_request_status == RequestStatus.approved.value


def test_requests_without_supply_create_nothing(db_session, add_request):
    add_request(5, RequestStatus.approved)

    assert generate_stock_details(db_session, COMPANY_ID) == []
    assert _entries(db_session) == []


def test_stock_issues_are_not_resurrected_by_regeneration(db_session, add_record):
    add_record(10)
    db_session.add(
        StockIssue(
            company_id=COMPANY_ID,
            product_category=KEY[0],
            item_name=KEY[1],
            product_version=KEY[2],
            quantity=4,
            invoice_ref="INV-1",
        )
    )
    db_session.commit()

    (sl,) = generate_stock_details(db_session, COMPANY_ID)

    assert sl.current_stock == 6


def test_tenants_are_isolated(db_session, add_record):
    add_record(10)
    add_record(99, company_id="other-company")

    (sl,) = generate_stock_details(db_session, COMPANY_ID)

    assert sl.current_stock == 10
    assert len(_entries(db_session, "other-company")) == 0


def test_generation_marks_records_so_reconciler_does_not_double_count(db_session, add_record, add_request):
    """
    GIVEN un achat de 20 et une demande approuvée, ledger généré
    THEN le reconciler clôt le cycle sans recompter le stock
    """
    rec = add_record(20)
    add_request(20, RequestStatus.approved)

    generate_stock_details(db_session, COMPANY_ID)
    db_session.refresh(rec)
    assert rec.stocked_at is not None
    assert rec.reconciled_at is None

    result = sync_stock_details(db_session, COMPANY_ID)

    assert result.success
    assert result.processed_products == 1
    (sl,) = _entries(db_session)
    db_session.refresh(sl)
    assert sl.current_stock == 20
    assert sl.approved_quantity == 0
    assert sl.last_request_status is None
