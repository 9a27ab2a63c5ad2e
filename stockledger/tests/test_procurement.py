import pytest

from stockledger.app.db.models.models_v1 import PurchaseOrder
from stockledger.app.db.models.core_types import POStatus, RequestStatus
from stockledger.app.schemas.purchasing import POCreate, PurchaseRequestCreate
from stockledger.services import procurement
from stockledger.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    QuantityEditNotAllowed,
)

COMPANY_ID = "company-test"


def _request_payload(qty=5):
    return PurchaseRequestCreate(
        product_category="Electronics",
        item_name="Router",
        product_version="v2",
        quantity_required=qty,
        employee_name="Sam Field",
        employee_email="sam@example.com",
        reason="Running low",
    )


def test_new_request_increments_pending(db_session, add_stock_detail):
    sl = add_stock_detail(pending_quantity=2)

    req = procurement.create_purchase_request(db_session, COMPANY_ID, _request_payload(5))
    db_session.commit()

    assert req.status == RequestStatus.pending
    db_session.refresh(sl)
    assert sl.pending_quantity == 7
    assert sl.last_request_status == "pending"


def test_approve_then_reject_is_refused(db_session, add_stock_detail):
    sl = add_stock_detail()
    req = procurement.create_purchase_request(db_session, COMPANY_ID, _request_payload(5))
    db_session.commit()

    procurement.update_request_status(db_session, COMPANY_ID, req.id, RequestStatus.approved)
    db_session.commit()

    db_session.refresh(sl)
    assert (sl.pending_quantity, sl.approved_quantity) == (0, 5)

    with pytest.raises(InvalidTransitionError):
        procurement.update_request_status(db_session, COMPANY_ID, req.id, RequestStatus.rejected)


def test_approving_request_without_ledger_entry_succeeds(db_session):
    req = procurement.create_purchase_request(db_session, COMPANY_ID, _request_payload(5))
    procurement.update_request_status(db_session, COMPANY_ID, req.id, RequestStatus.approved)
    db_session.commit()

    db_session.refresh(req)
    assert req.status == RequestStatus.approved


def test_quantity_edit_only_while_pending(db_session, add_stock_detail):
    sl = add_stock_detail()
    req = procurement.create_purchase_request(db_session, COMPANY_ID, _request_payload(5))
    db_session.commit()

    procurement.update_request_quantity(db_session, COMPANY_ID, req.id, 8)
    db_session.commit()
    db_session.refresh(sl)
    assert sl.pending_quantity == 8

    procurement.update_request_status(db_session, COMPANY_ID, req.id, RequestStatus.approved)
    db_session.commit()

    with pytest.raises(QuantityEditNotAllowed):
        procurement.update_request_quantity(db_session, COMPANY_ID, req.id, 2)


def test_request_of_other_company_is_not_found(db_session):
    req = procurement.create_purchase_request(db_session, COMPANY_ID, _request_payload(5))
    db_session.commit()

    with pytest.raises(NotFoundError):
        procurement.update_request_status(db_session, "other-company", req.id, RequestStatus.approved)


def test_completed_po_marks_requests_and_snapshots_approved(db_session, add_stock_detail):
    sl = add_stock_detail()
    first = procurement.create_purchase_request(db_session, COMPANY_ID, _request_payload(5))
    second = procurement.create_purchase_request(db_session, COMPANY_ID, _request_payload(3))
    for req in (first, second):
        procurement.update_request_status(db_session, COMPANY_ID, req.id, RequestStatus.approved)
    db_session.commit()

    po = procurement.create_purchase_order(
        db_session,
        COMPANY_ID,
        POCreate(po_number="PO-001", supplier_name="Acme", request_ids=[first.id, second.id]),
    )
    db_session.commit()

    db_session.refresh(sl)
    assert sl.approved_quantity == 8
    assert sl.po_created_quantity == 8
    assert sl.last_request_status == "PO Created"
    assert [ln.quantity for ln in po.lines] == [5, 3]
    for req in (first, second):
        db_session.refresh(req)
        assert req.status == RequestStatus.po_created
        assert req.purchase_order_id == po.id


def test_draft_po_leaves_requests_approved(db_session, add_stock_detail):
    add_stock_detail()
    req = procurement.create_purchase_request(db_session, COMPANY_ID, _request_payload(5))
    procurement.update_request_status(db_session, COMPANY_ID, req.id, RequestStatus.approved)
    db_session.commit()

    procurement.create_purchase_order(
        db_session,
        COMPANY_ID,
        POCreate(po_number="PO-002", status=POStatus.draft, request_ids=[req.id]),
    )
    db_session.commit()

    db_session.refresh(req)
    assert req.status == RequestStatus.approved


def test_po_requires_approved_requests(db_session):
    req = procurement.create_purchase_request(db_session, COMPANY_ID, _request_payload(5))
    db_session.commit()

    with pytest.raises(InvalidTransitionError):
        procurement.create_purchase_order(
            db_session,
            COMPANY_ID,
            POCreate(po_number="PO-003", request_ids=[req.id]),
        )


def test_delete_po_rolls_back_requests_and_ledger(db_session, add_stock_detail):
    sl = add_stock_detail()
    req = procurement.create_purchase_request(db_session, COMPANY_ID, _request_payload(4))
    procurement.update_request_status(db_session, COMPANY_ID, req.id, RequestStatus.approved)
    po = procurement.create_purchase_order(
        db_session,
        COMPANY_ID,
        POCreate(po_number="PO-004", request_ids=[req.id]),
    )
    db_session.commit()
    po_id = po.id

    procurement.delete_purchase_order_with_rollback(db_session, COMPANY_ID, po_id)
    db_session.commit()

    assert db_session.get(PurchaseOrder, po_id) is None
    db_session.refresh(req)
    assert req.status == RequestStatus.approved
    assert req.purchase_order_id is None
    db_session.refresh(sl)
    assert sl.po_created_quantity == 0
    assert sl.approved_quantity == 4
    assert sl.last_request_status == "approved"
