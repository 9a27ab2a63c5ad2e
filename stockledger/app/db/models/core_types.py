import enum

class RequestStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    po_created = "PO Created"

class RequestPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"

class DisplayStatus(str, enum.Enum):
    displayed = "displayed"
    suspended = "suspended"

class StockStatus(str, enum.Enum):
    normal = "normal"
    low = "low"
    critical = "critical"

class POStatus(str, enum.Enum):
    draft = "draft"
    completed = "completed"

# last_request_status marker written when supply is recorded directly
ORDER_RECORDED = "Order Recorded"

# admin/PO transitions; PO deletion rolls "PO Created" back outside this table
REQUEST_TRANSITIONS = {
    RequestStatus.pending: {RequestStatus.approved, RequestStatus.rejected},
    RequestStatus.approved: {RequestStatus.po_created},
    RequestStatus.rejected: set(),
    RequestStatus.po_created: set(),
}
