# Models module
from shoptracker.models.order import Order
from shoptracker.models.location import Location
from shoptracker.models.order_location import OrderLocation, AssignmentStatus
from shoptracker.models.audit_log import AuditTrail

__all__ = [
    "Order",
    "Location",
    "OrderLocation",
    "AssignmentStatus",
    "AuditTrail",
]
