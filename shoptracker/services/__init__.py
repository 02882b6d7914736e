from shoptracker.services.advancement_service import AdvancementService
from shoptracker.services.assignment_store import AssignmentStore
from shoptracker.services.audit_service import AuditService
from shoptracker.services.global_queue_service import GlobalQueueService
from shoptracker.services.local_queue_service import LocalQueueService
from shoptracker.services.location_service import LocationService
from shoptracker.services.order_service import OrderService

__all__ = [
    "AdvancementService",
    "AssignmentStore",
    "AuditService",
    "GlobalQueueService",
    "LocalQueueService",
    "LocationService",
    "OrderService",
]
