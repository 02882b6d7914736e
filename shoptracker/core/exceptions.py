"""
Scheduler error kinds.

NotFoundError        - referenced order, location or assignment does not exist
QueueValidationError - input rejected before any mutation (rush precedence,
                       malformed position or quantity, illegal transition)
ConstraintError      - the store rejected a write (duplicate assignment,
                       duplicate order number, dangling reference)
"""

from typing import Any, Dict, List, Optional, Union


class ShopTrackerError(Exception):
    """Base class for errors raised by the queue scheduler."""

    status_code: int = 500
    error_type: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "error_type": self.error_type}


class NotFoundError(ShopTrackerError):
    status_code = 404
    error_type = "not_found"

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Union[int, str, None] = None,
    ):
        super().__init__(message)
        self.resource_type = resource_type
        self.resource_id = resource_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.resource_type:
            data["resource_type"] = self.resource_type
            data["resource_id"] = self.resource_id
        return data


class QueueValidationError(ShopTrackerError):
    status_code = 400
    error_type = "validation_error"

    def __init__(
        self,
        message: str,
        fields: Optional[List[str]] = None,
        min_allowed_position: Optional[int] = None,
    ):
        super().__init__(message)
        self.fields = fields or []
        self.min_allowed_position = min_allowed_position

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.fields:
            data["fields"] = self.fields
        if self.min_allowed_position is not None:
            data["min_allowed_position"] = self.min_allowed_position
        return data


class ConstraintError(ShopTrackerError):
    status_code = 409
    error_type = "constraint_error"
