from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from shoptracker.database import Base


class AuditTrail(Base):
    """
    Audit record for order activity on the shop floor.
    Records: created, queued, started, paused, finished, updated_quantity,
    rush, unrush, global_queue_set, shipped, location_added, location_removed.
    """
    __tablename__ = "audit_trail"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # No foreign key: audit rows outlive deleted orders
    order_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # Who performed the action (identity lives outside this service)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    location_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditTrail(action='{self.action}', order_id={self.order_id})>"
