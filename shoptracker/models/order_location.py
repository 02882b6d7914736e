from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shoptracker.core.enum_utils import enum_comment
from shoptracker.database import Base

if TYPE_CHECKING:
    from shoptracker.models.order import Order
    from shoptracker.models.location import Location


class AssignmentStatus(str, Enum):
    """Status of an order at one location."""
    NOT_STARTED = "not_started"   # Seeded, not yet staged
    IN_QUEUE = "in_queue"         # Staged in the location queue
    IN_PROGRESS = "in_progress"   # Being worked on
    PAUSED = "paused"             # Work interrupted, resumed via start
    DONE = "done"                 # Finished at this location


class OrderLocation(Base):
    """
    The scheduling unit: one row per (order, location).

    queue_position is dense per location and only meaningful while the
    status is in_queue; it is cleared on start and finish.
    """
    __tablename__ = "order_locations"
    __table_args__ = (
        UniqueConstraint("order_id", "location_id", name="uq_order_locations_order_location"),
        Index("ix_order_locations_queue", "location_id", "status", "queue_position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    order_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    location_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=AssignmentStatus.NOT_STARTED.value,
        comment=enum_comment(AssignmentStatus),
    )
    queue_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    completed_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    order: Mapped["Order"] = relationship("Order", back_populates="assignments")
    location: Mapped["Location"] = relationship("Location", back_populates="assignments")

    def __repr__(self) -> str:
        return (
            f"<OrderLocation(order_id={self.order_id}, location_id={self.location_id}, "
            f"status='{self.status}', queue_position={self.queue_position})>"
        )
