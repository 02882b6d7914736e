from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, Boolean, DateTime, Integer, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shoptracker.database import Base

if TYPE_CHECKING:
    from shoptracker.models.order_location import OrderLocation


class Order(Base):
    """
    A production order moving through the shop.

    Queue state lives on two columns:
    - global_queue_position: 1-based rank among non-shipped orders, None
      until the global ranking is first computed and again once shipped
    - rush / rush_set_at: priority class; rush_set_at is set only while rush
    """
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_active_queue", "is_shipped", "global_queue_position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    client: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Quantities
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shipped_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Lifecycle flags
    is_finished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_shipped: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    partially_shipped: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Global queue
    global_queue_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Rush priority
    rush: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rush_set_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    assignments: Mapped[List["OrderLocation"]] = relationship(
        "OrderLocation",
        back_populates="order",
        passive_deletes=True,
    )

    @property
    def is_active(self) -> bool:
        """Active orders take part in the global queue."""
        return not self.is_shipped

    def __repr__(self) -> str:
        return (
            f"<Order(number='{self.order_number}', rush={self.rush}, "
            f"global_queue_position={self.global_queue_position})>"
        )
