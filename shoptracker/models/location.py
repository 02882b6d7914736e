from datetime import datetime, timezone
from typing import TYPE_CHECKING, List

from sqlalchemy import String, Boolean, DateTime, Integer, Float
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shoptracker.database import Base

if TYPE_CHECKING:
    from shoptracker.models.order_location import OrderLocation


class Location(Base):
    """
    A processing station on the shop floor.

    Locations form a sequence ordered by used_order. The values only need to
    be comparable, gaps are allowed. A primary location is the entry point of
    the workflow and pulls globally queued orders in automatically unless
    skip_auto_queue is set.
    """
    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    used_order: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    skip_auto_queue: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Quantity accounting hints (not used by the scheduler)
    count_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    no_count: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    assignments: Mapped[List["OrderLocation"]] = relationship(
        "OrderLocation",
        back_populates="location",
        passive_deletes=True,
    )

    @property
    def auto_queues(self) -> bool:
        return self.is_primary and not self.skip_auto_queue

    def __repr__(self) -> str:
        return f"<Location(name='{self.name}', used_order={self.used_order})>"
