import uuid
from datetime import date, datetime, time

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.database import Base
from storefront.utils.timeutils import utcnow


class Event(Base):
    """A single pre-order drop. At most one row has ``is_active`` set."""

    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    pickup_date: Mapped[date] = mapped_column(Date, nullable=False)
    pickup_start: Mapped[time] = mapped_column(Time, nullable=False)
    pickup_end: Mapped[time] = mapped_column(Time, nullable=False)
    location_name: Mapped[str] = mapped_column(String(200), nullable=False)
    location_address: Mapped[str] = mapped_column(String(500), nullable=False)
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    event_products: Mapped[list["EventProduct"]] = relationship(
        "EventProduct",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventProduct.sort_order",
    )


class EventProduct(Base):
    __tablename__ = "event_products"
    __table_args__ = (UniqueConstraint("event_id", "product_id"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("events.id"), nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("products.id"), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    event: Mapped["Event"] = relationship("Event", back_populates="event_products")
    product: Mapped["Product"] = relationship("Product")
