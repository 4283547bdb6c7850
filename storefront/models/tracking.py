import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import (
    String, Boolean, DateTime, ForeignKey, Integer, Text,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from storefront.database import Base
from storefront.db_types import UUIDType, JSONType

if TYPE_CHECKING:
    from storefront.models.order import Order
    from storefront.models.user import User


class TrackingStepName(str, Enum):
    """The five fulfillment milestones of an order."""
    PREPARING = "preparing"                # Packing at the warehouse
    PICKED_UP = "picked_up"                # Collected by the carrier
    IN_TRANSIT = "in_transit"              # On the way
    OUT_FOR_DELIVERY = "out_for_delivery"  # With the shipper
    DELIVERED = "delivered"                # Handed to the customer


class TrackingStepStatus(str, Enum):
    """Status of a single tracking step."""
    PENDING = "pending"
    COMPLETED = "completed"
    DELAYED = "delayed"
    FAILED = "failed"
    ON_HOLD = "on_hold"


class TrackingIssueType(str, Enum):
    """Reason category for a delivery problem."""
    ADDRESS_INCORRECT = "address_incorrect"
    CUSTOMER_UNAVAILABLE = "customer_unavailable"
    WEATHER_DELAY = "weather_delay"
    VEHICLE_BREAKDOWN = "vehicle_breakdown"
    OTHER = "other"


# Fixed (step_number, step_name) pairing. Every order gets exactly these rows.
TRACKING_STEPS = (
    (1, TrackingStepName.PREPARING),
    (2, TrackingStepName.PICKED_UP),
    (3, TrackingStepName.IN_TRANSIT),
    (4, TrackingStepName.OUT_FOR_DELIVERY),
    (5, TrackingStepName.DELIVERED),
)

_STEP_NAME_BY_NUMBER = {number: name.value for number, name in TRACKING_STEPS}


def step_name_for(step_number: int) -> str:
    """Return the step name fixed to a step number, or raise ValueError."""
    try:
        return _STEP_NAME_BY_NUMBER[step_number]
    except KeyError:
        raise ValueError(f"Invalid tracking step number: {step_number}")


class TrackingStep(Base):
    """
    One fulfillment milestone of an order.
    Created in bulk (all five at once) when tracking is initialized.
    """
    __tablename__ = "tracking_steps"
    __table_args__ = (
        UniqueConstraint("order_id", "step_number", name="uq_tracking_step_order_number"),
        CheckConstraint("step_number BETWEEN 1 AND 5", name="ck_tracking_step_number_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    step_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="preparing, picked_up, in_transit, out_for_delivery, delivered"
    )
    status: Mapped[str] = mapped_column(
        String(50),
        default=TrackingStepStatus.PENDING.value,
        nullable=False,
        comment="pending, completed, delayed, failed, on_hold"
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    estimated_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Last admin who touched the step
    admin_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    order: Mapped["Order"] = relationship("Order", back_populates="tracking_steps")
    detail: Mapped[Optional["TrackingDetail"]] = relationship(
        "TrackingDetail",
        back_populates="step",
        uselist=False,
        cascade="all, delete-orphan"
    )
    admin: Mapped[Optional["User"]] = relationship("User", foreign_keys=[admin_id])

    @validates("step_number")
    def _validate_step_number(self, key, value):
        expected_name = step_name_for(value)
        if self.step_name is not None and self.step_name != expected_name:
            raise ValueError(f"Step {value} must be named '{expected_name}', got '{self.step_name}'")
        return value

    @validates("step_name")
    def _validate_step_name(self, key, value):
        value = getattr(value, "value", value)
        if self.step_number is not None and step_name_for(self.step_number) != value:
            raise ValueError(f"Step {self.step_number} cannot be named '{value}'")
        return value

    @property
    def is_completed(self) -> bool:
        return self.status == TrackingStepStatus.COMPLETED.value

    def __repr__(self) -> str:
        return f"<TrackingStep(order_id='{self.order_id}', step={self.step_number}, status='{self.status}')>"


class TrackingDetail(Base):
    """Free-form fulfillment metadata attached to a tracking step (0..1 per step)."""
    __tablename__ = "tracking_details"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    tracking_step_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("tracking_steps.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Shipper (out_for_delivery step)
    shipper_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    shipper_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Proof of delivery image URLs, in upload order
    proof_images: Mapped[Optional[List[str]]] = mapped_column(JSONType, nullable=True)

    # Issue handling
    has_issue: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    issue_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issue_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="address_incorrect, customer_unavailable, weather_delay, vehicle_breakdown, other"
    )
    estimated_resolution: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    updated_by_admin: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    step: Mapped["TrackingStep"] = relationship("TrackingStep", back_populates="detail")

    def __repr__(self) -> str:
        return f"<TrackingDetail(step_id='{self.tracking_step_id}', has_issue={self.has_issue})>"
