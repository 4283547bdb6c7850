import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.database import Base
from storefront.db_types import UUIDType

if TYPE_CHECKING:
    from storefront.models.user import User
    from storefront.models.location import VietnameseLocation


class AddressLabel(str, Enum):
    HOME = "home"
    OFFICE = "office"
    OTHER = "other"


class Address(Base):
    """
    Delivery address of a user.

    A user with any addresses has exactly one default. The partial unique
    index rejects a second default row at the storage layer.
    """
    __tablename__ = "addresses"
    __table_args__ = (
        Index("ix_address_user_created", "user_id", "created_at"),
        Index(
            "uq_address_user_default",
            "user_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    # Receiver
    receiver_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)

    # Location (district is empty for province -> ward regions)
    province: Mapped[str] = mapped_column(String(255), nullable=False)
    district: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ward: Mapped[str] = mapped_column(String(255), nullable=False)
    detail_address: Mapped[str] = mapped_column(String(500), nullable=False)

    province_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("vietnamese_locations.id", ondelete="SET NULL"),
        nullable=True
    )
    district_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("vietnamese_locations.id", ondelete="SET NULL"),
        nullable=True
    )
    ward_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("vietnamese_locations.id", ondelete="SET NULL"),
        nullable=True
    )

    address_label: Mapped[str] = mapped_column(
        String(20),
        default=AddressLabel.HOME.value,
        nullable=False,
        comment="home, office, other"
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

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
    user: Mapped["User"] = relationship("User", back_populates="addresses")
    province_location: Mapped[Optional["VietnameseLocation"]] = relationship(
        "VietnameseLocation", foreign_keys=[province_id]
    )
    district_location: Mapped[Optional["VietnameseLocation"]] = relationship(
        "VietnameseLocation", foreign_keys=[district_id]
    )
    ward_location: Mapped[Optional["VietnameseLocation"]] = relationship(
        "VietnameseLocation", foreign_keys=[ward_id]
    )

    @property
    def full_address(self) -> str:
        """Get formatted full address."""
        parts = [self.detail_address, self.ward]
        if self.district:
            parts.append(self.district)
        parts.append(self.province)
        return ", ".join(parts)

    def __repr__(self) -> str:
        return f"<Address(receiver='{self.receiver_name}', default={self.is_default})>"
