from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.database import Base


class LocationType(str, Enum):
    PROVINCE = "province"
    WARD = "ward"


class VietnameseLocation(Base):
    """Administrative unit (province or ward). Wards point at their province."""
    __tablename__ = "vietnamese_locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, index=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("vietnamese_locations.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    parent: Mapped[Optional["VietnameseLocation"]] = relationship(
        "VietnameseLocation",
        remote_side=[id],
        back_populates="children"
    )
    children: Mapped[List["VietnameseLocation"]] = relationship(
        "VietnameseLocation",
        back_populates="parent"
    )

    def __repr__(self) -> str:
        return f"<VietnameseLocation(name='{self.name}', type='{self.type}')>"
