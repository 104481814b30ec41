"""Event model."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hub.models.base import Base, new_id, utcnow

REGISTRATION_TYPES = ("individual", "team")


class Event(Base):
    """Club event with capacity, optional team mode and optional fee."""

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    event_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    image_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    club_name: Mapped[str] = mapped_column(String(128), nullable=False)
    created_by: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    registration_type: Mapped[str] = mapped_column(String(16), nullable=False, default="individual")  # individual, team
    min_team_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=2)
    max_team_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # None = unbounded
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    registration_fee: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    upi_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)  # payment handle
    payment_qr_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    registrations = relationship(
        "Registration", back_populates="event", cascade="all, delete-orphan"
    )
    teams = relationship(
        "Team", back_populates="event", cascade="all, delete-orphan"
    )

    @property
    def is_team_event(self) -> bool:
        return self.registration_type == "team"
