"""Principal model for site authentication."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hub.models.base import Base, new_id, utcnow


class User(Base):
    """Authenticated principal. Only the id and email are used outside auth."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    role_assignment = relationship(
        "RoleAssignment", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    registrations = relationship("Registration", back_populates="user", cascade="all, delete-orphan")
