"""
SQLAlchemy models for Multi-Calendar.

One row per authorized Microsoft 365 account, keyed by email.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Account(Base):
    """
    An authorized calendar account.

    The refresh credential is written once, when the account first signs in,
    and is stored encrypted.
    """

    __tablename__ = "calendars"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    refresh_credential_encrypted: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Present in the stored schema, not read by any current path
    events: Mapped[list["AccountEvent"]] = relationship(
        "AccountEvent",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="AccountEvent.id",
    )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses (excludes the credential)."""
        return {
            "id": self.id,
            "email": self.email,
        }


class AccountEvent(Base):
    """Event date rows attached to an account."""

    __tablename__ = "calendar_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("calendars.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    account: Mapped["Account"] = relationship("Account", back_populates="events")
