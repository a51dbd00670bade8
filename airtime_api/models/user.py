"""
User model — the authentication identity.

Each User represents a login credential (email + hashed password) with a
defined role. The User is separate from the wallet Account on purpose:

  - User handles authentication (who are you?) and authorization (what role?)
  - Account holds the public handle, phone number and the wallet balance

User types:
  - ADMIN: Platform operator — moderation, settings, manual verification
  - MEMBER: Customer — the default role for signup

The password is stored as an Argon2id hash — never in plaintext.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from airtime_api.database import Base


class UserType(str, enum.Enum):
    """
    Defines the role a user holds within the platform.

    Inherits from str so the enum value serializes naturally to JSON.
    """
    ADMIN = "admin"
    MEMBER = "member"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Email is the login identifier, must be unique and indexed for fast lookups
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Argon2id hash of the password
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    user_type: Mapped[UserType] = mapped_column(
        Enum(UserType),
        default=UserType.MEMBER,
        nullable=False,
    )

    # Soft-disable: deactivated users can't log in but their data is preserved
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    # One-to-one with the wallet Account (admins have none)
    account: Mapped["Account"] = relationship(
        back_populates="user",
        uselist=False,
    )
