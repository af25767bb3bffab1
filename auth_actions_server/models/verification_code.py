# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""One-time verification code model."""

import enum
from datetime import datetime
from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from auth_actions_server.models.base import Base


class CodePurpose(str, enum.Enum):
    """Which gated account action a code authorizes."""

    SIGNUP = "signup"
    RESET = "reset"


class VerificationCode(Base):
    """Six-digit code emailed for signup confirmation or password reset.

    At most one row exists per (email, purpose); issuing a new code replaces it.
    """

    __tablename__ = "verification_codes"
    __table_args__ = (
        UniqueConstraint("email", "purpose", name="uq_verification_codes_email_purpose"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    purpose: Mapped[str] = mapped_column(String(16), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
