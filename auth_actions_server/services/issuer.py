# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Issue verification codes: persist a fresh code, then email it."""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from auth_actions_server.config import Settings
from auth_actions_server.errors import ValidationError
from auth_actions_server.models import CodePurpose, VerificationCode
from auth_actions_server.services.codes import code_expiry, generate_code, replace_code, utcnow
from auth_actions_server.services.email import Mailer, render_code_email
from auth_actions_server.services.identity import SupabaseIdentityProvider

logger = logging.getLogger(__name__)

SUBJECTS: dict[CodePurpose, str] = {
    CodePurpose.RESET: "Reset your password",
    CodePurpose.SIGNUP: "Welcome to {brand} - Verify your email",
}


class CodeIssuer:
    """Generates, stores and delivers codes for signup and password reset."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        mailer: Mailer,
        identity: SupabaseIdentityProvider,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.settings = settings
        self.mailer = mailer
        self.identity = identity
        self.clock = clock

    async def issue(self, email: str, purpose: CodePurpose) -> VerificationCode:
        """
        Replace the live code for (email, purpose) and email it.

        The row is committed before delivery; if sending fails the row stays
        and is superseded by the next issuance.
        """
        if not email:
            raise ValidationError("Email is required")
        code = generate_code()
        expires_at = code_expiry(self.clock(), self.settings.code_ttl_minutes)
        row = await replace_code(self.db, email, purpose, code, expires_at)
        logger.info("Issued %s code for %s (expires %s)", purpose.value, email, expires_at.isoformat())

        subject = SUBJECTS[purpose].format(brand=self.settings.mail_from_name)
        html = render_code_email(code, self.settings.code_ttl_minutes, brand=self.settings.mail_from_name)
        await self.mailer.send(email, subject, html)
        return row

    async def request_reset(self, email: str) -> None:
        await self.issue(email, CodePurpose.RESET)

    async def signup(self, email: str, password: str | None, data: dict | None = None) -> dict:
        """Create an unconfirmed account, then send its confirmation code."""
        if not email:
            raise ValidationError("Email is required")
        user = await self.identity.create_user(email, password, data)
        logger.info("Created unconfirmed account %s for %s", user.get("id"), email)
        await self.issue(email, CodePurpose.SIGNUP)
        return user
