# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Check codes, and consume them while completing signup or password reset."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth_actions_server.errors import AuthActionError, ExpiredError, NotFoundError, ValidationError
from auth_actions_server.models import CodePurpose, VerificationCode
from auth_actions_server.services.codes import delete_code, find_code, is_expired, utcnow
from auth_actions_server.services.identity import SupabaseIdentityProvider

logger = logging.getLogger(__name__)


class CodeVerifier:
    """Peek at or consume verification codes."""

    def __init__(
        self,
        db: AsyncSession,
        identity: SupabaseIdentityProvider,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.identity = identity
        self.clock = clock

    def _check_live(self, row: VerificationCode) -> None:
        if is_expired(row, self.clock()):
            raise ExpiredError("Code expired")

    async def peek(self, email: str, code: str | None) -> VerificationCode:
        """Return the live code matching (email, code) for any purpose. Never writes."""
        if not email:
            raise ValidationError("Email is required")
        if not code:
            raise ValidationError("Code is required")
        row = await find_code(self.db, email, code)
        self._check_live(row)
        return row

    async def _consume(
        self,
        email: str,
        code: str,
        purpose: CodePurpose,
        mutate: Callable[[], Awaitable[None]],
    ) -> None:
        """
        Lock the (email, code, purpose) row, run the account mutation, then
        delete the row. A failed mutation rolls back and leaves the code usable.
        """
        try:
            row = await find_code(self.db, email, code, purpose, for_update=True)
            self._check_live(row)
            await mutate()
        except AuthActionError:
            await self.db.rollback()
            raise

        try:
            await delete_code(self.db, row.id)
            await self.db.commit()
        except SQLAlchemyError as e:
            # The account change already happened; a leftover row is harmless.
            logger.warning("Failed to delete consumed %s code %s for %s: %s", purpose.value, row.id, email, e)
            await self.db.rollback()
            return
        logger.info("Consumed %s code for %s", purpose.value, email)

    async def complete_signup(self, email: str, code: str | None) -> None:
        """Confirm the account's email address using its signup code."""
        if not email:
            raise ValidationError("Email is required")
        if not code:
            raise ValidationError("Code is required")

        async def confirm() -> None:
            user_id = await self.identity.find_user_id(email)
            if not user_id:
                raise NotFoundError("User not found")
            await self.identity.confirm_user(user_id)

        await self._consume(email, code, CodePurpose.SIGNUP, confirm)

    async def complete_reset(self, email: str, code: str | None, new_password: str | None) -> None:
        """Set a new password using the account's reset code."""
        if not email:
            raise ValidationError("Email is required")
        if not code or not new_password:
            raise ValidationError("Code and new password required")

        async def set_password() -> None:
            user_id = await self.identity.find_user_id(email)
            if not user_id:
                raise NotFoundError("User account not found")
            await self.identity.set_password(user_id, new_password)

        await self._consume(email, code, CodePurpose.RESET, set_password)
