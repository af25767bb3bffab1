# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Verification code store access, generation and expiry helpers."""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from auth_actions_server.errors import DependencyError, NotFoundError
from auth_actions_server.models import CodePurpose, VerificationCode

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_code() -> str:
    """Random six-digit code in 100000..999999 (no leading zero)."""
    return str(100000 + secrets.randbelow(900000))


def code_expiry(now: datetime, ttl_minutes: int) -> datetime:
    return now + timedelta(minutes=ttl_minutes)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(row: VerificationCode, now: datetime) -> bool:
    """A code is valid only while now < expires_at."""
    return now >= _aware(row.expires_at)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    retry=retry_if_exception_type((IntegrityError, OperationalError)),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def _replace_code_once(
    db: AsyncSession,
    email: str,
    purpose: CodePurpose,
    code: str,
    expires_at: datetime,
) -> VerificationCode:
    try:
        await db.execute(
            delete(VerificationCode).where(
                VerificationCode.email == email,
                VerificationCode.purpose == purpose.value,
            )
        )
        row = VerificationCode(
            email=email,
            code=code,
            purpose=purpose.value,
            expires_at=expires_at,
        )
        db.add(row)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    return row


async def replace_code(
    db: AsyncSession,
    email: str,
    purpose: CodePurpose,
    code: str,
    expires_at: datetime,
) -> VerificationCode:
    """
    Make `code` the single live code for (email, purpose).

    Prior rows are deleted and the new one inserted in one transaction. The
    unique constraint on (email, purpose) rejects a concurrent issuer's insert;
    the losing transaction is retried so the newest issuance wins.
    """
    try:
        return await _replace_code_once(db, email, purpose, code, expires_at)
    except SQLAlchemyError as e:
        logger.error("Failed to store %s code for %s: %s", purpose.value, email, e)
        raise DependencyError("Failed to store verification code") from e


async def find_code(
    db: AsyncSession,
    email: str,
    code: str,
    purpose: CodePurpose | None = None,
    *,
    for_update: bool = False,
) -> VerificationCode:
    """
    Return the single row matching (email, code[, purpose]).

    Zero or several matches raise NotFoundError("Invalid code"). With
    `for_update`, the row is locked until the session's transaction ends.
    """
    stmt = select(VerificationCode).where(
        VerificationCode.email == email,
        VerificationCode.code == code,
    )
    if purpose is not None:
        stmt = stmt.where(VerificationCode.purpose == purpose.value)
    if for_update:
        stmt = stmt.with_for_update()
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.error("Code lookup failed for %s: %s", email, e)
        raise DependencyError("Failed to look up verification code") from e
    rows = result.scalars().all()
    if len(rows) != 1:
        raise NotFoundError("Invalid code")
    return rows[0]


async def delete_code(db: AsyncSession, code_id: int) -> None:
    await db.execute(delete(VerificationCode).where(VerificationCode.id == code_id))


async def purge_expired(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete every expired row. Returns the number of rows removed."""
    result = await db.execute(
        delete(VerificationCode).where(VerificationCode.expires_at <= (now or utcnow()))
    )
    await db.commit()
    return result.rowcount or 0
