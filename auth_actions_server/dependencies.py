# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""FastAPI dependencies wiring the issuer and verifier to their collaborators."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth_actions_server.config import settings
from auth_actions_server.database import get_db
from auth_actions_server.services.email import Mailer
from auth_actions_server.services.identity import SupabaseIdentityProvider
from auth_actions_server.services.issuer import CodeIssuer
from auth_actions_server.services.verifier import CodeVerifier


def get_identity(request: Request) -> SupabaseIdentityProvider:
    """Identity provider built at startup (see main.lifespan)."""
    return request.app.state.identity


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


async def get_issuer(
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    identity: SupabaseIdentityProvider = Depends(get_identity),
) -> CodeIssuer:
    return CodeIssuer(db, settings, mailer, identity)


async def get_verifier(
    db: AsyncSession = Depends(get_db),
    identity: SupabaseIdentityProvider = Depends(get_identity),
) -> CodeVerifier:
    return CodeVerifier(db, identity)
