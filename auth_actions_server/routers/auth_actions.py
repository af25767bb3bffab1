# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Single action-dispatched endpoint for signup and password reset codes."""

from fastapi import APIRouter, Depends, Response

from auth_actions_server.api.schemas import AuthActionRequest
from auth_actions_server.dependencies import get_issuer, get_verifier
from auth_actions_server.errors import ValidationError
from auth_actions_server.services.issuer import CodeIssuer
from auth_actions_server.services.verifier import CodeVerifier

router = APIRouter(tags=["auth-actions"])


@router.options("/auth-actions")
async def auth_actions_preflight() -> Response:
    """CORS preflight: 200 with no body."""
    return Response(status_code=200)


@router.post("/auth-actions")
async def auth_actions(
    data: AuthActionRequest,
    issuer: CodeIssuer = Depends(get_issuer),
    verifier: CodeVerifier = Depends(get_verifier),
) -> dict:
    """Dispatch on `action`. Any failure is answered with 400 {"error": message}."""
    if not data.email:
        raise ValidationError("Email is required")

    if data.action == "request_reset":
        await issuer.request_reset(data.email)
        return {"message": "Code sent successfully"}

    if data.action == "signup":
        user = await issuer.signup(data.email, data.password, data.data)
        return {"user": user}

    if data.action == "verify_signup":
        await verifier.complete_signup(data.email, data.code)
        return {"success": True}

    if data.action == "verify_code":
        row = await verifier.peek(data.email, data.code)
        return {"valid": True, "type": row.purpose}

    if data.action == "complete_reset":
        await verifier.complete_reset(data.email, data.code, data.new_password)
        return {"success": True}

    raise ValidationError("Invalid action")
