# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pydantic schemas for API request/response."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuthActionRequest(BaseModel):
    """Body of POST /auth-actions. Which fields are required depends on `action`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: str | None = None
    email: str | None = None
    code: str | None = None
    password: str | None = None
    new_password: str | None = Field(default=None, alias="newPassword")
    data: dict[str, Any] | None = None


class MessageResponse(BaseModel):
    message: str


class UserEnvelope(BaseModel):
    user: dict[str, Any]


class SuccessResponse(BaseModel):
    success: bool = True


class CodeCheckResponse(BaseModel):
    valid: bool
    type: str


class ErrorResponse(BaseModel):
    error: str
