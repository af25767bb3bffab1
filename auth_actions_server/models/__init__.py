# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Database models."""

from auth_actions_server.models.base import Base
from auth_actions_server.models.verification_code import CodePurpose, VerificationCode

__all__ = [
    "Base",
    "CodePurpose",
    "VerificationCode",
]
