# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Errors raised by the code issuer, verifier and their collaborators.

Every error carries a user-facing message. The HTTP layer turns all of them
into a 400 response with ``{"error": message}``.
"""


class AuthActionError(Exception):
    """Base class for failures surfaced to the caller of an auth action."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AuthActionError):
    """A required field is missing or the action is unknown."""


class NotFoundError(AuthActionError):
    """No matching code row, or no matching account."""


class ExpiredError(AuthActionError):
    """The code is past its expiry."""


class ConfigurationError(AuthActionError):
    """The server is missing configuration (e.g. email credentials)."""


class DependencyError(AuthActionError):
    """The code store, identity provider or email transport failed."""
