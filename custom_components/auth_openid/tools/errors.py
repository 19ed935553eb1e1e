"""Errors raised while resolving an OpenID login to a local account."""

from enum import StrEnum


class ResolutionError(StrEnum):
    """Reason why a login could not be resolved to a local account."""

    # Neither a verified assertion nor an identifier, declines silently
    NOT_VERIFIED = "not_verified"
    # Identifier already bound to an account of another login handler
    IDENTIFIER_TAKEN = "identifier_taken"
    # The provider did not send a mandatory attribute (email)
    MISSING_REQUIRED_ATTRIBUTE = "missing_required_attribute"
    # Storage refused to create or update the account
    PERSISTENCE_FAILED = "persistence_failed"


class AccountResolutionError(Exception):
    "Raised when an external identity cannot be resolved to a local account"

    reason: ResolutionError
    message: str | None

    def __init__(self, reason: ResolutionError, message: str | None = None):
        self.reason = reason
        self.message = message
        super().__init__(message or reason.value)
