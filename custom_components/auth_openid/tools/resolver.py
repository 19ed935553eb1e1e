"""Resolves a validated OpenID identity to a local account."""

import logging
from typing import Mapping

from ..config.const import (
    ACCOUNT_TYPE_OPENID,
    ATTRIBUTE_EMAIL,
    ATTRIBUTE_FRIENDLY_NAME,
)
from .errors import AccountResolutionError, ResolutionError
from .synchronizer import AccountSynchronizer, SyncContext
from .types import IDENTITY_SLOT, AccountRepository, LocalAccount

_LOGGER = logging.getLogger(__name__)

MESSAGE_IDENTIFIER_TAKEN = (
    "This username is already taken from another login handler, "
    "sorry you can not use this username anymore."
)
MESSAGE_MISSING_EMAIL = (
    "Your OpenID provider did not share an email address, "
    "which is required to create an account."
)


class IdentityResolver:
    """Looks up or provisions the local account of an external identity.

    Uniqueness checks are read-then-act, the repository owns atomicity and
    refuses duplicates on create, which surfaces as PERSISTENCE_FAILED.
    """

    def __init__(
        self, repository: AccountRepository, synchronizer: AccountSynchronizer
    ) -> None:
        self.repository = repository
        self.synchronizer = synchronizer

    async def async_resolve(
        self,
        verified: bool,
        external_id: str,
        attributes: Mapping[str, str],
        context: SyncContext,
    ) -> LocalAccount:
        """Return the account the identity resolves to.

        Raises AccountResolutionError if the login should be declined.
        """
        if not verified and not external_id:
            raise AccountResolutionError(ResolutionError.NOT_VERIFIED)

        account = await self.repository.async_find_by_external_identity(
            external_id, ACCOUNT_TYPE_OPENID
        )
        is_new_account = account is None

        if account is None:
            account = await self._async_prepare_account(external_id, attributes)

        await self.synchronizer.async_synchronize(
            account, is_new_account, attributes, context
        )

        _LOGGER.info(
            "Resolved OpenID identity %s to account %s (new: %s)",
            external_id,
            account.account_id,
            is_new_account,
        )
        return account

    async def _async_prepare_account(
        self, external_id: str, attributes: Mapping[str, str]
    ) -> LocalAccount:
        """Build a not yet persisted account for a first time login."""
        if await self.repository.async_find_by_external_identity(external_id):
            _LOGGER.warning(
                "OpenID identity %s is already bound to another login handler",
                external_id,
            )
            raise AccountResolutionError(
                ResolutionError.IDENTIFIER_TAKEN, MESSAGE_IDENTIFIER_TAKEN
            )

        if not attributes.get(ATTRIBUTE_EMAIL):
            _LOGGER.info(
                "Declining OpenID identity %s without %s attribute",
                external_id,
                ATTRIBUTE_EMAIL,
            )
            raise AccountResolutionError(
                ResolutionError.MISSING_REQUIRED_ATTRIBUTE, MESSAGE_MISSING_EMAIL
            )

        username = ""
        if friendly_name := attributes.get(ATTRIBUTE_FRIENDLY_NAME):
            # A taken username is left empty rather than reused
            if not await self.repository.async_username_exists(friendly_name):
                username = friendly_name
            else:
                _LOGGER.debug(
                    "Username %s is taken, creating account without username",
                    friendly_name,
                )

        return LocalAccount({IDENTITY_SLOT: external_id, "username": username})
