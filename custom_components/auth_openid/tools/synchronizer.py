"""Applies provider attributes to a local account and its address."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

from ..config.const import ACCOUNT_TYPE_OPENID, ADDRESS_GROUP_DEFAULT
from .attributes import AttributeDictionary
from .errors import AccountResolutionError, ResolutionError
from .types import (
    IDENTITY_SLOT,
    AccountRepository,
    AuditSink,
    LocalAccount,
    LocalAddress,
)

_LOGGER = logging.getLogger(__name__)

AUDIT_CATEGORY = "session"


@dataclass(frozen=True)
class SyncContext:
    """Request scoped values used as defaults for the account fields."""

    # Current display language, used unless the provider sends language/pref
    language: str
    now: datetime


class AccountSynchronizer:
    """Creates or updates local accounts from attribute exchange data.

    With `always_sync` disabled, attributes are only applied once when the
    account is created. Returning users then only get their last login
    timestamp refreshed.
    """

    def __init__(
        self,
        repository: AccountRepository,
        audit: AuditSink,
        attribute_dictionary: AttributeDictionary,
        always_sync: bool = True,
    ) -> None:
        self.repository = repository
        self.audit = audit
        self.attribute_dictionary = attribute_dictionary
        self.always_sync = always_sync

    async def async_synchronize(
        self,
        account: LocalAccount,
        is_new_account: bool,
        attributes: Mapping[str, str],
        context: SyncContext,
    ) -> None:
        """Persist the attribute state of the account.

        Raises AccountResolutionError when storage rejects the change.
        """
        timestamp = context.now.isoformat()

        if not is_new_account and not self.always_sync:
            account["last_login"] = timestamp
            await self._async_update(account, None)
            return

        values: dict[str, str | int] = {
            "language": context.language,
            "last_login": timestamp,
        }
        if is_new_account:
            values["registered"] = timestamp
            values["account_type"] = ACCOUNT_TYPE_OPENID
            values["parent_id"] = 0

        values.update(self.attribute_dictionary.map(attributes))

        if is_new_account:
            address = LocalAddress(group=ADDRESS_GROUP_DEFAULT)
        else:
            address = await self.repository.async_get_address(
                account.account_id, ADDRESS_GROUP_DEFAULT
            )
            if address is None:
                _LOGGER.debug(
                    "Account %s has no default address yet, creating one",
                    account.account_id,
                )
                address = LocalAddress(
                    account_id=account.account_id, group=ADDRESS_GROUP_DEFAULT
                )

        account.update(values)
        address.update(values)

        if not is_new_account:
            await self._async_update(account, address)
            return

        if not await self.repository.async_create_account_with_address(
            account, address
        ):
            _LOGGER.warning(
                "Could not create account for OpenID identity %s",
                account.get(IDENTITY_SLOT),
            )
            raise AccountResolutionError(ResolutionError.PERSISTENCE_FAILED)

        self.audit.record(
            f'User created from OpenID login handler "{account.get("username") or account.account_id}".',
            AUDIT_CATEGORY,
            logging.INFO,
        )

    async def _async_update(
        self, account: LocalAccount, address: LocalAddress | None
    ) -> None:
        if not await self.repository.async_update_account_with_address(
            account, address
        ):
            _LOGGER.warning("Could not update account %s", account.account_id)
            raise AccountResolutionError(ResolutionError.PERSISTENCE_FAILED)
