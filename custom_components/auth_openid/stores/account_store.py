"""Account Store, persists local accounts and their addresses."""

import asyncio
import logging
from typing import Any, cast
from uuid import uuid4

from homeassistant.auth.auth_store import AuthStore
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from ..tools.types import (
    ACCOUNT_FIELDS,
    ADDRESS_FIELDS,
    IDENTITY_SLOT,
    LocalAccount,
    LocalAddress,
)

STORAGE_VERSION = 1
STORAGE_KEY = "auth_provider.auth_openid.accounts"

# Home Assistant username and password provider, its usernames count as taken
HASS_PROVIDER_TYPE = "homeassistant"

_LOGGER = logging.getLogger(__name__)

StoreData = dict[str, dict[str, dict[str, Any]]]


def _filter_fields(record: dict, fields: tuple[str, ...]) -> dict[str, Any]:
    """Drop the fields a record type does not know about."""
    return {key: value for key, value in record.items() if key in fields}


class AccountStore:
    """Holds the local accounts and their addresses.

    Writes are serialized by a lock and only applied to memory after the
    unique constraints hold and the data was saved:
    - one account per identity slot and account type
    - non empty usernames are unique across all account types
    """

    def __init__(
        self, hass: HomeAssistant, auth_store: AuthStore | None = None
    ) -> None:
        """Initialize the account store."""
        self.hass = hass
        self.auth_store = auth_store
        self._store = Store[StoreData](
            hass, STORAGE_VERSION, STORAGE_KEY, private=True, atomic_writes=True
        )
        self._data: StoreData | None = None
        self._lock = asyncio.Lock()

    async def async_load(self) -> None:
        """Load stored data."""
        if (data := await self._store.async_load()) is None:
            data = cast(StoreData, {})
        data.setdefault("accounts", {})
        data.setdefault("addresses", {})
        self._data = data

    def get_data(self) -> StoreData:
        """Return the loaded data."""
        if self._data is None:
            raise RuntimeError("Data not loaded")
        return self._data

    async def async_find_by_external_identity(
        self, identifier: str, account_type: str | None = None
    ) -> LocalAccount | None:
        """Find an account by its identity slot, optionally of one account type."""
        for record in self.get_data()["accounts"].values():
            if record.get(IDENTITY_SLOT) != identifier:
                continue
            if account_type is not None and record.get("account_type") != account_type:
                continue
            return LocalAccount(record)
        return None

    async def async_get_account(self, account_id: str) -> LocalAccount | None:
        """Get an account by its id."""
        record = self.get_data()["accounts"].get(account_id)
        return LocalAccount(record) if record is not None else None

    async def async_username_exists(self, username: str) -> bool:
        """Check whether any account, of any type, uses the username.

        Usernames of the Home Assistant login are taken as well.
        """
        if any(
            record.get("username") == username
            for record in self.get_data()["accounts"].values()
        ):
            return True

        if self.auth_store is None:
            return False

        for user in await self.auth_store.async_get_users():
            # System generated users don't have usernames
            if user.system_generated:
                continue

            for credential in user.credentials:
                if (
                    credential.auth_provider_type == HASS_PROVIDER_TYPE
                    and credential.data.get("username") == username
                ):
                    return True

        return False

    async def async_get_address(
        self, account_id: str, group: str
    ) -> LocalAddress | None:
        """Return the address of the account within the given group."""
        for record in self.get_data()["addresses"].values():
            if record.get("account_id") == account_id and record.get("group") == group:
                return LocalAddress(record)
        return None

    def _find_conflict(self, account: dict, exclude_id: str | None) -> str | None:
        """Return a description of the violated constraint, if any."""
        identifier = account.get(IDENTITY_SLOT)
        username = account.get("username")
        for account_id, record in self.get_data()["accounts"].items():
            if account_id == exclude_id:
                continue
            if (
                identifier
                and record.get(IDENTITY_SLOT) == identifier
                and record.get("account_type") == account.get("account_type")
            ):
                return "identity already bound"
            if username and record.get("username") == username:
                return f"username '{username}' already used"
        return None

    async def _async_commit(self, data: StoreData) -> bool:
        """Save the new data and make it current."""
        try:
            await self._store.async_save(data)
        except HomeAssistantError as e:
            _LOGGER.error("Failed to save accounts: %s", e)
            return False

        self._data = data
        return True

    def _copy_data(self) -> StoreData:
        current = self.get_data()
        return {
            "accounts": dict(current["accounts"]),
            "addresses": dict(current["addresses"]),
        }

    async def async_create_account_with_address(
        self, account: LocalAccount, address: LocalAddress
    ) -> bool:
        """Atomically create the account and its address, False on any failure."""
        async with self._lock:
            if account.get("id"):
                _LOGGER.warning("Account %s already has an id", account["id"])
                return False

            if (conflict := self._find_conflict(account, None)) is not None:
                _LOGGER.warning("Refusing to create account: %s", conflict)
                return False

            account_id = uuid4().hex
            address_id = uuid4().hex

            data = self._copy_data()
            data["accounts"][account_id] = {
                **_filter_fields(account, ACCOUNT_FIELDS),
                "id": account_id,
            }
            data["addresses"][address_id] = {
                **_filter_fields(address, ADDRESS_FIELDS),
                "id": address_id,
                "account_id": account_id,
            }

            if not await self._async_commit(data):
                return False

        account["id"] = account_id
        address["id"] = address_id
        address["account_id"] = account_id
        return True

    async def async_update_account_with_address(
        self, account: LocalAccount, address: LocalAddress | None
    ) -> bool:
        """Atomically update the account and, if given, its address."""
        async with self._lock:
            account_id = account.get("id")
            if account_id not in self.get_data()["accounts"]:
                _LOGGER.warning("Cannot update unknown account %s", account_id)
                return False

            if (conflict := self._find_conflict(account, account_id)) is not None:
                _LOGGER.warning(
                    "Refusing to update account %s: %s", account_id, conflict
                )
                return False

            data = self._copy_data()
            data["accounts"][account_id] = {
                **data["accounts"][account_id],
                **_filter_fields(account, ACCOUNT_FIELDS),
            }

            address_id = None
            if address is not None:
                address_id = address.get("id") or uuid4().hex
                existing = data["addresses"].get(address_id, {})
                if existing and existing.get("account_id") != account_id:
                    _LOGGER.warning(
                        "Address %s does not belong to account %s",
                        address_id,
                        account_id,
                    )
                    return False

                data["addresses"][address_id] = {
                    **existing,
                    **_filter_fields(address, ADDRESS_FIELDS),
                    "id": address_id,
                    "account_id": account_id,
                }

            if not await self._async_commit(data):
                return False

        if address is not None:
            address["id"] = address_id
            address["account_id"] = account_id
        return True
