"""Tests for the account store"""

from unittest.mock import patch

import pytest

from homeassistant.auth.models import Credentials
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError

from custom_components.auth_openid.stores.account_store import (
    STORAGE_KEY,
    AccountStore,
)
from custom_components.auth_openid.tools.types import LocalAccount, LocalAddress

ALICE = "https://provider/alice"


async def create_store(hass: HomeAssistant) -> AccountStore:
    """Create and load an account store."""
    # pylint: disable=protected-access
    store = AccountStore(hass, hass.auth._store)
    await store.async_load()
    return store


def openid_account(identifier: str = ALICE, username: str = "") -> LocalAccount:
    """Create an unsaved openid account."""
    return LocalAccount(
        password=identifier, username=username, account_type="openid", parent_id=0
    )


@pytest.mark.asyncio
async def test_not_loaded(hass: HomeAssistant):
    """Test that using the store before loading raises RuntimeError."""
    store = AccountStore(hass)

    with pytest.raises(RuntimeError):
        await store.async_find_by_external_identity(ALICE)


@pytest.mark.asyncio
async def test_create_and_find(hass: HomeAssistant, hass_storage):
    """Test creating an account with its address."""
    store = await create_store(hass)
    account = openid_account(username="alice")
    account["nickname"] = "al"
    address = LocalAddress(group="default", email="a@x.com")

    assert await store.async_create_account_with_address(account, address)
    assert account.account_id
    assert address["account_id"] == account.account_id

    found = await store.async_find_by_external_identity(ALICE, "openid")
    assert found.account_id == account.account_id
    assert await store.async_find_by_external_identity(ALICE, "local") is None
    assert await store.async_find_by_external_identity(ALICE) is not None

    stored_address = await store.async_get_address(account.account_id, "default")
    assert stored_address["email"] == "a@x.com"
    assert await store.async_get_address(account.account_id, "shipping") is None

    assert await store.async_username_exists("alice")
    assert not await store.async_username_exists("bob")

    # Fields accounts don't know about are not stored
    saved = hass_storage[STORAGE_KEY]["data"]
    assert "nickname" not in saved["accounts"][account.account_id]
    assert saved["addresses"][address["id"]]["group"] == "default"


@pytest.mark.asyncio
async def test_reload(hass: HomeAssistant):
    """Test that accounts survive a reload of the store."""
    store = await create_store(hass)
    account = openid_account()
    assert await store.async_create_account_with_address(
        account, LocalAddress(group="default")
    )

    reloaded = await create_store(hass)
    found = await reloaded.async_get_account(account.account_id)
    assert found["password"] == ALICE


@pytest.mark.asyncio
async def test_unique_identity(hass: HomeAssistant):
    """Test that an identity can only be bound once per account type."""
    store = await create_store(hass)

    assert await store.async_create_account_with_address(
        openid_account(), LocalAddress(group="default")
    )
    assert not await store.async_create_account_with_address(
        openid_account(), LocalAddress(group="default")
    )
    assert len(store.get_data()["accounts"]) == 1
    assert len(store.get_data()["addresses"]) == 1


@pytest.mark.asyncio
async def test_unique_username(hass: HomeAssistant):
    """Test that usernames are unique, empty usernames are not."""
    store = await create_store(hass)

    assert await store.async_create_account_with_address(
        openid_account("https://provider/a", "alice"), LocalAddress(group="default")
    )
    assert not await store.async_create_account_with_address(
        openid_account("https://provider/b", "alice"), LocalAddress(group="default")
    )
    assert await store.async_create_account_with_address(
        openid_account("https://provider/c"), LocalAddress(group="default")
    )
    assert await store.async_create_account_with_address(
        openid_account("https://provider/d"), LocalAddress(group="default")
    )
    assert len(store.get_data()["accounts"]) == 3


@pytest.mark.asyncio
async def test_home_assistant_usernames_taken(hass: HomeAssistant):
    """Test that usernames of the Home Assistant login count as taken."""
    store = await create_store(hass)

    # pylint: disable=protected-access
    await hass.auth._store.async_create_user(
        "Alice",
        credentials=Credentials(
            auth_provider_type="homeassistant",
            auth_provider_id=None,
            data={"username": "alice"},
        ),
    )

    assert await store.async_username_exists("alice")
    assert not await store.async_username_exists("bob")


@pytest.mark.asyncio
async def test_update(hass: HomeAssistant):
    """Test updating an account and adding an address."""
    store = await create_store(hass)
    account = openid_account(username="alice")
    address = LocalAddress(group="default", city="Delft")
    assert await store.async_create_account_with_address(account, address)

    account["email"] = "new@x.com"
    address["city"] = "Utrecht"
    assert await store.async_update_account_with_address(account, address)

    found = await store.async_get_account(account.account_id)
    assert found["email"] == "new@x.com"
    assert found["username"] == "alice"
    updated = await store.async_get_address(account.account_id, "default")
    assert updated["city"] == "Utrecht"
    assert len(store.get_data()["addresses"]) == 1

    # Without address only the account changes
    account["last_login"] = "2024-01-01T00:00:00+00:00"
    assert await store.async_update_account_with_address(account, None)
    assert len(store.get_data()["addresses"]) == 1


@pytest.mark.asyncio
async def test_update_conflicts(hass: HomeAssistant):
    """Test that updates keep the unique constraints."""
    store = await create_store(hass)
    alice = openid_account("https://provider/a", "alice")
    bob = openid_account("https://provider/b", "bob")
    alice_address = LocalAddress(group="default")
    assert await store.async_create_account_with_address(alice, alice_address)
    assert await store.async_create_account_with_address(
        bob, LocalAddress(group="default")
    )

    bob["username"] = "alice"
    assert not await store.async_update_account_with_address(bob, None)
    assert (await store.async_get_account(bob.account_id))["username"] == "bob"

    # Addresses of other accounts can not be taken over
    bob["username"] = "bob"
    assert not await store.async_update_account_with_address(
        bob, LocalAddress(alice_address)
    )

    # Unknown accounts can not be updated
    assert not await store.async_update_account_with_address(
        openid_account("https://provider/c"), None
    )


@pytest.mark.asyncio
async def test_save_failure(hass: HomeAssistant):
    """Test that nothing changes in memory if saving fails."""
    store = await create_store(hass)

    # pylint: disable=protected-access
    with patch.object(
        store._store, "async_save", side_effect=HomeAssistantError("disk full")
    ):
        account = openid_account()
        assert not await store.async_create_account_with_address(
            account, LocalAddress(group="default")
        )

    assert not account.account_id
    assert store.get_data()["accounts"] == {}
    assert await store.async_find_by_external_identity(ALICE) is None
