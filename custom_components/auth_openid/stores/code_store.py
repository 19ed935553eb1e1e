"""Code Store, stores the codes and their associated local account temporarily."""

import random
import string

from datetime import datetime, timedelta, timezone
from typing import cast, Optional
from homeassistant.helpers.storage import Store
from homeassistant.core import HomeAssistant

STORAGE_VERSION = 1
STORAGE_KEY = "auth_provider.auth_openid.codes"

# Codes can only be redeemed within this time
CODE_LIFETIME = timedelta(minutes=5)
CODE_LENGTH = 6


class CodeStore:
    """Holds the codes and associated account ids"""

    def __init__(self, hass: HomeAssistant) -> None:
        """Initialize the code store."""
        self.hass = hass
        self._store = Store[dict[str, dict[str, str]]](
            hass, STORAGE_VERSION, STORAGE_KEY, private=True, atomic_writes=True
        )
        self._data: dict[str, dict[str, str]] | None = None

    async def async_load(self) -> None:
        """Load stored data."""
        if (data := await self._store.async_load()) is None:
            data = cast(dict[str, dict[str, str]], {})
        self._data = data

    async def async_save(self) -> None:
        """Save data."""
        if self._data is not None:
            await self._store.async_save(self._data)

    def get_data(self) -> dict[str, dict[str, str]] | None:
        """Return the loaded codes."""
        return self._data

    def _generate_code(self) -> str:
        """Generate a random six-digit code."""
        return "".join(random.choices(string.digits, k=CODE_LENGTH))

    async def async_generate_code_for_account(self, account_id: str) -> str:
        """Generates a one time code and adds it to the database for 5 minutes."""
        if self._data is None:
            raise RuntimeError("Data not loaded")

        code = self._generate_code()
        expiration = datetime.now(timezone.utc) + CODE_LIFETIME

        self._data[code] = {
            "account_id": account_id,
            "code": code,
            "expiration": expiration.isoformat(),
        }

        await self.async_save()
        return code

    async def receive_account_id_for_code(self, code: str) -> Optional[str]:
        """Retrieve the account id based on the code."""
        if self._data is None:
            raise RuntimeError("Data not loaded")

        code_data = self._data.get(code)

        if code_data:
            # We should now wipe it from the database, as it's one time use code
            self._data.pop(code)
            await self.async_save()

        if (
            code_data
            and datetime.fromisoformat(code_data["expiration"])
            > datetime.now(timezone.utc)
        ):
            return code_data["account_id"]

        return None
