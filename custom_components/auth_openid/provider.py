"""OpenID Authentication provider.
Allow access to users based on login with an external OpenID 2.0 provider,
reconciled with a local account.
"""

import logging

from typing import Dict, Optional
import asyncio
import bcrypt
from homeassistant.auth.providers import (
    AUTH_PROVIDERS,
    AuthProvider,
    LoginFlow,
    AuthFlowResult,
    Credentials,
    UserMeta,
    AuthStore,
)
from homeassistant.const import CONF_ID, CONF_NAME, CONF_TYPE
from homeassistant.core import HomeAssistant
from homeassistant.components import http
from homeassistant.exceptions import HomeAssistantError
import voluptuous as vol

from .config import DISPLAY_NAME, DEFAULT_TITLE
from .stores.account_store import AccountStore
from .stores.code_store import CodeStore
from .tools.types import LocalAccount

_LOGGER = logging.getLogger(__name__)

PROVIDER_TYPE = "auth_openid"
CODE_COOKIE = "auth_openid_code"


class InvalidAuthError(HomeAssistantError):
    """Raised when submitting invalid authentication."""


@AUTH_PROVIDERS.register("openid")
class OpenIDAuthProvider(AuthProvider):
    """Allow access to users based on login with an external
    OpenID 2.0 provider."""

    @property
    def support_mfa(self) -> bool:
        return False

    def __init__(self, hass: HomeAssistant, store: AuthStore, config: dict[str, str]):
        """Initialize the OpenIDAuthProvider."""
        super().__init__(
            hass,
            store,
            {
                CONF_ID: "default",
                # Name displayed in the UI
                CONF_NAME: config.get(DISPLAY_NAME, DEFAULT_TITLE),
                CONF_TYPE: PROVIDER_TYPE,
            },
        )

        self._code_store: CodeStore | None = None
        self._account_store: AccountStore | None = None
        self._init_lock = asyncio.Lock()

    async def async_initialize(self) -> None:
        """Initialize the auth provider."""
        # Use the same technique as the HomeAssistant auth provider for storage
        # (/auth/providers/homeassistant.py#L392)
        async with self._init_lock:
            if self._code_store is not None:
                return

            code_store = CodeStore(self.hass)
            await code_store.async_load()

            account_store = AccountStore(self.hass, self.store)
            await account_store.async_load()

            self._account_store = account_store
            self._code_store = code_store

    @property
    def account_store(self) -> AccountStore:
        """Return the loaded account store."""
        if self._account_store is None:
            raise RuntimeError("Auth provider not initialized")
        return self._account_store

    async def async_get_account_id(self, code: str) -> Optional[str]:
        """Retrieve the account id from the code."""
        if self._code_store is None:
            await self.async_initialize()
            assert self._code_store is not None

        return await self._code_store.receive_account_id_for_code(code)

    async def async_issue_code(self, account_id: str) -> str:
        """Issue a one time login code for the account."""
        if self._code_store is None:
            await self.async_initialize()
            assert self._code_store is not None

        return await self._code_store.async_generate_code_for_account(account_id)

    # ====
    # Required functions for Home Assistant Auth Providers
    # ====

    async def async_login_flow(self, context: Optional[Dict]) -> LoginFlow:
        """Return a flow to login."""
        return OpenIdLoginFlow(self)

    async def async_get_or_create_credentials(
        self, flow_result: dict[str, str]
    ) -> Credentials:
        """Get credentials based on the flow result."""
        account_id = flow_result["account_id"]

        # The local account id is stable, the claimed identifier lives in the
        # account and never in the credentials
        for credential in await self.async_credentials():
            if credential.data.get("account_id") == account_id:
                return credential

        # If the credential is new, HA will automatically create a new user for us
        _LOGGER.info("Creating credentials for OpenID account %s", account_id)
        return self.async_create_credentials({"account_id": account_id})

    async def async_user_meta_for_credentials(
        self, credentials: Credentials
    ) -> UserMeta:
        """Return extra user metadata for credentials."""
        account = await self.account_store.async_get_account(
            credentials.data["account_id"]
        )

        return UserMeta(
            name=account.display_name if account is not None else None,
            is_active=True,
            group="system-users",
            local_only=False,
        )


class CodeSession:
    """Session of a single callback request.

    Logging in issues a one time code, which the login flow redeems.
    """

    def __init__(self, provider: OpenIDAuthProvider) -> None:
        self.provider = provider
        self.code: str | None = None

    async def async_validate_login(self, account: LocalAccount) -> bool:
        """Issue a login code for the account."""
        if not account.account_id:
            return False

        self.code = await self.provider.async_issue_code(account.account_id)

        # Audit logging for the login that is about to occur
        _LOGGER.info(
            "Logged in user through OpenID: %s, %s",
            account.account_id,
            account.get("username"),
        )
        return True


class OpenIdLoginFlow(LoginFlow):
    """Handler for the login flow."""

    async def _finalize_user(self, code: str) -> AuthFlowResult:
        # Verify a dummy hash to make it last a bit longer
        # as security measure (limits the amount of attempts you have in 5 min)
        # Similar to what the HomeAssistant auth provider does
        dummy = b"$2b$12$CiuFGszHx9eNHxPuQcwBWez4CwDTOcLTX5CbOpV6gef2nYuXkY7BO"
        bcrypt.checkpw(b"foo", dummy)

        account_id = await self._auth_provider.async_get_account_id(code)
        if account_id:
            return await self.async_finish(
                {
                    "account_id": account_id,
                }
            )

        raise InvalidAuthError

    def _show_login_form(
        self, errors: Optional[dict[str, str]] = None
    ) -> AuthFlowResult:
        if errors is None:
            errors = {}

        # Abuses the MFA form, as it works better for our usecase
        return self.async_show_form(
            step_id="mfa",
            data_schema=vol.Schema(
                {
                    vol.Required("code"): str,
                }
            ),
            errors=errors,
        )

    async def async_step_init(
        self, user_input: dict[str, str] | None = None
    ) -> AuthFlowResult:
        """Handle the step of the form."""

        # Try to use the user input first
        if user_input is not None:
            try:
                return await self._finalize_user(user_input["code"])
            except InvalidAuthError:
                return self._show_login_form({"base": "invalid_auth"})

        # If not available, check the cookie
        req = http.current_request.get()
        code_cookie = req.cookies.get(CODE_COOKIE) if req is not None else None

        if code_cookie:
            _LOGGER.debug("Code cookie found on login: %s", code_cookie)
            try:
                return await self._finalize_user(code_cookie)
            except InvalidAuthError:
                pass

        # If none are available, just show the form
        return self._show_login_form()

    async def async_step_mfa(
        self, user_input: dict[str, str] | None = None
    ) -> AuthFlowResult:
        # This is a dummy step function just to use the nicer MFA UI instead
        return await self.async_step_init(user_input)
