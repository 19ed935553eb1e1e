"""Orchestrates one OpenID login attempt."""

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Mapping

from ..config.const import OPTIONAL_ATTRIBUTES, REQUIRED_ATTRIBUTES
from .errors import AccountResolutionError
from .openid_client import OpenIDClient, OpenIDClientException
from .resolver import IdentityResolver
from .synchronizer import SyncContext
from .types import LocalAccount, Session

_LOGGER = logging.getLogger(__name__)


class FlowState(StrEnum):
    """Terminal state of a login attempt."""

    # The user was sent to the provider
    REDIRECT_ISSUED = "redirect_issued"
    # The account was resolved and handed to the session
    COMPLETED = "completed"
    # The login was declined
    REJECTED = "rejected"
    # Nothing for this handler to do, other handlers may try
    SKIPPED = "skipped"


@dataclass(frozen=True)
class LoginRequest:
    """The parts of an inbound request the login flow looks at."""

    # Identity URL typed in by the user, if any
    identity_url: str | None
    # Query (or form) parameters, carries the provider response on callback
    params: Mapping[str, str]
    # Where the provider sends the user back to
    return_to: str
    realm: str


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a login attempt."""

    state: FlowState
    success: bool = False
    redirect_url: str | None = None
    account: LocalAccount | None = None
    # User facing message, only set where the user can act on it
    message: str | None = None


class LoginFlowController:
    """Drives redirect and callback of the OpenID login.

    Every error is turned into a LoginResult, nothing is raised to the
    caller.
    """

    def __init__(
        self,
        openid_client: OpenIDClient,
        resolver: IdentityResolver,
    ) -> None:
        self.openid_client = openid_client
        self.resolver = resolver

    async def async_login(
        self, request: LoginRequest, session: Session, context: SyncContext
    ) -> LoginResult:
        """Handle a login request."""
        is_callback = self.openid_client.is_callback_mode(request.params)

        if not request.identity_url and not is_callback:
            return LoginResult(FlowState.SKIPPED)

        if request.identity_url:
            return await self._async_redirect(request)

        return await self._async_callback(request, session, context)

    async def _async_redirect(self, request: LoginRequest) -> LoginResult:
        try:
            redirect_url = await self.openid_client.async_build_auth_redirect(
                request.identity_url,
                REQUIRED_ATTRIBUTES,
                OPTIONAL_ATTRIBUTES,
                request.return_to,
                request.realm,
            )
        except OpenIDClientException as e:
            _LOGGER.warning(
                "Could not start OpenID login for %s: %s", request.identity_url, e
            )
            return LoginResult(
                FlowState.REJECTED,
                message="Could not find an OpenID provider for this identity.",
            )

        return LoginResult(FlowState.REDIRECT_ISSUED, redirect_url=redirect_url)

    async def _async_callback(
        self, request: LoginRequest, session: Session, context: SyncContext
    ) -> LoginResult:
        try:
            assertion = await self.openid_client.async_validate_assertion(
                request.params, request.return_to
            )
        except OpenIDClientException as e:
            _LOGGER.warning("Could not verify OpenID response: %s", e)
            return LoginResult(FlowState.REJECTED)

        try:
            account = await self.resolver.async_resolve(
                assertion.verified,
                assertion.identifier,
                assertion.fetch_attributes(),
                context,
            )
        except AccountResolutionError as e:
            _LOGGER.debug("OpenID login declined: %s", e.reason)
            return LoginResult(FlowState.REJECTED, message=e.message)

        success = await session.async_validate_login(account)
        return LoginResult(FlowState.COMPLETED, success=success, account=account)
