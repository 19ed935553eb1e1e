"""Base view running the OpenID login flow for a request."""

import logging
from datetime import datetime, timezone
from typing import Mapping

from aiohttp import web
from homeassistant.components.http import HomeAssistantView
from homeassistant.core import HomeAssistant

from ..provider import CodeSession, OpenIDAuthProvider
from ..tools.helpers import get_url, get_view
from ..tools.login_flow import FlowState, LoginFlowController, LoginRequest
from ..tools.synchronizer import SyncContext

CALLBACK_PATH = "/auth/openid/callback"

_LOGGER = logging.getLogger(__name__)


async def error_response(error: str, status: int = 200) -> web.Response:
    """Render the error page."""
    view_html = await get_view("error", {"error": error})
    return web.Response(text=view_html, content_type="text/html", status=status)


class OpenIDLoginView(HomeAssistantView):
    """Hands a request to the login flow and renders the outcome."""

    requires_auth = False

    def __init__(
        self,
        controller: LoginFlowController,
        provider: OpenIDAuthProvider,
        realm: str | None,
        force_https: bool,
    ) -> None:
        self.controller = controller
        self.provider = provider
        self.realm = realm
        self.force_https = force_https

    async def async_login(
        self,
        hass: HomeAssistant,
        identity_url: str | None,
        params: Mapping[str, str],
    ) -> web.Response:
        """Run the login flow and turn its result into a response."""
        request = LoginRequest(
            identity_url=identity_url,
            params=params,
            return_to=get_url(CALLBACK_PATH, self.force_https),
            realm=self.realm or get_url("/", self.force_https),
        )
        context = SyncContext(
            language=hass.config.language,
            now=datetime.now(timezone.utc),
        )
        session = CodeSession(self.provider)

        result = await self.controller.async_login(request, session, context)
        _LOGGER.debug("OpenID login flow ended in state %s", result.state)

        if result.state == FlowState.REDIRECT_ISSUED:
            return web.HTTPFound(result.redirect_url)

        if result.state == FlowState.SKIPPED:
            return await error_response("Missing OpenID identity.")

        if result.state == FlowState.REJECTED:
            return await error_response(
                result.message
                or "OpenID login failed, see Home Assistant logs for more information."
            )

        if not result.success or session.code is None:
            return await error_response("Could not sign you in.")

        # Redirect to the finish page with the code to show both options
        # (options = copy code externally or use the cookie method to sign in)
        return web.HTTPFound(
            get_url("/auth/openid/finish?code=" + session.code, self.force_https)
        )
