"""Redirect route to send the user to their OpenID provider,
can either be linked to directly or posted to from the welcome page."""

from aiohttp import web

from ..tools.validation import sanitize_identity, validate_identity
from .login import OpenIDLoginView, error_response

PATH = "/auth/openid/redirect"

# Form field carrying the identity typed in by the user
IDENTITY_FIELD = "openid_user"


class OpenIDRedirectView(OpenIDLoginView):
    """OpenID Plugin Redirect View."""

    url = PATH
    name = "auth:openid:redirect"

    async def get(self, req: web.Request) -> web.Response:
        """Start the login for the identity in the query."""
        return await self._async_start(req, req.query.get(IDENTITY_FIELD))

    async def post(self, req: web.Request) -> web.Response:
        """Start the login for the identity in the form."""
        data = await req.post()
        return await self._async_start(req, data.get(IDENTITY_FIELD))

    async def _async_start(
        self, req: web.Request, identity: str | None
    ) -> web.Response:
        identity = sanitize_identity(identity)
        if identity and not validate_identity(identity):
            return await error_response("This is not a valid OpenID identity.")

        return await self.async_login(req.app["hass"], identity or None, {})
