"""Callback route to return the user to after external OpenID interaction."""

from aiohttp import web

from .login import CALLBACK_PATH, OpenIDLoginView


class OpenIDCallbackView(OpenIDLoginView):
    """OpenID Plugin Callback View."""

    url = CALLBACK_PATH
    name = "auth:openid:callback"

    async def get(self, request: web.Request) -> web.Response:
        """Receive response."""
        return await self.async_login(
            request.app["hass"], None, dict(request.rel_url.query)
        )

    async def post(self, request: web.Request) -> web.Response:
        """Receive response sent as a form post."""
        # Providers may answer with a POST if the response is too large for a URL
        params = dict(request.rel_url.query)
        params.update(
            (key, value)
            for key, value in (await request.post()).items()
            if isinstance(value, str)
        )
        return await self.async_login(request.app["hass"], None, params)
