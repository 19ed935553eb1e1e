"""Finish route, shows the login code and hands it to the login flow."""

from homeassistant.components.http import HomeAssistantView
from aiohttp import web

from ..provider import CODE_COOKIE
from ..stores.code_store import CODE_LENGTH
from ..tools.helpers import get_view
from ..tools.validation import validate_code
from .login import error_response

PATH = "/auth/openid/finish"

# Only the login flow endpoint may read the cookie
COOKIE_PATH = "/auth/login_flow"
# Seconds, we redirect to the login flow right away
COOKIE_MAX_AGE = 5


class OpenIDFinishView(HomeAssistantView):
    """OpenID Plugin Finish View."""

    requires_auth = False
    url = PATH
    name = "auth:openid:finish"

    async def get(self, request: web.Request) -> web.Response:
        """Show the code, to type in on another device or continue here."""
        code = request.query.get("code")

        if not code:
            return await error_response("Missing code to show the finish screen.")
        if not validate_code(code, CODE_LENGTH):
            return await error_response("This is not a valid login code.", 400)

        view_html = await get_view("finish", {"code": code})
        return web.Response(text=view_html, content_type="text/html")

    async def post(self, request: web.Request) -> web.Response:
        """Continue on this device, the login flow picks the code up from a cookie."""
        data = await request.post()
        code = data.get("code")

        if not validate_code(code, CODE_LENGTH):
            return await error_response("Missing or invalid login code.", 400)

        response = web.HTTPFound(location="/?storeToken=true")
        response.set_cookie(
            CODE_COOKIE,
            code,
            path=COOKIE_PATH,
            max_age=COOKIE_MAX_AGE,
            httponly=True,
            samesite="Strict",
        )
        return response
