"""Welcome route to show the user the OpenID identity field."""

from aiohttp import web
from homeassistant.components.http import HomeAssistantView

from ..tools.helpers import get_view
from .redirect import IDENTITY_FIELD, PATH as REDIRECT_PATH

PATH = "/auth/openid/welcome"


class OpenIDWelcomeView(HomeAssistantView):
    """OpenID Plugin Welcome View."""

    requires_auth = False
    url = PATH
    name = "auth:openid:welcome"

    def __init__(self, name: str) -> None:
        self.name = name

    async def get(self, _: web.Request) -> web.Response:
        """Show the login form."""
        view_html = await get_view(
            "welcome",
            {
                "name": self.name,
                "action": REDIRECT_PATH,
                "field": IDENTITY_FIELD,
            },
        )
        return web.Response(text=view_html, content_type="text/html")
