"""Jinja2 Async Environment"""

import logging
from os import path
from typing import Dict, Any
from jinja2 import Environment, DictLoader
from aiofiles.os import scandir as async_scandir
from aiofiles import open as async_open

_LOGGER = logging.getLogger(__name__)

TEMPLATE_DIR = path.join(path.dirname(path.abspath(__file__)), "templates")

# Template sources by directory, read from disk once
templates: Dict[str, Dict[str, str]] = {}


class AsyncTemplateRenderer:
    """An asynchronous template renderer that caches the template sources."""

    def __init__(self, template_dir: str | None = None):
        self.template_dir = template_dir or TEMPLATE_DIR

    async def fetch_templates(self) -> Dict[str, str]:
        """Fetches all HTML files from the template directory."""
        sources: Dict[str, str] = {}

        for entry in await async_scandir(self.template_dir):
            if entry.is_dir() or not entry.name.endswith(".html"):
                continue

            try:
                _LOGGER.debug("Fetching template %s from disk", entry.name)
                async with async_open(
                    path.join(self.template_dir, entry.name), mode="r", encoding="utf-8"
                ) as f:
                    sources[entry.name] = await f.read()
            except OSError as e:
                _LOGGER.warning("Error reading template file %s: %s", entry.name, e)

        templates[self.template_dir] = sources
        return sources

    async def render_template(self, template_name: str, **kwargs: Any) -> str:
        """Renders a template with the given parameters."""
        sources = templates.get(self.template_dir)
        if not sources:
            sources = await self.fetch_templates()

        if template_name not in sources:
            raise ValueError(f"Template '{template_name}' not found.")

        # Values like the code come from the query string, always escape
        env = Environment(
            loader=DictLoader(sources), enable_async=True, autoescape=True
        )
        template = env.get_template(template_name)

        return await template.render_async(**kwargs)
