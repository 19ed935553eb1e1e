"""Audit trail of the OpenID login handler."""

import logging

from homeassistant.core import HomeAssistant

from ..config.const import EVENT_AUDIT

_AUDIT_LOGGER = logging.getLogger(__name__)


class HassAuditSink:
    """Writes audit messages to the audit logger and the event bus."""

    def __init__(self, hass: HomeAssistant) -> None:
        self.hass = hass

    def record(self, message: str, category: str, severity: int) -> None:
        """Record an audit message."""
        _AUDIT_LOGGER.log(severity, "[%s] %s", category, message)
        self.hass.bus.async_fire(
            EVENT_AUDIT,
            {
                "message": message,
                "category": category,
                "severity": logging.getLevelName(severity).lower(),
            },
        )
