"""Config schema"""

import voluptuous as vol

from ..tools.types import RESERVED_FIELDS
from .const import (
    DISPLAY_NAME,
    REALM,
    FEATURES,
    FEATURES_ALWAYS_SYNC_DATA,
    FEATURES_FORCE_HTTPS,
    NETWORK,
    NETWORK_TLS_VERIFY,
    NETWORK_TLS_CA_FILE,
    NETWORK_TLS_CA_PATH,
    ATTRIBUTES,
    DOMAIN,
    DEFAULT_ALWAYS_SYNC_DATA,
    DEFAULT_TLS_VERIFY,
)


def local_field(value) -> str:
    """Validate that an attribute targets a field it may write."""
    field = vol.Coerce(str)(value)
    if field in RESERVED_FIELDS:
        raise vol.Invalid(f"attributes cannot be mapped onto reserved field '{field}'")
    return field


CONFIG_SCHEMA = vol.Schema(
    {
        DOMAIN: vol.Schema(
            {
                # Which name should be shown on the login screens?
                vol.Optional(DISPLAY_NAME): vol.Coerce(str),
                # OpenID realm (trust root) presented to the provider
                # Defaults to the base URL of the current request
                vol.Optional(REALM): vol.Coerce(str),
                # Which features should be enabled/disabled?
                # Optional, defaults to sane/secure defaults
                vol.Optional(FEATURES, default={}): vol.Schema(
                    {
                        # Synchronize account and address on every login,
                        # otherwise only once when the account is created
                        vol.Optional(
                            FEATURES_ALWAYS_SYNC_DATA, default=DEFAULT_ALWAYS_SYNC_DATA
                        ): vol.Coerce(bool),
                        # Force HTTPS on all generated URLs (like return_to)
                        vol.Optional(FEATURES_FORCE_HTTPS, default=False): vol.Coerce(
                            bool
                        ),
                    }
                ),
                # Network options
                vol.Optional(NETWORK, default={}): vol.Schema(
                    {
                        # Verify x509 certificates provided when starting TLS connections
                        vol.Optional(
                            NETWORK_TLS_VERIFY, default=DEFAULT_TLS_VERIFY
                        ): vol.Coerce(bool),
                        # Load a custom CA bundle file for private CAs
                        vol.Optional(NETWORK_TLS_CA_FILE): vol.IsFile(),
                        # Load all CA certificates from a directory
                        vol.Optional(NETWORK_TLS_CA_PATH): vol.IsDir(),
                    }
                ),
                # Additional attribute exchange keys and the local field they fill,
                # merged over the built-in attribute dictionary
                vol.Optional(ATTRIBUTES, default={}): vol.Schema(
                    {vol.Coerce(str): local_field}
                ),
            }
        )
    },
    # Any extra fields should not go into our config right now
    # You may set them for upgrading etc
    extra=vol.REMOVE_EXTRA,
)
