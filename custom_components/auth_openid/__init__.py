"""OpenID Integration for Home Assistant."""

import logging
import re
from typing import OrderedDict

from homeassistant.core import HomeAssistant

# Import and re-export config schema explictly
# pylint: disable=useless-import-alias
from .config import CONFIG_SCHEMA as CONFIG_SCHEMA

# Get all the constants for the config
from .config import (
    DOMAIN,
    DEFAULT_TITLE,
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
    DEFAULT_ALWAYS_SYNC_DATA,
    DEFAULT_TLS_VERIFY,
)

from .endpoints import (
    OpenIDWelcomeView,
    OpenIDRedirectView,
    OpenIDFinishView,
    OpenIDCallbackView,
)
from .provider import OpenIDAuthProvider
from .tools.attributes import AttributeDictionary
from .tools.audit import HassAuditSink
from .tools.login_flow import LoginFlowController
from .tools.openid_client import OpenIDClient
from .tools.resolver import IdentityResolver
from .tools.synchronizer import AccountSynchronizer

_LOGGER = logging.getLogger(__name__)


async def async_setup(hass: HomeAssistant, config):
    """Add the OpenID Auth Provider to the providers in Home Assistant (YAML config)."""
    if DOMAIN not in config:
        return True

    my_config = config[DOMAIN]

    if DOMAIN not in hass.data:
        hass.data[DOMAIN] = {}

    return await _setup_openid_provider(hass, my_config)


async def _setup_openid_provider(hass: HomeAssistant, my_config: dict):
    """Set up the OpenID provider with the given configuration."""
    features_config = my_config.get(FEATURES, {})
    network_config = my_config.get(NETWORK, {})

    openid_client = OpenIDClient(
        hass,
        tls_verify=network_config.get(NETWORK_TLS_VERIFY, DEFAULT_TLS_VERIFY),
        tls_ca_file=network_config.get(NETWORK_TLS_CA_FILE),
        tls_ca_path=network_config.get(NETWORK_TLS_CA_PATH),
    )

    # Fail setup on unusable CA options instead of on every login
    try:
        await openid_client.async_initialize()
    except OSError as e:
        _LOGGER.error("Could not load the OpenID TLS configuration: %s", e)
        return False

    providers = OrderedDict()

    # Use private APIs until there is a real auth platform
    # pylint: disable=protected-access
    provider = OpenIDAuthProvider(hass, hass.auth._store, my_config)

    providers[(provider.type, provider.id)] = provider
    providers.update(hass.auth._providers)
    hass.auth._providers = providers
    # pylint: enable=protected-access

    await provider.async_initialize()
    _LOGGER.info("Registered OpenID provider")

    synchronizer = AccountSynchronizer(
        provider.account_store,
        HassAuditSink(hass),
        AttributeDictionary.with_overrides(my_config.get(ATTRIBUTES, {})),
        always_sync=features_config.get(
            FEATURES_ALWAYS_SYNC_DATA, DEFAULT_ALWAYS_SYNC_DATA
        ),
    )
    controller = LoginFlowController(
        openid_client,
        IdentityResolver(provider.account_store, synchronizer),
    )
    hass.data[DOMAIN]["controller"] = controller

    # Register the views
    name = my_config.get(DISPLAY_NAME, DEFAULT_TITLE)
    name = re.sub(r"[^A-Za-z0-9 _\-\(\)]", "", name)

    force_https = features_config.get(FEATURES_FORCE_HTTPS, False)
    realm = my_config.get(REALM)

    hass.http.register_view(OpenIDWelcomeView(name))
    hass.http.register_view(
        OpenIDRedirectView(controller, provider, realm, force_https)
    )
    hass.http.register_view(
        OpenIDCallbackView(controller, provider, realm, force_https)
    )
    hass.http.register_view(OpenIDFinishView())

    _LOGGER.info("Registered OpenID views")
    return True
