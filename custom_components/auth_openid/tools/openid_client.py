"""OpenID 2.0 relying party client, built on python3-openid."""

import logging
import os
import base64
import ssl
import urllib.request
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import NamedTuple
from urllib.parse import urlencode

from homeassistant.core import HomeAssistant
from openid import fetchers
from openid.consumer import consumer
from openid.consumer.discover import DiscoveryFailure
from openid.extensions import ax
from openid.message import InvalidOpenIDNamespace
from openid.store.memstore import MemoryStore

from ..config.const import AX_SCHEMA_BASE
from .types import Assertion

_LOGGER = logging.getLogger(__name__)

# Query parameter carrying the flow token from redirect to callback
FLOW_PARAM = "openid_flow"

# Started logins are forgotten after this time
FLOW_LIFETIME = timedelta(minutes=10)

# Attribute type URI prefixes stripped to obtain the attribute key
SCHEMA_BASES = (AX_SCHEMA_BASE, "http://schema.openid.net/")


class OpenIDClientException(Exception):
    "Raised when the OpenID Client encounters an error"


class OpenIDDiscoveryFailed(OpenIDClientException):
    "Raised when no OpenID provider can be discovered for the identity."


class OpenIDAssertionInvalid(OpenIDClientException):
    "Raised when the provider response cannot be verified."


class FlowSession(NamedTuple):
    """Consumer session of a started login."""

    created: datetime
    session: dict


class SSLContextFetcher(fetchers.Urllib2Fetcher):
    """Urllib fetcher that opens connections with a custom SSL context."""

    def __init__(self, ssl_context: ssl.SSLContext) -> None:
        self.urlopen = partial(urllib.request.urlopen, context=ssl_context)


def create_ssl_context(
    tls_verify: bool, ca_file: str | None = None, ca_path: str | None = None
) -> ssl.SSLContext:
    """Create the SSL context used to talk to OpenID providers."""
    if not tls_verify:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    return ssl.create_default_context(cafile=ca_file, capath=ca_path)


def attribute_key(type_uri: str) -> str:
    """Return the attribute key for an attribute exchange type URI."""
    for base in SCHEMA_BASES:
        if type_uri.startswith(base):
            return type_uri[len(base) :]
    return type_uri


class OpenIDClient:
    """OpenID client for one relying party.

    Keeps the consumer session of every started flow in memory, keyed by a
    random token that travels along in the return_to URL.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        tls_verify: bool = True,
        tls_ca_file: str | None = None,
        tls_ca_path: str | None = None,
    ) -> None:
        self.hass = hass
        self.tls_verify = tls_verify
        self.tls_ca_file = tls_ca_file
        self.tls_ca_path = tls_ca_path
        self.store = MemoryStore()
        self.flows: dict[str, FlowSession] = {}
        self._fetcher: fetchers.HTTPFetcher | None = None

    def _generate_flow_token(self, length: int = 16) -> str:
        """Generates a random URL safe token"""
        return base64.urlsafe_b64encode(os.urandom(length)).rstrip(b"=").decode()

    async def async_initialize(self) -> None:
        """Install the fetcher with our TLS options for python3-openid.

        Raises OSError (ssl.SSLError included) for unusable CA options.
        """
        if self._fetcher is not None:
            return

        _LOGGER.debug(
            "Creating OpenID fetcher with options: "
            + "verify certificates: %r, CA file: %s, CA path: %s",
            self.tls_verify,
            self.tls_ca_file,
            self.tls_ca_path,
        )

        # Loading CA files is blocking
        ssl_context = await self.hass.async_add_executor_job(
            create_ssl_context, self.tls_verify, self.tls_ca_file, self.tls_ca_path
        )
        self._fetcher = SSLContextFetcher(ssl_context)
        fetchers.setDefaultFetcher(self._fetcher)

    def _prune_flows(self) -> None:
        """Forget started logins that never came back."""
        expired = datetime.now(timezone.utc) - FLOW_LIFETIME
        for token in [t for t, flow in self.flows.items() if flow.created < expired]:
            del self.flows[token]

    def is_callback_mode(self, params: Mapping[str, str]) -> bool:
        """Return whether the request is a provider response."""
        return bool(params.get("openid.mode"))

    async def async_build_auth_redirect(
        self,
        identity: str,
        required: Sequence[str],
        optional: Sequence[str],
        return_to: str,
        realm: str,
    ) -> str:
        """Discover the provider of the identity and return its auth URL."""
        await self.async_initialize()

        self._prune_flows()
        token = self._generate_flow_token()
        session: dict = {}
        return_to = f"{return_to}?{urlencode({FLOW_PARAM: token})}"

        try:
            auth_url = await self.hass.async_add_executor_job(
                self._begin, session, identity, required, optional, return_to, realm
            )
        except DiscoveryFailure as e:
            raise OpenIDDiscoveryFailed(str(e)) from e

        self.flows[token] = FlowSession(datetime.now(timezone.utc), session)
        _LOGGER.debug("Redirecting OpenID identity %s to %s", identity, auth_url)
        return auth_url

    def _begin(
        self,
        session: dict,
        identity: str,
        required: Sequence[str],
        optional: Sequence[str],
        return_to: str,
        realm: str,
    ) -> str:
        auth_request = consumer.Consumer(session, self.store).begin(identity)

        fetch_request = ax.FetchRequest()
        for key in required:
            fetch_request.add(ax.AttrInfo(AX_SCHEMA_BASE + key, required=True))
        for key in optional:
            fetch_request.add(ax.AttrInfo(AX_SCHEMA_BASE + key, required=False))
        auth_request.addExtension(fetch_request)

        return auth_request.redirectURL(realm, return_to)

    async def async_validate_assertion(
        self, params: Mapping[str, str], return_to: str
    ) -> Assertion:
        """Verify the provider response of a callback.

        Only verified responses carry an identifier.
        """
        await self.async_initialize()

        flow = self.flows.pop(params.get(FLOW_PARAM, ""), None)
        session = flow.session if flow is not None else {}
        try:
            return await self.hass.async_add_executor_job(
                self._complete, session, dict(params), return_to
            )
        except OpenIDAssertionInvalid as e:
            _LOGGER.warning("OpenID response could not be verified: %s", e)
            return Assertion(False, "", {})

    def _complete(self, session: dict, query: dict, return_to: str) -> Assertion:
        try:
            response = consumer.Consumer(session, self.store).complete(
                query, return_to
            )
        except (
            fetchers.HTTPFetchingError,
            InvalidOpenIDNamespace,
            consumer.ProtocolError,
        ) as e:
            # Anyone can call the callback, the query is untrusted input
            raise OpenIDAssertionInvalid(str(e)) from e

        if response.status != consumer.SUCCESS:
            raise OpenIDAssertionInvalid(
                f"status {response.status}: {getattr(response, 'message', '')}"
            )

        attributes: dict[str, str] = {}
        try:
            fetch_response = ax.FetchResponse.fromSuccessResponse(response)
        except ax.AXError as e:
            raise OpenIDAssertionInvalid(f"malformed attributes: {e}") from e

        if fetch_response is not None:
            for type_uri, values in fetch_response.data.items():
                if values:
                    attributes[attribute_key(type_uri)] = values[0]

        return Assertion(True, response.identity_url or "", attributes)
