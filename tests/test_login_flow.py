"""Tests for the login flow controller"""

from datetime import datetime, timezone

import pytest

from custom_components.auth_openid.tools.attributes import AttributeDictionary
from custom_components.auth_openid.tools.login_flow import (
    FlowState,
    LoginFlowController,
    LoginRequest,
)
from custom_components.auth_openid.tools.openid_client import (
    OpenIDAssertionInvalid,
    OpenIDDiscoveryFailed,
)
from custom_components.auth_openid.tools.resolver import (
    MESSAGE_IDENTIFIER_TAKEN,
    IdentityResolver,
)
from custom_components.auth_openid.tools.synchronizer import (
    AccountSynchronizer,
    SyncContext,
)
from custom_components.auth_openid.tools.types import Assertion
from .mocks.account_repo import (
    FakeSession,
    MemoryAccountRepository,
    RecordingAuditSink,
)

ALICE = "https://provider/alice"
RETURN_TO = "https://hass.example.com/auth/openid/callback"
REALM = "https://hass.example.com/"
CONTEXT = SyncContext("en", datetime(2024, 1, 1, tzinfo=timezone.utc))


class FakeOpenIDClient:
    """OpenID client answering with a prepared assertion."""

    def __init__(
        self,
        assertion: Assertion | None = None,
        discovers: bool = True,
        verifies: bool = True,
    ):
        self.assertion = assertion or Assertion(False, "", {})
        self.discovers = discovers
        self.verifies = verifies
        self.redirects: list[tuple] = []
        self.validations = 0

    def is_callback_mode(self, params) -> bool:
        return bool(params.get("openid.mode"))

    async def async_build_auth_redirect(
        self, identity, required, optional, return_to, realm
    ) -> str:
        if not self.discovers:
            raise OpenIDDiscoveryFailed("no provider")
        self.redirects.append((identity, required, optional, return_to, realm))
        return "https://provider/auth?openid.mode=checkid_setup"

    async def async_validate_assertion(self, params, return_to) -> Assertion:
        self.validations += 1
        if not self.verifies:
            raise OpenIDAssertionInvalid("unreadable response")
        return self.assertion


def create_controller(client: FakeOpenIDClient):
    """Create a controller with in-memory collaborators."""
    repository = MemoryAccountRepository()
    audit = RecordingAuditSink()
    resolver = IdentityResolver(
        repository, AccountSynchronizer(repository, audit, AttributeDictionary())
    )
    return LoginFlowController(client, resolver), repository, audit


def callback_request(identity_url: str | None = None) -> LoginRequest:
    """Create a request as sent back by the provider."""
    return LoginRequest(identity_url, {"openid.mode": "id_res"}, RETURN_TO, REALM)


@pytest.mark.asyncio
async def test_skipped_without_identity():
    """Test that a request without identity or callback is left alone."""
    client = FakeOpenIDClient()
    controller, repository, _ = create_controller(client)
    session = FakeSession()

    result = await controller.async_login(
        LoginRequest(None, {}, RETURN_TO, REALM), session, CONTEXT
    )

    assert result.state == FlowState.SKIPPED
    assert not result.success
    assert not client.redirects
    assert client.validations == 0
    assert session.account is None
    assert not repository.accounts


@pytest.mark.asyncio
async def test_redirect_issued():
    """Test that a typed in identity sends the user to the provider."""
    client = FakeOpenIDClient()
    controller, _, _ = create_controller(client)

    result = await controller.async_login(
        LoginRequest(ALICE, {}, RETURN_TO, REALM), FakeSession(), CONTEXT
    )

    assert result.state == FlowState.REDIRECT_ISSUED
    assert result.redirect_url.startswith("https://provider/auth")
    identity, required, optional, return_to, realm = client.redirects[0]
    assert identity == ALICE
    assert required == ("contact/internet/email",)
    assert "namePerson/friendly" in optional
    assert "contact/postalcode/home" in optional
    assert return_to == RETURN_TO
    assert realm == REALM


@pytest.mark.asyncio
async def test_redirect_discovery_failed():
    """Test that an identity without provider is rejected with a message."""
    client = FakeOpenIDClient(discovers=False)
    controller, _, _ = create_controller(client)

    result = await controller.async_login(
        LoginRequest(ALICE, {}, RETURN_TO, REALM), FakeSession(), CONTEXT
    )

    assert result.state == FlowState.REJECTED
    assert result.message


@pytest.mark.asyncio
async def test_callback_completed():
    """Test that a verified callback logs the resolved account in."""
    client = FakeOpenIDClient(
        Assertion(
            True,
            ALICE,
            {"contact/internet/email": "a@x.com", "namePerson/friendly": "alice99"},
        )
    )
    controller, repository, audit = create_controller(client)
    session = FakeSession()

    result = await controller.async_login(callback_request(), session, CONTEXT)

    assert result.state == FlowState.COMPLETED
    assert result.success
    assert result.account["username"] == "alice99"
    assert session.account is result.account
    assert repository.accounts[result.account.account_id]["email"] == "a@x.com"
    assert len(audit.records) == 1


@pytest.mark.asyncio
async def test_callback_session_refused():
    """Test that the session verdict is the verdict of the flow."""
    client = FakeOpenIDClient(
        Assertion(True, ALICE, {"contact/internet/email": "a@x.com"})
    )
    controller, _, _ = create_controller(client)

    result = await controller.async_login(
        callback_request(), FakeSession(accept=False), CONTEXT
    )

    assert result.state == FlowState.COMPLETED
    assert not result.success


@pytest.mark.asyncio
async def test_callback_not_verified():
    """Test that an unverifiable response is rejected without a message."""
    controller, repository, _ = create_controller(FakeOpenIDClient())
    session = FakeSession()

    result = await controller.async_login(callback_request(), session, CONTEXT)

    assert result.state == FlowState.REJECTED
    assert not result.success
    assert result.message is None
    assert session.account is None
    assert not repository.accounts


@pytest.mark.asyncio
async def test_callback_identifier_taken():
    """Test that a collision with another login handler shows a message."""
    client = FakeOpenIDClient(
        Assertion(True, ALICE, {"contact/internet/email": "a@x.com"})
    )
    controller, repository, _ = create_controller(client)
    repository.add_account(password=ALICE, username="bob", account_type="local")

    result = await controller.async_login(callback_request(), FakeSession(), CONTEXT)

    assert result.state == FlowState.REJECTED
    assert result.message == MESSAGE_IDENTIFIER_TAKEN


@pytest.mark.asyncio
async def test_callback_missing_email():
    """Test that a missing email rejects the login."""
    client = FakeOpenIDClient(Assertion(True, ALICE, {}))
    controller, repository, _ = create_controller(client)

    result = await controller.async_login(callback_request(), FakeSession(), CONTEXT)

    assert result.state == FlowState.REJECTED
    assert result.message
    assert not repository.accounts


@pytest.mark.asyncio
async def test_identity_takes_precedence_over_callback():
    """Test that a typed in identity starts a new login, even on a callback."""
    client = FakeOpenIDClient()
    controller, _, _ = create_controller(client)

    result = await controller.async_login(
        callback_request(ALICE), FakeSession(), CONTEXT
    )

    assert result.state == FlowState.REDIRECT_ISSUED
    assert client.validations == 0


@pytest.mark.asyncio
async def test_callback_client_error():
    """Test that a failing verification is rejected instead of raised."""
    client = FakeOpenIDClient(verifies=False)
    controller, repository, _ = create_controller(client)
    session = FakeSession()

    result = await controller.async_login(callback_request(), session, CONTEXT)

    assert result.state == FlowState.REJECTED
    assert not result.success
    assert session.account is None
    assert not repository.accounts
