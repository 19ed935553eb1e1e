"""Generic data types"""

from typing import Mapping, NamedTuple, Protocol

# Local account field holding the claimed identifier of openid accounts
IDENTITY_SLOT = "password"

PROFILE_FIELDS = (
    "title",
    "firstname",
    "lastname",
    "email",
    "phone",
    "mobile",
    "fax",
    "address",
    "address2",
    "city",
    "nation",
    "zip",
)

ACCOUNT_FIELDS = (
    "id",
    IDENTITY_SLOT,
    "username",
    "account_type",
    "language",
    "registered",
    "last_login",
    "parent_id",
) + PROFILE_FIELDS

ADDRESS_FIELDS = ("id", "account_id", "group") + PROFILE_FIELDS

# Fields that are owned by the login handler and never filled from
# provider supplied attributes
RESERVED_FIELDS = frozenset(
    {
        "id",
        IDENTITY_SLOT,
        "username",
        "account_type",
        "registered",
        "parent_id",
        "account_id",
        "group",
    }
)


# Dict classes to give a type to the stored records
class LocalAccount(dict):
    """Local account representation"""

    # Storage id, empty until the account was created
    id: str
    # Identity slot, the claimed identifier for openid accounts
    password: str
    # Unique across all account types, may be empty
    username: str
    # Discriminator of the login handler that owns the account
    account_type: str
    language: str
    # ISO timestamps
    registered: str
    last_login: str
    parent_id: int

    @property
    def account_id(self) -> str:
        """Return the storage id of the account."""
        return self.get("id", "")

    @property
    def display_name(self) -> str | None:
        """Return a human readable name for the account."""
        name = " ".join(
            part for part in (self.get("firstname"), self.get("lastname")) if part
        )
        return name or self.get("username") or self.get("email") or None


class LocalAddress(dict):
    """Profile address of a local account"""

    id: str
    account_id: str
    # Address group marker, the account owns exactly one default address
    group: str


class Assertion(NamedTuple):
    """Outcome of validating a provider assertion.

    `identifier` is the claimed identifier and `attributes` holds the
    attribute exchange values keyed by their axschema name, for example
    `contact/internet/email`.
    """

    verified: bool
    identifier: str
    attributes: Mapping[str, str]

    def fetch_attributes(self) -> dict[str, str]:
        """Return a copy of the attributes the provider sent along."""
        return dict(self.attributes)


class AccountRepository(Protocol):
    """Storage of local accounts and their addresses."""

    async def async_find_by_external_identity(
        self, identifier: str, account_type: str | None = None
    ) -> LocalAccount | None:
        """Find an account by its identity slot, optionally of one account type."""

    async def async_username_exists(self, username: str) -> bool:
        """Check whether any account, of any type, uses the username."""

    async def async_get_address(
        self, account_id: str, group: str
    ) -> LocalAddress | None:
        """Return the address of the account within the given group."""

    async def async_create_account_with_address(
        self, account: LocalAccount, address: LocalAddress
    ) -> bool:
        """Atomically create the account and its address, False on any failure."""

    async def async_update_account_with_address(
        self, account: LocalAccount, address: LocalAddress | None
    ) -> bool:
        """Atomically update the account and, if given, its address."""


class AuditSink(Protocol):
    """Fire and forget audit trail."""

    def record(self, message: str, category: str, severity: int) -> None:
        """Record an audit message."""


class Session(Protocol):
    """Marks the current request as authenticated."""

    async def async_validate_login(self, account: LocalAccount) -> bool:
        """Log the account in, return whether that succeeded."""
