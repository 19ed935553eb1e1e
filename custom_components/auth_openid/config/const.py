"""Config constants."""

## ===
## General integration constants
## ===

DEFAULT_TITLE = "OpenID"
DOMAIN = "auth_openid"

## ===
## Config keys
## ===

DISPLAY_NAME = "display_name"
REALM = "realm"
FEATURES = "features"
FEATURES_ALWAYS_SYNC_DATA = "always_sync_data"
FEATURES_FORCE_HTTPS = "force_https"
NETWORK = "network"
NETWORK_TLS_VERIFY = "tls_verify"
NETWORK_TLS_CA_FILE = "tls_ca_file"
NETWORK_TLS_CA_PATH = "tls_ca_path"
ATTRIBUTES = "attributes"

## ===
## Defaults
## ===

DEFAULT_ALWAYS_SYNC_DATA = True
DEFAULT_TLS_VERIFY = True

## ===
## Account constants
## ===

# Account type discriminator for accounts created by this login handler
ACCOUNT_TYPE_OPENID = "openid"

# Address group marker of the one address every account owns
ADDRESS_GROUP_DEFAULT = "default"

## ===
## Attribute exchange
## ===

AX_SCHEMA_BASE = "http://axschema.org/"

ATTRIBUTE_EMAIL = "contact/internet/email"
ATTRIBUTE_FRIENDLY_NAME = "namePerson/friendly"

REQUIRED_ATTRIBUTES = (ATTRIBUTE_EMAIL,)
OPTIONAL_ATTRIBUTES = (
    "namePerson",
    "contact/email",
    ATTRIBUTE_FRIENDLY_NAME,
    "namePerson/prefix",
    "namePerson/first",
    "namePerson/last",
    "language/pref",
    "contact/phone/default",
    "contact/phone/cell",
    "contact/phone/fax",
    "contact/postaladdress/home",
    "contact/postaladdressadditional/home",
    "contact/city/home",
    "contact/country/home",
    "contact/postalcode/home",
)

## ===
## Events
## ===

EVENT_AUDIT = "auth_openid_audit"
