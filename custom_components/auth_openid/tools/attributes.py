"""Mapping of attribute exchange values onto local account fields."""

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from .types import RESERVED_FIELDS

DEFAULT_MAPPING: Mapping[str, str] = MappingProxyType(
    {
        "namePerson": "firstname",
        "namePerson/prefix": "title",
        "namePerson/first": "firstname",
        "namePerson/last": "lastname",
        "language/pref": "language",
        "contact/internet/email": "email",
        "contact/email": "email",
        "contact/phone/default": "phone",
        "contact/phone/cell": "mobile",
        "contact/phone/fax": "fax",
        "contact/postaladdress/home": "address",
        "contact/postaladdressadditional/home": "address2",
        "contact/city/home": "city",
        "contact/country/home": "nation",
        "contact/postalcode/home": "zip",
    }
)


class AttributeDictionary(Mapping[str, str]):
    """Read-only mapping from attribute exchange key to local field name.

    Several keys may target the same field, the value of the key that comes
    last in the incoming attribute set wins.
    """

    def __init__(self, mapping: Mapping[str, str] | None = None) -> None:
        if mapping is None:
            mapping = DEFAULT_MAPPING

        reserved = sorted(
            key for key, field in mapping.items() if field in RESERVED_FIELDS
        )
        if reserved:
            raise ValueError(
                f"Attributes cannot be mapped onto reserved fields: {', '.join(reserved)}"
            )

        self._mapping = MappingProxyType(dict(mapping))

    @classmethod
    def with_overrides(cls, overrides: Mapping[str, str]) -> "AttributeDictionary":
        """Create a dictionary from the defaults with the given entries on top."""
        return cls({**DEFAULT_MAPPING, **overrides})

    def __getitem__(self, key: str) -> str:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:
        return f"AttributeDictionary({dict(self._mapping)!r})"

    def map(self, attributes: Mapping[str, str]) -> dict[str, str]:
        """Map the attributes onto local field names, dropping unknown keys."""
        result: dict[str, str] = {}
        for key, value in attributes.items():
            field = self._mapping.get(key)
            if field is None:
                continue
            result[field] = value
        return result
