"""Standard contact attributes: catalog, native-name mapping, classification.

Defines:
- FieldClass: standard (dotted, object-agnostic path) vs custom (opaque id)
- classify_target_key(): the one classification rule used everywhere
- NATIVE_ATTRIBUTE_NAMES / to_native_attribute(): snake_case path segment
  to the record's native attribute name
- STANDARD_CONTACT_FIELDS: catalog of standard fields operators can target
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Namespace prefix for standard contact attribute paths ("contact.firstName").
CONTACT_NAMESPACE = "contact"
PATH_SEPARATOR = "."


class FieldClass(str, Enum):
    """Where an extraction field writes its value."""

    STANDARD = "standard"
    CUSTOM = "custom"


def classify_target_key(target_key: str | None) -> FieldClass:
    """Classify a target key as a standard attribute path or a custom field id.

    Structural rule: a target key containing a path separator is a standard
    attribute path (``contact.firstName``); anything else is an opaque
    store-assigned custom field id. The result is computed when a config is
    created and stored on it, so call sites never re-derive it.
    """
    if target_key and PATH_SEPARATOR in target_key:
        return FieldClass.STANDARD
    return FieldClass.CUSTOM


def with_namespace(key: str) -> str:
    """``first_name`` -> ``contact.first_name``."""
    return f"{CONTACT_NAMESPACE}{PATH_SEPARATOR}{key}"


def strip_namespace(key: str) -> str:
    """``contact.first_name`` -> ``first_name``; other keys unchanged."""
    prefix = f"{CONTACT_NAMESPACE}{PATH_SEPARATOR}"
    if key.startswith(prefix):
        return key[len(prefix):]
    return key


# ── Native Attribute Names ─────────────────────────────────────────────────

# Only these names differ between the extraction path and the record.
NATIVE_ATTRIBUTE_NAMES: dict[str, str] = {
    "date_of_birth": "dateOfBirth",
    "first_name": "firstName",
    "last_name": "lastName",
    "postal_code": "postalCode",
    "phone_raw": "phone",
    "full_address": "address1",
    "company_name": "companyName",
}

TAGS_ATTRIBUTE = "tags"


def to_native_attribute(target_key: str) -> str:
    """Translate a standard attribute path to the record's attribute name.

    The object namespace (text before the first separator) is dropped; the
    remaining segment goes through NATIVE_ATTRIBUTE_NAMES and passes through
    unchanged when it has no entry.

    Examples:
        ``contact.first_name`` -> ``firstName``
        ``contact.firstName`` -> ``firstName``
        ``contact.city`` -> ``city``
    """
    _, sep, rest = target_key.partition(PATH_SEPARATOR)
    key = rest if sep else target_key
    return NATIVE_ATTRIBUTE_NAMES.get(key, key)


# ── Standard Field Catalog ─────────────────────────────────────────────────


@dataclass(frozen=True)
class StandardField:
    key: str
    name: str
    data_type: str
    description: str
    category: str


STANDARD_CONTACT_FIELDS: tuple[StandardField, ...] = (
    StandardField(
        "contact.first_name", "First Name", "TEXT",
        "Extract the contact's first name from conversations", "Personal Information",
    ),
    StandardField(
        "contact.last_name", "Last Name", "TEXT",
        "Extract the contact's last name from conversations", "Personal Information",
    ),
    StandardField(
        "contact.name", "Full Name", "TEXT",
        "Extract the contact's full name (combined first and last name)", "Personal Information",
    ),
    StandardField(
        "contact.email", "Email Address", "EMAIL",
        "Extract email addresses from conversations", "Contact Information",
    ),
    StandardField(
        "contact.phone_raw", "Phone Number", "PHONE",
        "Extract phone numbers from conversations", "Contact Information",
    ),
    StandardField(
        "contact.company_name", "Company Name", "TEXT",
        "Extract the company name the contact belongs to", "Business Information",
    ),
    StandardField(
        "contact.full_address", "Full Address", "TEXT",
        "Extract complete address information", "Address Information",
    ),
    StandardField(
        "contact.address1", "Street Address", "TEXT",
        "Extract street address (address line 1)", "Address Information",
    ),
    StandardField(
        "contact.city", "City", "TEXT",
        "Extract city name from conversations", "Address Information",
    ),
    StandardField(
        "contact.state", "State/Province", "TEXT",
        "Extract state or province information", "Address Information",
    ),
    StandardField(
        "contact.country", "Country", "TEXT",
        "Extract country information", "Address Information",
    ),
    StandardField(
        "contact.postal_code", "Postal Code", "TEXT",
        "Extract postal code or ZIP code", "Address Information",
    ),
    StandardField(
        "contact.date_of_birth", "Date of Birth", "DATE",
        "Extract date of birth from conversations", "Personal Information",
    ),
    StandardField(
        "contact.website", "Website", "TEXT",
        "Extract website URL of the contact or their business", "Business Information",
    ),
)

_FIELDS_BY_KEY: dict[str, StandardField] = {f.key: f for f in STANDARD_CONTACT_FIELDS}


def _group_by_category() -> dict[str, list[StandardField]]:
    grouped: dict[str, list[StandardField]] = {}
    for field in STANDARD_CONTACT_FIELDS:
        grouped.setdefault(field.category, []).append(field)
    return grouped


STANDARD_FIELDS_BY_CATEGORY: dict[str, list[StandardField]] = _group_by_category()


def get_standard_field(key: str) -> StandardField | None:
    return _FIELDS_BY_KEY.get(key)


def is_catalog_field(key: str) -> bool:
    """True if the key is one of the cataloged standard fields.

    Catalog membership only drives listings; use classify_target_key()
    to decide how a value is written.
    """
    return key in _FIELDS_BY_KEY
