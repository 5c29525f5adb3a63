"""Remote custom-field type catalog.

Static lookups for the CRM's custom-field data types: mapping to the local
semantic type used for extraction, UI icon and label, extraction hints for
the prompt builder, the choice-type predicate, and placeholder options used
when a choice field has to be recreated without any surviving options.
"""

from __future__ import annotations

# ── Type Identifiers ───────────────────────────────────────────────────────

FILE_UPLOAD = "FILE_UPLOAD"
TEXTBOX_LIST = "TEXTBOX_LIST"

CHOICE_FIELD_TYPES: frozenset[str] = frozenset(
    {"SINGLE_OPTIONS", "MULTIPLE_OPTIONS", "CHECKBOX", "RADIO", TEXTBOX_LIST}
)


# ── Catalog Tables ─────────────────────────────────────────────────────────

# Remote data type -> local semantic type used by the extractor.
# "MONETORY" is the CRM's own spelling.
REMOTE_FIELD_TYPE_MAPPING: dict[str, str] = {
    "TEXT": "TEXT",
    "LARGE_TEXT": "TEXT",
    "NUMERICAL": "NUMERICAL",
    "SINGLE_OPTIONS": "SINGLE_OPTIONS",
    "MULTIPLE_OPTIONS": "MULTIPLE_OPTIONS",
    "CHECKBOX": "MULTIPLE_OPTIONS",
    "RADIO": "SINGLE_OPTIONS",
    "DATE": "DATE",
    "PHONE": "PHONE",
    "MONETORY": "NUMERICAL",
    "TEXTBOX_LIST": "TEXT",
    "EMAIL": "EMAIL",
}

FIELD_TYPE_ICONS: dict[str, str] = {
    "TEXT": "📝",
    "LARGE_TEXT": "📄",
    "NUMERICAL": "🔢",
    "SINGLE_OPTIONS": "🔘",
    "MULTIPLE_OPTIONS": "☑️",
    "CHECKBOX": "✅",
    "RADIO": "🔘",
    "DATE": "📅",
    "PHONE": "📞",
    "MONETORY": "💰",
    "TEXTBOX_LIST": "📋",
    "EMAIL": "📧",
}

FIELD_TYPE_LABELS: dict[str, str] = {
    "TEXT": "Text",
    "LARGE_TEXT": "Large Text",
    "NUMERICAL": "Number",
    "SINGLE_OPTIONS": "Single Choice",
    "MULTIPLE_OPTIONS": "Multiple Choice",
    "CHECKBOX": "Checkbox",
    "RADIO": "Radio Button",
    "DATE": "Date",
    "PHONE": "Phone Number",
    "MONETORY": "Monetary",
    "TEXTBOX_LIST": "Text Box List",
    "EMAIL": "Email",
}

EXTRACTION_HINTS: dict[str, str] = {
    "TEXT": "AI will extract text content",
    "LARGE_TEXT": "AI will extract longer text content",
    "NUMERICAL": "AI will extract numeric values",
    "SINGLE_OPTIONS": "AI will select one option from the list",
    "MULTIPLE_OPTIONS": "AI will select multiple options from the list",
    "CHECKBOX": "AI will select applicable checkboxes",
    "RADIO": "AI will select one radio option",
    "DATE": "AI will extract and format dates",
    "PHONE": "AI will extract phone numbers",
    "MONETORY": "AI will extract monetary values",
    "TEXTBOX_LIST": "AI will extract structured text data",
    "EMAIL": "AI will extract email addresses",
}

DEFAULT_CHOICE_OPTIONS: dict[str, list[str]] = {
    "SINGLE_OPTIONS": ["Yes", "No", "Maybe"],
    "MULTIPLE_OPTIONS": ["Option A", "Option B", "Option C"],
    "CHECKBOX": ["Yes", "No"],
    "RADIO": ["Option 1", "Option 2", "Option 3"],
    "TEXTBOX_LIST": ["Item 1", "Item 2", "Item 3"],
}

_GENERIC_DEFAULT_OPTIONS = ["Option 1", "Option 2", "Option 3"]


# ── Lookups ────────────────────────────────────────────────────────────────


def map_remote_field_type(data_type: str | None) -> str:
    """Map a remote data type to the local semantic type (TEXT when unknown)."""
    return REMOTE_FIELD_TYPE_MAPPING.get(data_type or "", "TEXT")


def get_field_type_icon(data_type: str | None) -> str:
    return FIELD_TYPE_ICONS.get(data_type or "", "📝")


def get_field_type_label(data_type: str | None) -> str:
    return FIELD_TYPE_LABELS.get(data_type or "", data_type or "")


def get_extraction_hint(data_type: str | None) -> str:
    return EXTRACTION_HINTS.get(data_type or "", "AI will extract relevant data")


def is_choice_type(data_type: str | None) -> bool:
    """Return True if the data type carries a list of selectable options."""
    return data_type in CHOICE_FIELD_TYPES


def default_choice_options(data_type: str | None) -> list[str]:
    """Placeholder options for a choice field that has none left.

    Returns a fresh list so callers may mutate it.
    """
    return list(DEFAULT_CHOICE_OPTIONS.get(data_type or "", _GENERIC_DEFAULT_OPTIONS))


# ── Field Keys ─────────────────────────────────────────────────────────────


def validate_field_key(field_key: str | None) -> bool:
    """A field key is a dotted path with no leading or trailing dot."""
    if not field_key or not isinstance(field_key, str):
        return False
    if "." not in field_key:
        return False
    if field_key.startswith(".") or field_key.endswith("."):
        return False
    return True


def extract_object_key(field_key: str | None) -> str:
    """Return the object a field key belongs to.

    ``custom_object.pets.breed`` -> ``custom_object.pets``;
    ``contact.first_name`` -> ``contact``; empty -> ``contact``.
    """
    if not field_key:
        return "contact"

    parts = field_key.split(".")
    if field_key.startswith("custom_object.") and len(parts) >= 3:
        return f"{parts[0]}.{parts[1]}"

    return parts[0] or "contact"


def describe_field_type(data_type: str | None) -> dict[str, object]:
    """Catalog entry for a single data type, as served to the UI."""
    return {
        "data_type": data_type,
        "local_type": map_remote_field_type(data_type),
        "label": get_field_type_label(data_type),
        "icon": get_field_type_icon(data_type),
        "hint": get_extraction_hint(data_type),
        "is_choice": is_choice_type(data_type),
    }
