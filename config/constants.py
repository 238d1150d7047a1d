"""Constants for the custom field engine.

Static values shared by the identity, validation, evolution and flattened
conversion modules. Environment-dependent defaults live in settings.py.
"""

from typing import Dict, List


# =============================================================================
# Field Identity
# =============================================================================

# Separator between identity segments: {schemaId}_{rowId}_{columnId}_{timestamp}
FIELD_ID_SEPARATOR = "_"
FIELD_ID_SEGMENTS = 4

# Label used when a component has none
DEFAULT_FIELD_LABEL = "Untitled Field"

MS_PER_DAY = 24 * 60 * 60 * 1000


# =============================================================================
# Field Types
# =============================================================================

# Saved type -> schema types it can still be displayed as
TYPE_COMPATIBILITY: Dict[str, List[str]] = {
    "text": ["email", "phone", "textarea"],
    "email": ["text"],
    "phone": ["text"],
    "number": ["text"],
    "textarea": ["text"],
    "date": ["text"],
}


# =============================================================================
# Files
# =============================================================================

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


# =============================================================================
# Dates
# =============================================================================

# strptime formats tried after ISO 8601 parsing fails
DATE_PARSE_FORMATS: List[str] = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%m/%d/%y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y/%m/%d",
    "%a %b %d %Y",
]


# =============================================================================
# Validation Messages
# =============================================================================

def msg_required(label: str) -> str:
    return f"{label} is required"


def msg_invalid_email(label: str) -> str:
    return f"{label} must be a valid email address"


def msg_invalid_phone(label: str) -> str:
    return f"{label} may not be a valid phone number"


def msg_invalid_number(label: str) -> str:
    return f"{label} must be a valid number"


def msg_invalid_date(label: str) -> str:
    return f"{label} must be a valid date"


def msg_invalid_option(label: str) -> str:
    return f"{label} must be one of the available options"


def msg_invalid_options(label: str, invalid: List[str]) -> str:
    return f"{label} contains invalid options: {', '.join(str(v) for v in invalid)}"


def msg_invalid_file_type(label: str, types: List[str]) -> str:
    return f"{label} must be one of these file types: {', '.join(types)}"


def msg_file_too_large(label: str, max_size: str) -> str:
    return f"{label} file size must be less than {max_size}"


def msg_too_short(label: str, min_length: int) -> str:
    return f"{label} must be at least {min_length} characters"


def msg_too_long(label: str, max_length: int) -> str:
    return f"{label} must be at most {max_length} characters"


def msg_pattern_mismatch(label: str) -> str:
    return f"{label} has an invalid format"


def format_file_size(size_bytes: int) -> str:
    """Human readable size, e.g. 10485760 -> '10.0 MB'."""
    size = float(size_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"
