"""Input normalization and validation for names, slugs and descriptions.

Pure functions, no I/O. Every mutation passes through here before any store
access; failures raise :class:`ValidationError` immediately.
"""

import re
from typing import Iterable, List, Optional

from access_service.core.exceptions import ValidationError

SLUG_PATTERN = re.compile(r"^[a-z0-9.]+$")

MIN_NAME_LENGTH = 2
MIN_SLUG_LENGTH = 2

# Roles and permissions
MAX_NAME_LENGTH = 64
MAX_SLUG_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 500

# Projects
MAX_PROJECT_NAME_LENGTH = 120
MAX_PROJECT_SLUG_LENGTH = 120
MAX_PROJECT_DESCRIPTION_LENGTH = 1000

# API key credentials
MAX_CREDENTIAL_NAME_LENGTH = 80

RISK_LEVELS = ("low", "medium", "high")
PROJECT_STATUSES = ("active", "archived")


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip()


def normalize_slug(slug: Optional[str]) -> str:
    return (slug or "").strip().lower()


def normalize_description(description: Optional[str]) -> Optional[str]:
    """Trim; an empty description becomes ``None``."""
    trimmed = (description or "").strip()
    return trimmed or None


def normalize_ids(ids: Optional[Iterable[str]]) -> List[str]:
    """Drop blanks and duplicates while keeping submission order."""
    seen = []
    for value in ids or ():
        value = (value or "").strip()
        if value and value not in seen:
            seen.append(value)
    return seen


def derive_slug(name: Optional[str]) -> str:
    """Suggest a slug from a display name.

    "Export Data!" -> "export.data". Used to pre-fill forms only; the submitted
    slug is what gets validated and stored.
    """
    lowered = (name or "").strip().lower()
    dotted = re.sub(r"[^a-z0-9]+", ".", lowered)
    return dotted.strip(".")


def validate_name(
    name: str,
    label: str = "Name",
    max_length: int = MAX_NAME_LENGTH,
    field: str = "name",
) -> str:
    """
    Validate an already-normalized display name.

    Raises:
        ValidationError: If the name is empty or out of bounds
    """
    if not name:
        raise ValidationError(f"{label} is required.", field=field)
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(
            f"{label} is too short.",
            field=field,
            details={"min_length": MIN_NAME_LENGTH},
        )
    if len(name) > max_length:
        raise ValidationError(
            f"{label} is too long.",
            field=field,
            details={"max_length": max_length, "provided_length": len(name)},
        )
    return name


def validate_slug(slug: str, label: str = "Slug", max_length: int = MAX_SLUG_LENGTH) -> str:
    """
    Validate an already-normalized slug.

    Raises:
        ValidationError: If the slug is empty, out of bounds or malformed
    """
    if not slug:
        raise ValidationError(f"{label} is required.", field="slug")
    if not SLUG_PATTERN.match(slug):
        raise ValidationError(
            "Slug can only contain lowercase letters, numbers and dots.",
            field="slug",
        )
    if len(slug) < MIN_SLUG_LENGTH:
        raise ValidationError(f"{label} is too short.", field="slug")
    if len(slug) > max_length:
        raise ValidationError(
            f"{label} is too long.",
            field="slug",
            details={"max_length": max_length, "provided_length": len(slug)},
        )
    return slug


def validate_description(
    description: Optional[str], max_length: int = MAX_DESCRIPTION_LENGTH
) -> Optional[str]:
    if description is None:
        return None
    if len(description) > max_length:
        raise ValidationError(
            "Description is too long.",
            field="description",
            details={"max_length": max_length, "provided_length": len(description)},
        )
    return description


def validate_risk_level(risk_level: Optional[str]) -> str:
    if risk_level not in RISK_LEVELS:
        raise ValidationError(
            "Invalid risk level.",
            field="risk_level",
            details={"allowed": list(RISK_LEVELS)},
        )
    return risk_level


def validate_project_status(status: Optional[str]) -> str:
    if status not in PROJECT_STATUSES:
        raise ValidationError(
            "Invalid project status.",
            field="status",
            details={"allowed": list(PROJECT_STATUSES)},
        )
    return status


def validate_user_id(user_id: Optional[str], label: str = "User ID", field: str = "user_id") -> str:
    user_id = (user_id or "").strip()
    if not user_id:
        raise ValidationError(f"{label} is required.", field=field)
    return user_id


# ---------------------------------------------------------------------------
# Entity-level helpers: normalize then validate, returning clean values
# ---------------------------------------------------------------------------


def clean_access_entity(
    kind: str, name: Optional[str], slug: Optional[str], description: Optional[str]
) -> tuple[str, str, Optional[str]]:
    """Normalize and validate name/slug/description for a role or permission."""
    clean_name = validate_name(normalize_name(name), label=f"{kind} name")
    clean_slug = validate_slug(normalize_slug(slug))
    clean_description = validate_description(normalize_description(description))
    return clean_name, clean_slug, clean_description


def clean_credential(
    name: Optional[str], description: Optional[str]
) -> tuple[str, Optional[str]]:
    """Normalize and validate the name/description of an API key."""
    clean_name = validate_name(
        normalize_name(name), label="API key name", max_length=MAX_CREDENTIAL_NAME_LENGTH
    )
    clean_description = validate_description(normalize_description(description))
    return clean_name, clean_description


def clean_project(
    name: Optional[str], slug: Optional[str], description: Optional[str]
) -> tuple[str, str, Optional[str]]:
    clean_name = validate_name(
        normalize_name(name), label="Project name", max_length=MAX_PROJECT_NAME_LENGTH
    )
    clean_slug = validate_slug(
        normalize_slug(slug), label="Project slug", max_length=MAX_PROJECT_SLUG_LENGTH
    )
    clean_description = validate_description(
        normalize_description(description), max_length=MAX_PROJECT_DESCRIPTION_LENGTH
    )
    return clean_name, clean_slug, clean_description
