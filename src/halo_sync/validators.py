"""
Input validation functions for halo-sync.

Validates resource names and display names before they are placed into
request URLs or bodies.
"""

import re

# Halo resource names are Kubernetes-style object names; UUIDs and
# generated names such as "category-ab12c" both fit this pattern.
_RESOURCE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Post name")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_resource_name(
    name: str, field_name: str = "Post name"
) -> tuple[bool, str]:
    """
    Validate a Halo resource name (post, category or tag identifier).

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot contain '..' or '/' (path traversal protection)
        - Must start with an alphanumeric and contain only
          alphanumerics, '.', '_' or '-'
    """
    if not name or not name.strip():
        return (
            False,
            format_validation_error(field_name, "cannot be empty"),
        )

    if ".." in name or "/" in name:
        return (
            False,
            format_validation_error(
                field_name, "cannot contain '..' or '/'"
            ),
        )

    if not _RESOURCE_NAME.match(name):
        return (
            False,
            format_validation_error(
                field_name,
                f"'{name}' may only contain letters, digits, '.', '_' and '-'",
            ),
        )

    return (True, "")


def validate_display_name(display_name: str) -> tuple[bool, str]:
    """
    Validate a category or tag display name.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not display_name or not display_name.strip():
        return (
            False,
            format_validation_error("Display name", "cannot be empty"),
        )
    return (True, "")
