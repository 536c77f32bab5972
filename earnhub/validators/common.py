"""
Common validators for service input.

Each validator returns a tuple of (is_valid, parsed_value, error_message).
"""

import re
from decimal import Decimal, InvalidOperation

from earnhub.config.business_constants import (
    DISPLAY_HANDLE_FALLBACK,
    DISPLAY_HANDLE_MAX_LENGTH,
    TASK_ID_MAX_LENGTH,
)

EXTERNAL_REF_MAX_LENGTH = 255

_HANDLE_INVALID_CHARS = re.compile(r"[^a-z0-9_]+")
_HANDLE_REPEATED_UNDERSCORES = re.compile(r"_{2,}")


def validate_amount(
    amount: Decimal | int | str,
    min_val: Decimal = Decimal("0"),
    max_val: Decimal | None = None,
    allow_zero: bool = False,
) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate a monetary amount.

    Args:
        amount: Amount to validate (Decimal, int or numeric string)
        min_val: Minimum allowed value
        max_val: Maximum allowed value (optional)
        allow_zero: Accept exactly zero

    Returns:
        Tuple of (is_valid, parsed_value, error_message)

    Examples:
        >>> validate_amount("100.50")
        (True, Decimal('100.50'), None)
        >>> validate_amount("-10")
        (False, None, 'Amount must be >= 0')
    """
    if isinstance(amount, float):
        return False, None, "Amount must not be a float"

    if isinstance(amount, str):
        amount = amount.strip().replace(",", ".")
        if not amount:
            return False, None, "Amount is empty"

    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        return False, None, "Invalid amount format"

    if not value.is_finite():
        return False, None, "Amount must be a finite number"

    if value < min_val:
        return False, None, f"Amount must be >= {min_val}"

    if value == 0 and not allow_zero:
        return False, None, "Amount must be greater than zero"

    if max_val is not None and value > max_val:
        return False, None, f"Amount must be <= {max_val}"

    # Check precision (8 decimal places max)
    if value.as_tuple().exponent < -8:
        return False, None, "Amount has too many decimal places (maximum 8)"

    return True, value, None


def validate_task_id(value: str) -> tuple[bool, str | None, str | None]:
    """
    Validate an opaque task identifier.

    Examples:
        >>> validate_task_id(" task-42 ")
        (True, 'task-42', None)
        >>> validate_task_id("")
        (False, None, 'Task ID cannot be empty')
    """
    if not value or not isinstance(value, str):
        return False, None, "Task ID cannot be empty"

    value = value.strip()
    if not value:
        return False, None, "Task ID cannot be empty"

    if len(value) > TASK_ID_MAX_LENGTH:
        return False, None, f"Task ID is longer than {TASK_ID_MAX_LENGTH} characters"

    return True, value, None


def validate_external_ref(value: str) -> tuple[bool, str | None, str | None]:
    """Validate an external identity reference."""
    if not value or not isinstance(value, str):
        return False, None, "External reference cannot be empty"

    value = value.strip()
    if not value:
        return False, None, "External reference cannot be empty"

    if len(value) > EXTERNAL_REF_MAX_LENGTH:
        return (
            False,
            None,
            f"External reference is longer than {EXTERNAL_REF_MAX_LENGTH} characters",
        )

    return True, value, None


def normalize_display_handle(hint: str | None) -> str:
    """
    Normalize a display name hint into a handle.

    Lowercases, replaces anything outside [a-z0-9_] with underscores
    and truncates. Empty results fall back to a generic handle.

    Examples:
        >>> normalize_display_handle("John Doe!")
        'john_doe'
        >>> normalize_display_handle("  ")
        'user'
    """
    if not hint:
        return DISPLAY_HANDLE_FALLBACK

    handle = _HANDLE_INVALID_CHARS.sub("_", hint.strip().lower())
    handle = _HANDLE_REPEATED_UNDERSCORES.sub("_", handle).strip("_")
    handle = handle[:DISPLAY_HANDLE_MAX_LENGTH].rstrip("_")

    return handle or DISPLAY_HANDLE_FALLBACK
