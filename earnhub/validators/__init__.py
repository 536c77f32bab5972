"""
Validators package.

Provides common validation functions for service input.
"""

from earnhub.validators.common import (
    normalize_display_handle,
    validate_amount,
    validate_external_ref,
    validate_task_id,
)


__all__ = [
    "validate_amount",
    "validate_external_ref",
    "validate_task_id",
    "normalize_display_handle",
]
