"""
Input validation functions for the ASA donation panel.

This module provides validation functions for user inputs including:
- Numeric validation (non-negative, quantity parsing)
- String validation (length, required fields)
- Closed-set validation for stock units and categories
- Whole-record validation for stock items, beneficiaries and delivery events

Field validators return ``(is_valid, error_message)`` tuples; record
validators return ``(is_valid, errors)`` so services can raise a single
ValidationError listing every problem.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple

from asa_panel.models.enums import StockCategory, StockUnit

from .constants import (
    ERROR_INVALID_CATEGORY,
    ERROR_INVALID_DATE,
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_UNIT,
    ERROR_REQUIRED_FIELD,
    MAX_NAME_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_PHONE_LENGTH,
    MAX_QUANTITY,
    MAX_TITLE_LENGTH,
    MIN_FAMILY_SIZE,
    QUANTITY_SCALE,
)


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """
    Validate that an optional text field is a string within maximum length.

    Args:
        value: The string value to validate
        max_length: Maximum allowed length
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None:
        return True, ""
    if not isinstance(value, str):
        return False, f"{field_name}: Must be text"
    if len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def parse_quantity(value: Any) -> Optional[Decimal]:
    """
    Convert a user-supplied amount to Decimal.

    Booleans, NaN, infinities and anything that is not a number are
    rejected with None. Floats go through ``str`` so 0.1 stays 0.1.

    Args:
        value: int, float, Decimal or numeric string

    Returns:
        Decimal value, or None if the value is not a finite number
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


def validate_non_negative_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is a non-negative number (>= 0).

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    number = parse_quantity(value)
    if number is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    if number > MAX_QUANTITY:
        return False, f"{field_name}: Must be {MAX_QUANTITY} or less"
    if number != number.quantize(Decimal(1).scaleb(-QUANTITY_SCALE)):
        return False, f"{field_name}: Must have at most {QUANTITY_SCALE} decimal places"
    return True, ""


def validate_unit(unit: Any, field_name: str = "Unit") -> Tuple[bool, str]:
    """Validate that a unit belongs to the StockUnit set."""
    if unit is None or unit == "":
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    try:
        StockUnit(unit)
    except ValueError:
        return False, f"{field_name}: {ERROR_INVALID_UNIT} '{unit}'"
    return True, ""


def validate_category(category: Any, field_name: str = "Category") -> Tuple[bool, str]:
    """Validate that a category belongs to the StockCategory set."""
    if category is None or category == "":
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    try:
        StockCategory(category)
    except ValueError:
        return False, f"{field_name}: {ERROR_INVALID_CATEGORY} '{category}'"
    return True, ""


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a date value.

    Accepts ``date`` objects and ISO ``YYYY-MM-DD`` strings.

    Returns:
        Parsed date, or None if the value cannot be parsed
    """
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def validate_stock_item_data(data: dict, partial: bool = False) -> Tuple[bool, list]:  # noqa: C901
    """
    Validate stock item data.

    Args:
        data: Dictionary with stock item fields
        partial: If True only validate the keys present (update semantics)

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    errors = []

    if not partial or "name" in data:
        is_valid, error = validate_required_string(data.get("name"), "Name")
        if not is_valid:
            errors.append(error)
        is_valid, error = validate_string_length(data.get("name"), MAX_NAME_LENGTH, "Name")
        if not is_valid:
            errors.append(error)

    if not partial or "unit" in data:
        is_valid, error = validate_unit(data.get("unit"))
        if not is_valid:
            errors.append(error)

    if not partial or "category" in data:
        is_valid, error = validate_category(data.get("category"))
        if not is_valid:
            errors.append(error)

    if "quantity" in data:
        is_valid, error = validate_non_negative_number(data["quantity"], "Quantity")
        if not is_valid:
            errors.append(error)

    if "min_threshold" in data and data["min_threshold"] is not None:
        is_valid, error = validate_non_negative_number(data["min_threshold"], "Minimum threshold")
        if not is_valid:
            errors.append(error)

    if data.get("notes") is not None:
        is_valid, error = validate_string_length(data["notes"], MAX_NOTES_LENGTH, "Notes")
        if not is_valid:
            errors.append(error)

    return len(errors) == 0, errors


def validate_beneficiary_data(data: dict, partial: bool = False) -> Tuple[bool, list]:
    """
    Validate beneficiary data.

    Args:
        data: Dictionary with beneficiary fields
        partial: If True only validate the keys present

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    errors = []

    if not partial or "name" in data:
        is_valid, error = validate_required_string(data.get("name"), "Name")
        if not is_valid:
            errors.append(error)
        is_valid, error = validate_string_length(data.get("name"), MAX_NAME_LENGTH, "Name")
        if not is_valid:
            errors.append(error)

    if "family_size" in data and data["family_size"] is not None:
        size = data["family_size"]
        if isinstance(size, bool) or not isinstance(size, int):
            errors.append("Family size: Must be a whole number")
        elif size < MIN_FAMILY_SIZE:
            errors.append(f"Family size: Must be at least {MIN_FAMILY_SIZE}")

    is_valid, error = validate_string_length(data.get("address"), MAX_NOTES_LENGTH, "Address")
    if not is_valid:
        errors.append(error)

    is_valid, error = validate_string_length(data.get("phone"), MAX_PHONE_LENGTH, "Phone")
    if not is_valid:
        errors.append(error)

    is_valid, error = validate_string_length(data.get("notes"), MAX_NOTES_LENGTH, "Notes")
    if not is_valid:
        errors.append(error)

    return len(errors) == 0, errors


def validate_delivery_event_data(data: dict, partial: bool = False) -> Tuple[bool, list]:
    """
    Validate delivery event data.

    Args:
        data: Dictionary with event fields
        partial: If True only validate the keys present

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    errors = []

    if not partial or "title" in data:
        is_valid, error = validate_required_string(data.get("title"), "Title")
        if not is_valid:
            errors.append(error)
        is_valid, error = validate_string_length(data.get("title"), MAX_TITLE_LENGTH, "Title")
        if not is_valid:
            errors.append(error)

    if not partial or "event_date" in data:
        if parse_date(data.get("event_date")) is None:
            errors.append(f"Date: {ERROR_INVALID_DATE}")

    is_valid, error = validate_string_length(
        data.get("description"), MAX_NOTES_LENGTH, "Description"
    )
    if not is_valid:
        errors.append(error)

    return len(errors) == 0, errors


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize a string value by stripping whitespace and converting empty strings to None.

    Args:
        value: The string value to sanitize

    Returns:
        Sanitized string or None
    """
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None
