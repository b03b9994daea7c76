"""
Input validation helpers.

Used at the edges of the pipeline (catalog import, remote payloads, CLI
arguments) so malformed data is rejected before it reaches the store.
"""

import re
from pathlib import Path
from typing import Any, List, Optional, Union

from .error_handler import ConfigurationError


def validate_file_path(file_path: Union[str, Path], must_exist: bool = False) -> Path:
    """
    Validate and normalize a file path.

    Args:
        file_path: File path to validate
        must_exist: Whether the file must already exist

    Returns:
        Normalized Path object

    Raises:
        ConfigurationError: If path is invalid or file doesn't exist when required
    """
    try:
        path = Path(file_path)

        if must_exist and not path.exists():
            raise ConfigurationError(
                f"File does not exist: {path}",
                details={"file_path": str(path), "must_exist": must_exist}
            )

        return path.resolve()

    except ConfigurationError:
        raise
    except (TypeError, ValueError, OSError) as e:
        raise ConfigurationError(
            f"Invalid file path: {file_path}",
            details={"file_path": str(file_path), "error": str(e)}
        )


def validate_numeric_range(
    value: Union[int, float],
    min_value: Optional[Union[int, float]] = None,
    max_value: Optional[Union[int, float]] = None,
    field_name: str = "value"
) -> float:
    """
    Validate a numeric value is within the inclusive range and return it as float.

    Raises:
        ConfigurationError: If value is not numeric or outside the allowed range
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"{field_name} must be numeric, got {value!r}",
            details={"field_name": field_name, "value": value}
        )

    if number != number:
        raise ConfigurationError(
            f"{field_name} must not be NaN",
            details={"field_name": field_name}
        )

    if min_value is not None and number < min_value:
        raise ConfigurationError(
            f"{field_name} {number} is below minimum {min_value}",
            details={
                "field_name": field_name,
                "value": number,
                "min_value": min_value,
                "max_value": max_value
            }
        )

    if max_value is not None and number > max_value:
        raise ConfigurationError(
            f"{field_name} {number} is above maximum {max_value}",
            details={
                "field_name": field_name,
                "value": number,
                "min_value": min_value,
                "max_value": max_value
            }
        )

    return number


def validate_enum_value(
    value: Any,
    allowed_values: List[Any],
    field_name: str = "value"
) -> Any:
    """
    Validate a value is one of the allowed enum values.

    Raises:
        ConfigurationError: If value is not in the allowed list
    """
    if value not in allowed_values:
        raise ConfigurationError(
            f"{field_name} '{value}' is not allowed. Allowed values: {allowed_values}",
            details={
                "field_name": field_name,
                "value": value,
                "allowed_values": allowed_values
            }
        )

    return value


def sanitize_filename(filename: str, max_length: int = 255) -> str:
    """
    Make a user- or id-derived name safe to use as an export filename.

    Characters invalid on common filesystems are dropped, whitespace runs
    become underscores and the stem is truncated so the extension survives.

    Raises:
        ConfigurationError: If nothing usable is left
    """
    invalid_chars = '<>:"/\\|?*'
    cleaned = ''.join(char for char in filename if char not in invalid_chars and ord(char) >= 32)
    cleaned = re.sub(r'\s+', '_', cleaned.strip()).strip('._')

    if not cleaned:
        raise ConfigurationError(
            "Filename is empty after sanitizing",
            details={"filename": filename}
        )

    if len(cleaned) > max_length:
        stem, dot, ext = cleaned.rpartition('.')
        if dot and stem and len(ext) < max_length:
            cleaned = stem[:max_length - len(ext) - 1] + '.' + ext
        else:
            cleaned = cleaned[:max_length]

    return cleaned
