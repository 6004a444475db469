"""
JSON Output Formatter for the AniTick CLI

Centralized envelope used by every command when ``--json`` is given.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson
from pydantic import BaseModel


def format_json_output(
    success: bool,
    command: str,
    data: Any | None = None,
    errors: list[Any] | None = None,
    warnings: list[str] | None = None,
) -> bytes:
    """
    Format command output as JSON.

    Args:
        success: Whether the command executed successfully
        command: The command name (e.g., "search", "refresh")
        data: The command's output data
        errors: Error entries (strings or error dictionaries)
        warnings: Warning messages

    Returns:
        JSON-encoded bytes ready for output

    Example:
        >>> output = format_json_output(
        ...     success=True,
        ...     command="refresh",
        ...     data={"tracked": 12, "updated": 11}
        ... )
        >>> print(output.decode())
        {
          "command": "refresh",
          "data": {
            "tracked": 12,
            "updated": 11
          },
          "errors": [],
          "success": true,
          "timestamp": "2026-10-03T10:30:00+00:00",
          "warnings": []
        }
    """
    errors = errors or []
    warnings = warnings or []

    # If there are errors, success should be False
    if errors:
        success = False

    json_data = {
        "success": success,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "command": command,
        "data": safe_json_serialize(data),
        "errors": safe_json_serialize(errors),
        "warnings": warnings,
    }

    try:
        return orjson.dumps(
            json_data,
            option=orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2,
        )
    except TypeError as e:
        error_data = {
            "success": False,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "command": command,
            "data": None,
            "errors": [f"JSON serialization failed: {e!s}"],
            "warnings": [],
        }
        return orjson.dumps(
            error_data,
            option=orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2,
        )


def safe_json_serialize(obj: Any) -> Any:
    """
    Convert ``obj`` into JSON-serializable primitives.

    Pydantic models are dumped with their camelCase aliases.
    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, (list, tuple)):
        return [safe_json_serialize(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): safe_json_serialize(v) for k, v in obj.items()}
    if isinstance(obj, BaseModel):
        return obj.model_dump(by_alias=True, mode="json")
    if hasattr(obj, "__dict__"):
        return safe_json_serialize(vars(obj))
    return str(obj)


def format_success_output(command: str, data: Any) -> bytes:
    """Format successful command output."""
    return format_json_output(success=True, command=command, data=data)


def format_error_output(command: str, errors: list[Any]) -> bytes:
    """Format error output."""
    return format_json_output(success=False, command=command, errors=errors)
