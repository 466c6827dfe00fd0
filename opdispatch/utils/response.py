"""Standardized response envelopes for dispatch results and MCP tools."""

from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


def is_success(result: Dict[str, Any]) -> bool:
    """Check if an envelope reports success."""
    return bool(result.get("ok"))


def success_response(
    data: Any,
    warnings: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create a successful response envelope.

    Args:
        data: The response data
        warnings: Optional list of warning messages
        metadata: Optional dispatch metadata

    Returns:
        Standardized success response
    """
    response = {
        "ok": True,
        "data": to_jsonable(data)
    }

    if warnings:
        response["warnings"] = warnings

    if metadata:
        response["metadata"] = to_jsonable(metadata)

    return response


def error_response(
    message: str,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create an error response envelope.

    Args:
        message: Error message
        code: Optional error code
        details: Optional error details

    Returns:
        Standardized error response
    """
    error = {"message": message}

    if code:
        error["code"] = code

    if details:
        error["details"] = to_jsonable(details)

    return {
        "ok": False,
        "error": error
    }


def to_jsonable(value: Any) -> Any:
    """Convert handler results (pydantic models, dataclasses, enums) to JSON-safe values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")

    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}

    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in value]

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value

    if isinstance(value, type):
        return value.__name__

    return str(value)
