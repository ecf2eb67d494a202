"""
Response envelopes.

Success: {"success": true, "data": ...} (plus "meta" for pages)
Failure: {"success": false, "message": "..."}
"""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse


def ok(data: Any = None, **extra: Any) -> dict[str, Any]:
    """Success envelope."""
    return {"success": True, **extra, "data": data}


def paged(data: list[Any], meta: dict[str, Any]) -> dict[str, Any]:
    """Success envelope for a page of results."""
    return {"success": True, "meta": meta, "data": data}


def error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    """Failure envelope."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )
