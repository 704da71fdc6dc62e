"""
Uniform JSON envelopes for API responses.

Success: {"success": true, "message": ..., "data"|"user": ..., "meta": {"timestamp": ...}}
Error:   {"success": false, "message": ..., "errors"?: ..., "meta": {"timestamp": ...}}
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _meta(request_id: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"timestamp": datetime.now(timezone.utc).isoformat()}
    if request_id:
        meta["requestId"] = request_id
    meta.update({key: value for key, value in extra.items() if value is not None})
    return meta


def success_body(
    message: str = "Success",
    data: Any = None,
    *,
    key: str = "data",
    meta: Optional[Dict[str, Any]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """
    Build a success envelope.

    Args:
        message: Human readable message
        data: Payload, placed under ``key`` ("data" or "user")
        key: Envelope key for the payload
        meta: Additional meta entries (pagination, request id)
        **extra: Additional top-level keys (e.g. tokens echoed in development)

    Returns:
        Dict ready to be returned from a route
    """
    body: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body[key] = jsonable_encoder(data)
    body.update(jsonable_encoder(extra))
    body["meta"] = _meta(**(meta or {}))
    return body


def error_response(
    status_code: int,
    message: str,
    errors: Optional[Union[str, List[Any]]] = None,
    request_id: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build an error envelope response."""
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = jsonable_encoder(errors)
    body["meta"] = _meta(request_id)
    return JSONResponse(status_code=status_code, content=body, headers=headers)
