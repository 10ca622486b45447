"""
Response envelopes.

Every successful route returns the same shape as the exception handlers:
{"status", "status_code", "message", "data"}.
"""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def _serialize(data: Any) -> Any:
    """Dump pydantic models by alias so the wire format stays camelCase."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, (list, tuple)):
        return [_serialize(item) for item in data]
    return jsonable_encoder(data)


def success_response(
    status_code: int = 200,
    message: str = "OK",
    data: Any = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "success",
            "status_code": status_code,
            "message": message,
            "data": _serialize(data),
        },
    )
