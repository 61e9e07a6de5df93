"""Response envelope helpers.

Every success body is ``{"response": <payload>}`` and every failure body is
``{"error": <message>}``. Internal failures carry no body at all.
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse, Response


def success(payload: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"response": jsonable_encoder(payload)})


def failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def internal_error() -> Response:
    return Response(status_code=500)
