from __future__ import annotations

import inspect
from functools import wraps
from typing import Any, Callable

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.responses import Response


def success_payload(
    data: Any,
    message: str = "Success",
    *,
    request_id: str | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "success": True,
        "message": message,
        "data": data,
    }
    if request_id:
        payload["requestId"] = request_id
    return payload


def error_payload(
    message: str,
    data: Any = None,
    *,
    request_id: str | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "success": False,
        "message": message,
        "data": data,
    }
    if request_id:
        payload["requestId"] = request_id
    return payload


def error_response(
    *,
    status_code: int,
    message: str,
    data: Any = None,
    headers: dict[str, str] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content=jsonable_encoder(error_payload(message=message, data=data, request_id=request_id)),
    )


def _parse_http_exception_detail(detail: Any) -> tuple[str, Any]:
    if isinstance(detail, dict):
        message = detail.get("message")
        if isinstance(message, str) and message.strip():
            return message, {"code": detail.get("code", "HTTP_EXCEPTION"), "details": detail.get("details")}
        return "Request failed", {"code": "HTTP_EXCEPTION", "details": detail}

    if detail is None:
        return "Request failed", {"code": "HTTP_EXCEPTION", "details": None}

    return str(detail), {"code": "HTTP_EXCEPTION", "details": None}


def request_id_from_request(request: Request | None) -> str | None:
    if request is None:
        return None
    return getattr(request.state, "request_id", None)


def http_exception_response(exc: HTTPException, request: Request | None = None) -> JSONResponse:
    message, data = _parse_http_exception_detail(exc.detail)
    return error_response(
        status_code=exc.status_code,
        message=message,
        data=data,
        request_id=request_id_from_request(request),
        headers=exc.headers,
    )


def document_response(
    *,
    message: str = "Success",
    status_code: int = status.HTTP_200_OK,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Wrap a route's return value in the success envelope."""

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Response:
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result

            if isinstance(result, Response):
                return result

            request = next((value for value in kwargs.values() if isinstance(value, Request)), None)
            return JSONResponse(
                status_code=status_code,
                content=jsonable_encoder(
                    success_payload(
                        data=result,
                        message=message,
                        request_id=request_id_from_request(request),
                    )
                ),
            )

        return wrapper

    return decorator
