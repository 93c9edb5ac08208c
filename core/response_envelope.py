from __future__ import annotations

import inspect
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from core.errors import AppException, ErrorCode
from core.logging_config import get_logger
from core.validation_errors import build_validation_summary, format_validation_error_details

logger = get_logger(__name__)

_RESPONSE_DOC_ATTR = "__response_doc_config__"
_SKIPPED_SUB_RESPONSE_HEADERS = {"content-length", "content-type"}

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


@dataclass(frozen=True)
class ResponseDocConfig:
    status_code: int
    description: str
    success_example: Any | None = None
    summary: str | None = None
    response_codes: dict[int, str] | None = None
    error_examples: dict[int, Any] | None = None


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def error_payload(
    message: str,
    code: str,
    *,
    path: str,
    details: Any = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": message,
        "code": code,
    }
    if details is not None:
        payload["details"] = details
    payload["timestamp"] = _utc_timestamp()
    payload["path"] = path
    if request_id:
        payload["requestId"] = request_id
    return payload


def error_response(
    *,
    status_code: int,
    message: str,
    code: str,
    path: str,
    details: Any = None,
    headers: dict[str, str] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    response_headers = dict(headers or {})
    if request_id:
        response_headers["X-Request-ID"] = request_id
    return JSONResponse(
        status_code=status_code,
        headers=response_headers,
        content=jsonable_encoder(
            error_payload(message=message, code=code, path=path, details=details, request_id=request_id)
        ),
    )


def _parse_http_exception_detail(detail: Any) -> tuple[str, str, Any]:
    if isinstance(detail, str):
        return detail, "HTTP_EXCEPTION", None

    if isinstance(detail, dict):
        message = detail.get("message")
        if isinstance(message, str) and message.strip():
            code = detail.get("code", "HTTP_EXCEPTION")
            details = detail.get("details")
            remaining = {k: v for k, v in detail.items() if k not in {"message", "code", "details"}}
            if remaining:
                details = {"extra": remaining, "details": details}
            return message, code, details

        nested_detail = detail.get("detail")
        if isinstance(nested_detail, str) and nested_detail.strip():
            return nested_detail, "HTTP_EXCEPTION", detail

        return "Request failed", "HTTP_EXCEPTION", detail

    if detail is None:
        return "Request failed", "HTTP_EXCEPTION", None

    return str(detail), "HTTP_EXCEPTION", None


def _extract_instance(kind: type, *args: Any, **kwargs: Any) -> Any:
    for value in kwargs.values():
        if isinstance(value, kind):
            return value
    for value in args:
        if isinstance(value, kind):
            return value
    return None


def request_id_from_request(request: Request | None) -> str | None:
    if request is None:
        return None
    return getattr(request.state, "request_id", None)


def http_exception_response(exc: StarletteHTTPException, request: Request) -> JSONResponse:
    message, code, details = _parse_http_exception_detail(exc.detail)
    request_id = request_id_from_request(request)
    log_extra = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "status_code": exc.status_code,
        "code": code,
    }
    if exc.status_code >= 500:
        logger.error("Application error: %s", message, extra=log_extra)
    else:
        logger.warning("Application error: %s", message, extra=log_extra)

    return error_response(
        status_code=exc.status_code,
        message=message,
        code=code,
        path=request.url.path,
        details=details,
        request_id=request_id,
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI, *, include_error_details: bool = False) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        return http_exception_response(exc=exc, request=request)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        details = format_validation_error_details(list(exc.errors()))
        logger.warning(
            build_validation_summary(details),
            extra={"request_id": request_id_from_request(request), "path": request.url.path},
        )
        return error_response(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="Invalid request data",
            code=ErrorCode.VALIDATION_ERROR.value,
            path=request.url.path,
            details=details,
            request_id=request_id_from_request(request),
        )

    @app.exception_handler(Exception)
    async def _unexpected_exception_handler(request: Request, exc: Exception):
        request_id = request_id_from_request(request)
        logger.exception(
            "Unhandled error while processing request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "user_agent": request.headers.get("user-agent"),
            },
        )
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message=GENERIC_ERROR_MESSAGE,
            code=ErrorCode.INTERNAL_SERVER_ERROR.value,
            path=request.url.path,
            details=str(exc) if include_error_details else None,
            request_id=request_id,
        )


def document_response(
    *,
    status_code: int = status.HTTP_200_OK,
    description: str = "Successful response",
    success_example: Any | None = None,
    summary: str | None = None,
    response_codes: dict[int, str] | None = None,
    error_examples: dict[int, Any] | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Serialize the endpoint's return value as the JSON body.

    Headers set on an injected ``Response`` parameter (rate-limit headers, for
    instance) are carried over to the returned response.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        config = ResponseDocConfig(
            status_code=status_code,
            description=description,
            success_example=success_example,
            summary=summary,
            response_codes=response_codes,
            error_examples=error_examples,
        )

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Response:
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result

            if isinstance(result, Response):
                return result

            json_response = JSONResponse(status_code=status_code, content=jsonable_encoder(result))
            sub_response = _extract_instance(Response, *args, **kwargs)
            if sub_response is not None:
                for key, value in sub_response.headers.items():
                    if key.lower() not in _SKIPPED_SUB_RESPONSE_HEADERS:
                        json_response.headers[key] = value
            return json_response

        setattr(wrapper, _RESPONSE_DOC_ATTR, config)
        return wrapper

    return decorator


def apply_response_documentation(router: FastAPI | APIRouter) -> None:
    updated = False

    for route in router.routes:
        if not isinstance(route, APIRoute):
            continue

        config = getattr(route.endpoint, _RESPONSE_DOC_ATTR, None)
        if not isinstance(config, ResponseDocConfig):
            continue

        if config.summary and not route.summary:
            route.summary = config.summary

        route.status_code = config.status_code

        existing_responses = dict(route.responses or {})
        success_code = config.status_code
        response_entry = dict(existing_responses.get(success_code, {}))
        response_entry.setdefault("description", config.description)

        if config.success_example is not None:
            content = dict(response_entry.get("content", {}))
            app_json = dict(content.get("application/json", {}))
            app_json.setdefault("example", config.success_example)
            content["application/json"] = app_json
            response_entry["content"] = content
        existing_responses[success_code] = response_entry

        for code, code_description in (config.response_codes or {}).items():
            entry = dict(existing_responses.get(code, {}))
            entry.setdefault("description", code_description)
            existing_responses[code] = entry

        for code, example in (config.error_examples or {}).items():
            entry = dict(existing_responses.get(code, {}))
            entry.setdefault("description", "Error response")
            entry_content = dict(entry.get("content", {}))
            entry_json = dict(entry_content.get("application/json", {}))
            entry_json.setdefault("example", example)
            entry_content["application/json"] = entry_json
            entry["content"] = entry_content
            existing_responses[code] = entry

        route.responses = existing_responses
        updated = True

    if updated and isinstance(router, FastAPI):
        router.openapi_schema = None
