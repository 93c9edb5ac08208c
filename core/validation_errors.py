from __future__ import annotations

import json
from typing import Any, Iterable, TypeVar

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def _normalize_error_path(location_parts: Iterable[Any]) -> tuple[str, str]:
    parts = [str(part) for part in location_parts]
    if not parts:
        return "body", "(root)"

    location = parts[0]
    if location in _REQUEST_LOCATIONS:
        path_parts = parts[1:]
    else:
        location = "body"
        path_parts = parts

    if not path_parts:
        return location, "(root)"

    return location, ".".join(path_parts)


def build_validation_summary(details: list[dict[str, str]]) -> str:
    missing_fields = [item["field"] for item in details if item["code"] == "missing"]
    if missing_fields:
        missing_fields = list(dict.fromkeys(missing_fields))
        noun = "field" if len(missing_fields) == 1 else "fields"
        return f"Validation failed: missing required {noun}: {', '.join(missing_fields)}."

    noun = "field" if len(details) == 1 else "fields"
    return f"Validation failed for {len(details)} {noun}."


def format_validation_error_details(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    field_errors: list[dict[str, str]] = []

    for error in errors:
        raw_loc = error.get("loc")
        if isinstance(raw_loc, (list, tuple)):
            location, path = _normalize_error_path(raw_loc)
        elif raw_loc is None:
            location, path = "body", "(root)"
        else:
            location, path = _normalize_error_path([raw_loc])

        field_errors.append(
            {
                "field": path,
                "location": location,
                "message": str(error.get("msg", "Invalid value")),
                "code": str(error.get("type", "validation_error")),
            }
        )

    return field_errors


def parse_payload(model: type[ModelT], body: Any, *, message: str = "Invalid request data") -> ModelT:
    try:
        return model.model_validate(body)
    except PydanticValidationError as err:
        raise ValidationError(message, details=format_validation_error_details(err.errors())) from err


async def read_json_body(request: Request, *, message: str = "Invalid request data") -> Any:
    raw = await request.body()
    try:
        return json.loads(raw or b"null")
    except ValueError as err:
        raise ValidationError(
            message,
            details=[
                {
                    "field": "(root)",
                    "location": "body",
                    "message": "Request body must be valid JSON",
                    "code": "json_invalid",
                }
            ],
        ) from err
