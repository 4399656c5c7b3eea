from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from stock_movements.errors import RequestValidationFailed

ModelT = TypeVar("ModelT", bound=BaseModel)


def format_errors(exc: ValidationError) -> list[dict[str, str]]:
    out: list[dict[str, str]] = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()))
        out.append({"field": field, "message": str(err.get("msg", "Invalid value"))})
    return out


async def _read_body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw or not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise RequestValidationFailed(
            [{"field": "body", "message": "Malformed JSON body"}]
        ) from e
    if not isinstance(data, dict):
        raise RequestValidationFailed(
            [{"field": "body", "message": "Body must be a JSON object"}]
        )
    return data


def validate_params(schema: type[ModelT], params: dict[str, Any]) -> ModelT:
    try:
        return schema.model_validate(params)
    except ValidationError as e:
        raise RequestValidationFailed(format_errors(e)) from e


async def parse_request(request: Request, schema: type[ModelT]) -> ModelT:
    """Valida path + query + body contra el schema (el último origen gana)."""
    params: dict[str, Any] = {}
    params.update(request.path_params)
    params.update(request.query_params)
    if request.method in ("POST", "PUT", "PATCH"):
        params.update(await _read_body(request))
    return validate_params(schema, params)


def validated(schema: type[ModelT]) -> Callable[[Request], Awaitable[ModelT]]:
    async def dependency(request: Request) -> ModelT:
        return await parse_request(request, schema)

    return dependency
