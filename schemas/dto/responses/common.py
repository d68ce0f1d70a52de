"""
Common response DTOs shared across multiple endpoints.

CamelModel       — base for every response body (camelCase JSON keys)
HealthResponse   — GET /health
PaginationMeta   — pagination block included in list responses
success()        — wraps a payload in the {"status": "success", ...} envelope
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialises with camelCase aliases; accepts either spelling on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]


class PaginationMeta(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "PaginationMeta":
        total_pages = -(-total // limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total,
            limit=limit,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {key: _dump(item) for key, item in value.items()}
    return value


def success(data: Any = None, message: Optional[str] = None) -> dict[str, Any]:
    """Success envelope; pydantic models inside *data* are dumped camelCase."""
    body: dict[str, Any] = {"status": "success"}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = _dump(data)
    return body


def camelize(value: Any) -> Any:
    """Rename snake_case dict keys to camelCase, recursively."""
    if isinstance(value, dict):
        return {to_camel(str(key)): camelize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [camelize(item) for item in value]
    return value
