"""
Success Envelope

Every successful response is wrapped as
    {"success": true, "data": ..., <pagination or message>}
with camelCase keys, mirroring the error envelope in error_handlers.py.
"""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ResponseSchema(BaseModel):
    """Base class for outbound payloads, built from ORM objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def envelope(data: Any = None, *, message: str | None = None, **extra: Any) -> dict[str, Any]:
    """Wrap a payload in the success envelope."""
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = _dump(data)
    body.update({key: _dump(value) for key, value in extra.items()})
    return body


def paginated(items: list[Any], *, total: int, page: int, limit: int) -> dict[str, Any]:
    """Success envelope for list endpoints."""
    return envelope(
        items,
        count=len(items),
        total=total,
        page=page,
        pages=math.ceil(total / limit) if limit else 0,
    )


__all__ = ["ResponseSchema", "envelope", "paginated"]
