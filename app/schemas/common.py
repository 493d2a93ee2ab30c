from math import ceil
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class InputSchema(BaseModel):
    """Request bodies store enum members as their plain values."""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class UpdateSchema(InputSchema):
    """
    Partial update body. Only the fields a client sends are applied, so
    defaults are left unvalidated; combine with `not_null` for columns that
    cannot be cleared.
    """
    model_config = ConfigDict(use_enum_values=True, validate_default=False)


def not_null(*fields: str):
    """Field validator refusing an explicit JSON null for `fields`."""
    def check(cls, v):
        if v is None:
            raise ValueError("this field cannot be null")
        return v
    return field_validator(*fields, mode="before")(check)


class Pagination(BaseModel):
    currentPage: int
    totalPages: int
    totalItems: int
    itemsPerPage: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            currentPage=page,
            totalPages=ceil(total / limit) if limit else 0,
            totalItems=total,
            itemsPerPage=limit,
        )


def success_response(data: Any = None, message: Optional[str] = None) -> dict:
    """Standard envelope returned by every endpoint."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def paginated(key: str, items: list, pagination: Pagination) -> dict:
    return {key: items, "pagination": pagination.model_dump()}


def dump(schema: type[BaseModel], obj: Any) -> dict:
    return schema.model_validate(obj).model_dump(mode="json")


def dump_all(schema: type[BaseModel], objs) -> list[dict]:
    return [dump(schema, o) for o in objs]
