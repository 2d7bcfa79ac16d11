# souq/schemas/response_schemas.py
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel
from typing import Generic, TypeVar, Optional
from typing_extensions import Annotated

T = TypeVar("T")

# Decimal internally, JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """JSON uses camelCase, Python uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ResponseMessage(BaseModel, Generic[T]):
    ok: bool = True
    data: Optional[T] = None


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[dict] = None
    retryAfter: Optional[int] = None


class ErrorResponse(BaseModel):
    ok: bool = False
    error: ErrorBody


class PageMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


def page_meta(page: int, limit: int, total: int) -> PageMeta:
    return PageMeta(page=page, limit=limit, total=total, total_pages=max(1, -(-total // limit)))
