"""Shared schema pieces: pagination envelope and validators."""
import math
from typing import Annotated, Generic, List, Optional, TypeVar
from urllib.parse import urlparse

from pydantic import AfterValidator, BaseModel, BeforeValidator

T = TypeVar("T")


class Paginated(BaseModel, Generic[T]):
    items: List[T]
    total_items: int
    total_pages: int
    limit: int
    offset: int


def total_pages(total_items: int, limit: int) -> int:
    return math.ceil(total_items / limit) if limit and limit > 0 else 0


def paginate(items, total_items: int, limit: int, offset: int) -> dict:
    return {
        "items": items,
        "total_items": total_items,
        "total_pages": total_pages(total_items, limit),
        "limit": limit,
        "offset": offset,
    }


def validate_http_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Valid URL is required")
    return value


def blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


HttpUrlStr = Annotated[str, AfterValidator(validate_http_url)]
Credential = Annotated[Optional[str], BeforeValidator(blank_to_none)]
