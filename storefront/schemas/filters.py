from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, Field

SortDirection = Literal["asc", "desc"]


class FilterRequest(BaseModel):
    """A normalized catalog query intent. Built by the query builder's coercion step."""

    search: str | None = None
    categories: list[str] = Field(default_factory=list)
    price_min: float | None = Field(None, ge=0)
    price_max: float | None = Field(None, ge=0)
    sort: str = "name"
    direction: SortDirection = "asc"
    page: int = Field(1, ge=1)
    page_size: int = Field(24, ge=1)


@dataclass(frozen=True)
class CatalogProfile:
    """Per-consumer query rules: sortable fields, defaults and searched columns."""

    name: str
    sort_fields: dict[str, str]
    default_sort: str
    search_fields: tuple[str, ...]
    default_page_size: int
    max_page_size: int
    default_direction: SortDirection = "asc"


@dataclass
class QueryPlan:
    """Store-specific predicate set ready to hand to the products collection."""

    filter: dict[str, Any]
    sort: list[tuple[str, int]]
    page: int
    page_size: int
    notes: list[str] = field(default_factory=list)
