"""
Query translation for list endpoints.

Turns raw query parameters (``?status=Open&priority[gte]=Medium&sort=-createdAt
&fields=title,status&page=2&limit=5``) into a ``QueryPlan`` that repositories
execute: a filter tree whose comparison keys use the store operator form
(``$gt``, ``$in`` ...), the sort order, the projection and the page window.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

import structlog

logger = structlog.get_logger()

RESERVED_PARAMS = frozenset({"page", "sort", "limit", "fields"})
COMPARISON_OPERATORS = frozenset({"gt", "gte", "lt", "lte", "in"})
OPERATOR_PREFIX = "$"

DEFAULT_SORT = "-createdAt"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

_BRACKETED_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_BRACKET_SEGMENT = re.compile(r"\[([^\[\]]*)\]")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class SortField:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class FilterRequest:
    """Client request split into the filter tree and the reserved controls."""

    filters: Mapping[str, Any]
    sort: Optional[str] = None
    fields: Optional[str] = None
    page: Optional[str] = None
    limit: Optional[str] = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "FilterRequest":
        filters = {key: value for key, value in params.items() if key not in RESERVED_PARAMS}
        return cls(
            filters=filters,
            sort=_as_text(params.get("sort")),
            fields=_as_text(params.get("fields")),
            page=_as_text(params.get("page")),
            limit=_as_text(params.get("limit")),
        )


@dataclass(frozen=True)
class QueryPlan:
    filter: Mapping[str, Any]
    sort: tuple[SortField, ...]
    projection: Optional[tuple[str, ...]]
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return total_pages(total, self.limit)


def _as_text(value: Any) -> Optional[str]:
    # Repeated reserved params (``sort=a&sort=b``) behave like one comma list
    if value is None:
        return None
    if isinstance(value, list):
        return ",".join(str(item) for item in value)
    return str(value)


def _assign(target: dict, path: list[str], value: Any, as_list: bool) -> None:
    node = target
    for segment in path[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child

    leaf = path[-1]
    existing = node.get(leaf)
    if existing is None:
        node[leaf] = [value] if as_list else value
    elif isinstance(existing, list):
        existing.append(value)
    elif isinstance(existing, dict):
        logger.debug("Ignoring scalar query value shadowed by nested keys", key=leaf)
    else:
        node[leaf] = [existing, value]


def parse_query_params(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """
    Expand bracketed query keys into nested mappings.

    ``priority[gt]=Low`` becomes ``{"priority": {"gt": "Low"}}``; a repeated
    key (``status=Open&status=Closed``) becomes a list; an empty bracket
    (``status[in][]=Open``) forces a list even for a single value.
    """
    parsed: dict[str, Any] = {}
    for key, value in items:
        match = _BRACKETED_KEY.match(key)
        if not match:
            _assign(parsed, [key], value, as_list=False)
            continue

        segments = _BRACKET_SEGMENT.findall(match.group(2))
        path = [match.group(1)] + [segment for segment in segments if segment]
        _assign(parsed, path, value, as_list=len(path) < len(segments) + 1)
    return parsed


def _rewrite_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            (OPERATOR_PREFIX + key if key in COMPARISON_OPERATORS else key): _rewrite_value(inner)
            for key, inner in value.items()
        }
    if isinstance(value, list):
        return [_rewrite_value(item) for item in value]
    return value


def rewrite_operators(filters: Mapping[str, Any]) -> dict[str, Any]:
    """
    Rewrite comparison keywords below field level into store operators.

    Field names at the top of the tree and all values are left untouched, so
    ``{"in": "x"}`` stays a filter on a field called ``in`` while
    ``{"priority": {"in": [...]}}`` becomes ``{"priority": {"$in": [...]}}``.
    """
    return {field: _rewrite_value(value) for field, value in filters.items()}


def parse_sort(raw: Optional[str], default: str = DEFAULT_SORT) -> tuple[SortField, ...]:
    spec = raw if raw and raw.strip() else default
    order = []
    for token in spec.split(","):
        token = token.strip()
        if not token:
            continue
        if token.startswith("-"):
            name = token[1:].strip()
            if name:
                order.append(SortField(name, descending=True))
        else:
            order.append(SortField(token.lstrip("+").strip()))
    return tuple(sort for sort in order if sort.field)


def parse_projection(raw: Optional[str]) -> Optional[tuple[str, ...]]:
    if not raw:
        return None
    fields = tuple(dict.fromkeys(name.strip() for name in raw.split(",") if name.strip()))
    return fields or None


def parse_positive_int(raw: Optional[str], default: int) -> int:
    """Leading-integer parse; anything missing, non-numeric or below 1 gives ``default``."""
    if raw is None:
        return default
    match = _LEADING_INT.match(str(raw))
    if not match:
        return default
    value = int(match.group(1))
    return value if value > 0 else default


def total_pages(total: int, limit: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / limit)


class QueryTranslator:
    """Builds ``QueryPlan`` objects from client query parameters."""

    def __init__(
        self,
        *,
        default_sort: str = DEFAULT_SORT,
        default_limit: int = DEFAULT_LIMIT,
        logger: Any = None,
    ) -> None:
        self.default_sort = default_sort
        self.default_limit = default_limit
        self._logger = logger or structlog.get_logger()

    def translate(self, params: Mapping[str, Any]) -> QueryPlan:
        request = FilterRequest.from_params(params)
        plan = QueryPlan(
            filter=rewrite_operators(request.filters),
            sort=parse_sort(request.sort, self.default_sort),
            projection=parse_projection(request.fields),
            page=parse_positive_int(request.page, DEFAULT_PAGE),
            limit=parse_positive_int(request.limit, self.default_limit),
        )
        self._logger.debug(
            "Query plan built",
            filter=plan.filter,
            sort=[("-" if s.descending else "") + s.field for s in plan.sort],
            projection=plan.projection,
            page=plan.page,
            limit=plan.limit,
        )
        return plan
