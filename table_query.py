"""Search / sort / paginate parameters for list endpoints.

Every list resource declares a ``TableQuerySpec``; incoming parameters are
normalized against it so that the store only ever sees allowlisted sort columns
and page sizes. Rejected inputs are reported alongside the normalized query.
"""
from __future__ import annotations
import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

DEFAULT_TABLE_PAGE_SIZE = 50
DEFAULT_TABLE_MAX_SEARCH = 100
STANDARD_TABLE_PAGE_SIZES = (10, 50, 100, 200)

_INT_PATTERN = re.compile(r"[+-]?\d+")

# Query parameter names, in the order they are emitted into URLs
_PARAMS = ("q", "sort", "dir", "page", "pageSize")


@dataclass(frozen=True)
class TableQuerySpec:
    default_sort: str
    default_dir: str = "asc"
    allowed_sorts: FrozenSet[str] = frozenset()
    allowed_page_sizes: FrozenSet[int] = frozenset()
    default_size: int = DEFAULT_TABLE_PAGE_SIZE
    max_search_len: int = DEFAULT_TABLE_MAX_SEARCH


@dataclass(frozen=True)
class TableQuery:
    page: int = 1
    page_size: int = DEFAULT_TABLE_PAGE_SIZE
    search: str = ""
    sort: str = ""
    sort_set: bool = False
    dir: str = "asc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class TableQueryParseResult:
    query: TableQuery
    rejected: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TablePagination:
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_prev: bool
    has_next: bool


@dataclass(frozen=True)
class SortCycle:
    sort: str = ""
    dir: str = ""

    @property
    def cleared(self) -> bool:
        return self.sort == ""


def standard_table_query_spec(default_sort: str, default_dir: str, *allowed_sorts: str) -> TableQuerySpec:
    return TableQuerySpec(
        default_sort=default_sort,
        default_dir=default_dir,
        allowed_sorts=frozenset(allowed_sorts),
        allowed_page_sizes=frozenset(STANDARD_TABLE_PAGE_SIZES),
        default_size=DEFAULT_TABLE_PAGE_SIZE,
        max_search_len=DEFAULT_TABLE_MAX_SEARCH,
    )


def _positive_or(value: int, fallback: int) -> int:
    return value if value > 0 else fallback


def _default_direction(direction: str) -> str:
    return "desc" if direction == "desc" else "asc"


def _parse_int(raw: str) -> Optional[int]:
    raw = raw.strip()
    if not _INT_PATTERN.fullmatch(raw):
        return None
    return int(raw)


def _defaults(spec: TableQuerySpec) -> TableQuery:
    return TableQuery(
        page=1,
        page_size=_positive_or(spec.default_size, DEFAULT_TABLE_PAGE_SIZE),
        sort=spec.default_sort,
        dir=_default_direction(spec.default_dir),
    )


def _raw_inputs(params: Mapping[str, Any], body: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    raw: Dict[str, str] = {}
    for name in _PARAMS:
        value = params.get(name)
        if value not in (None, ""):
            raw[name] = str(value)
    table = body.get("tableQuery") if body else None
    if isinstance(table, Mapping):
        aliases = {"q": ("q", "search"), "sort": ("sort",), "dir": ("dir",), "page": ("page",), "pageSize": ("pageSize",)}
        for name, keys in aliases.items():
            for key in keys:
                value = table.get(key)
                if value in (None, "") or isinstance(value, bool):
                    continue
                raw[name] = str(int(value)) if isinstance(value, float) and value.is_integer() else str(value)
                break
        # A JSON table query that explicitly cleared its sort drops the URL's sort
        if table.get("sortSet") is False and not table.get("sort"):
            raw.pop("sort", None)
            raw.pop("dir", None)
    return raw


def parse_table_query(
    params: Mapping[str, Any],
    spec: TableQuerySpec,
    body: Optional[Mapping[str, Any]] = None,
) -> TableQueryParseResult:
    """Normalize ``page, pageSize, q, sort, dir`` from the query string and an optional
    JSON body's ``tableQuery`` object (which wins when both carry a value)."""
    raw = _raw_inputs(params, body)
    rejected: Dict[str, str] = {}
    query = _defaults(spec)
    default_size = query.page_size

    if "page" in raw:
        value = _parse_int(raw["page"])
        if value is None or value <= 0:
            rejected["page"] = "must be a positive integer"
        else:
            query = replace(query, page=value)

    if "pageSize" in raw:
        value = _parse_int(raw["pageSize"])
        if value is None or value <= 0:
            rejected["pageSize"] = "must be a positive integer"
        else:
            query = replace(query, page_size=value)

    if spec.allowed_page_sizes and query.page_size not in spec.allowed_page_sizes:
        rejected["pageSize"] = "value not allowlisted"
        query = replace(query, page_size=default_size)

    search = raw.get("q", "").strip()
    max_search_len = _positive_or(spec.max_search_len, DEFAULT_TABLE_MAX_SEARCH)
    if len(search) > max_search_len:
        rejected["q"] = "trimmed to max length"
        search = search[:max_search_len].strip()
    query = replace(query, search=search)

    if "sort" in raw:
        if raw["sort"] in spec.allowed_sorts:
            query = replace(query, sort=raw["sort"], sort_set=True)
        else:
            rejected["sort"] = "value not allowlisted"

    if "dir" in raw:
        direction = raw["dir"]
        if not query.sort_set:
            rejected["dir"] = "requires a valid sort"
        elif direction in ("asc", "desc"):
            query = replace(query, dir=direction)
        else:
            rejected["dir"] = "must be asc or desc"

    if not query.sort_set:
        query = replace(query, dir=_default_direction(spec.default_dir))

    return TableQueryParseResult(query=query, rejected=rejected)


def normalize_table_query(query: TableQuery, spec: TableQuerySpec) -> TableQuery:
    normalized = _defaults(spec)
    default_size = normalized.page_size
    if query.page > 0:
        normalized = replace(normalized, page=query.page)
    if query.page_size > 0:
        normalized = replace(normalized, page_size=query.page_size)
    if spec.allowed_page_sizes and normalized.page_size not in spec.allowed_page_sizes:
        normalized = replace(normalized, page_size=default_size)

    search = query.search.strip()
    max_search_len = _positive_or(spec.max_search_len, DEFAULT_TABLE_MAX_SEARCH)
    if len(search) > max_search_len:
        search = search[:max_search_len].strip()
    normalized = replace(normalized, search=search)

    if query.sort and query.sort in spec.allowed_sorts:
        normalized = replace(normalized, sort=query.sort, sort_set=True)
        if query.dir in ("asc", "desc"):
            normalized = replace(normalized, dir=query.dir)
    return normalized


def total_pages(total_items: int, page_size: int) -> int:
    if total_items <= 0:
        return 1
    return max(1, math.ceil(total_items / page_size))


def clamp_page(query: TableQuery, total_items: int) -> TableQuery:
    """Pull ``page`` back into ``1..total_pages`` for the given row count."""
    page = min(query.page, total_pages(total_items, query.page_size))
    return replace(query, page=max(1, page))


def build_pagination(total_items: int, query: TableQuery) -> TablePagination:
    pages = total_pages(total_items, query.page_size)
    return TablePagination(
        page=query.page,
        page_size=query.page_size,
        total_items=max(0, total_items),
        total_pages=pages,
        has_prev=query.page > 1,
        has_next=query.page < pages,
    )


def next_sort_cycle(query: TableQuery, column: str) -> SortCycle:
    """none -> (col, asc) -> (col, desc) -> cleared."""
    if not query.sort_set or query.sort != column:
        return SortCycle(sort=column, dir="asc")
    if query.dir == "asc":
        return SortCycle(sort=column, dir="desc")
    return SortCycle()


def apply_sort_cycle(query: TableQuery, cycle: SortCycle, spec: TableQuerySpec) -> TableQuery:
    if cycle.cleared:
        return replace(query, sort=spec.default_sort, sort_set=False, dir=_default_direction(spec.default_dir))
    return replace(query, sort=cycle.sort, sort_set=True, dir=cycle.dir)


def build_table_query_url(
    base_path: str,
    query: TableQuery,
    *,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    dir: Optional[str] = None,
    page: Optional[int] = None,
    page_size: Optional[int] = None,
) -> str:
    """Serialize ``query`` (with optional overrides) onto ``base_path``.

    Unrelated query parameters already on ``base_path`` are preserved. Defaults are
    omitted: ``q`` when empty, ``sort``/``dir`` unless a sort is set, ``page`` when 1
    and ``pageSize`` when it equals the conventional 50.
    """
    resolved = query
    if search is not None:
        resolved = replace(resolved, search=search.strip())
    if sort is not None:
        resolved = replace(resolved, sort=sort, sort_set=sort != "")
    if dir is not None:
        resolved = replace(resolved, dir=dir)
    if page is not None:
        resolved = replace(resolved, page=page)
    if page_size is not None:
        resolved = replace(resolved, page_size=page_size)
    if resolved.page < 1:
        resolved = replace(resolved, page=1)
    if resolved.page_size < 1:
        resolved = replace(resolved, page_size=DEFAULT_TABLE_PAGE_SIZE)

    parts = urlsplit(base_path)
    kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in _PARAMS]
    if resolved.search:
        kept.append(("q", resolved.search))
    if resolved.sort_set:
        kept.append(("sort", resolved.sort))
        kept.append(("dir", resolved.dir))
    if resolved.page > 1:
        kept.append(("page", str(resolved.page)))
    if resolved.page_size != DEFAULT_TABLE_PAGE_SIZE:
        kept.append(("pageSize", str(resolved.page_size)))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), parts.fragment))


def build_sort_url(base_path: str, query: TableQuery, column: str) -> str:
    cycle = next_sort_cycle(query, column)
    return build_table_query_url(base_path, query, sort=cycle.sort, dir=cycle.dir, page=1)


def build_page_url(base_path: str, query: TableQuery, page: int, pages: int = 0) -> str:
    page = max(1, page)
    if pages > 0:
        page = min(page, pages)
    return build_table_query_url(base_path, query, page=page)


def build_page_size_url(base_path: str, query: TableQuery, page_size: int) -> str:
    return build_table_query_url(base_path, query, page=1, page_size=page_size)


def table_query_signals(query: TableQuery) -> Dict[str, Any]:
    return {
        "search": query.search,
        "sort": query.sort if query.sort_set else "",
        "sortSet": query.sort_set,
        "dir": query.dir if query.sort_set else "",
        "page": query.page,
        "pageSize": query.page_size,
    }


def page_numbers(pagination: TablePagination, window: int = 2) -> Iterable[int]:
    start = max(1, pagination.page - window)
    end = min(pagination.total_pages, pagination.page + window)
    return range(start, end + 1)
