"""Query-string to MongoDB translation for the product listing.

Filters use ``field=value`` for equality and ``field[op]=value`` for the
comparison operators ``gt``, ``gte``, ``lt``, ``lte`` and ``in``. Values are
coerced by field type; anything that cannot be coerced is dropped instead of
failing the request. ``search`` replaces every other filter with a full-text
query.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from loguru import logger
from pydantic.alias_generators import to_snake

RESERVED_PARAMS = frozenset({"select", "sort", "page", "limit", "search", "minPrice", "maxPrice"})
OPERATORS = frozenset({"gt", "gte", "lt", "lte", "in"})
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# largest skip BSON can carry as int64
MAX_SKIP = 2**63 - 1
DEFAULT_SORT: List[Tuple[str, int]] = [("created_at", -1)]

_KEY_RE = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)(?:\[(?P<op>[A-Za-z]*)\])?$")

QueryParams = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


class _Invalid:
    pass


INVALID = _Invalid()


def _to_bool(raw: str) -> Any:
    lowered = raw.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    return INVALID


def _to_number(cast: Callable[[str], Any]) -> Callable[[str], Any]:
    def convert(raw: str) -> Any:
        try:
            value = cast(raw.strip())
        except ValueError:
            return INVALID
        if isinstance(value, float) and not math.isfinite(value):
            return INVALID
        return value

    return convert


FIELD_TYPES: Dict[str, Callable[[str], Any]] = {
    "price": _to_number(float),
    "quantity": _to_number(int),
    "in_stock": _to_bool,
}


def storage_field(name: str) -> str:
    if name == "id":
        return "_id"
    return to_snake(name)


def coerce(field_name: str, raw: str) -> Any:
    convert = FIELD_TYPES.get(field_name)
    return convert(raw) if convert else raw


def positive_int(raw: Optional[str], default: int, maximum: Optional[int] = None) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    if value < 1:
        return default
    return min(value, maximum) if maximum is not None else value


def optional_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or raw == "":
        return None
    value = _to_number(float)(raw)
    return None if value is INVALID else value


def _items(params: QueryParams) -> List[Tuple[str, str]]:
    if hasattr(params, "multi_items"):
        return list(params.multi_items())
    if isinstance(params, Mapping):
        return list(params.items())
    return list(params)


def _first(items: List[Tuple[str, str]], key: str) -> Optional[str]:
    for k, v in items:
        if k == key:
            return v
    return None


def _as_operators(current: Any) -> Dict[str, Any]:
    if isinstance(current, dict):
        return current
    return {"$eq": current}


def _merge_equality(filter_dict: Dict[str, Any], name: str, value: Any) -> None:
    if name not in filter_dict:
        filter_dict[name] = value
        return
    current = filter_dict[name]
    if isinstance(current, dict):
        current.setdefault("$in", []).append(value)
    else:
        # repeated plain key, e.g. category=a&category=b
        filter_dict[name] = {"$in": [current, value]}


def _merge_operator(filter_dict: Dict[str, Any], name: str, op: str, raw: str) -> None:
    if op == "in":
        values = [coerce(name, part) for part in raw.split(",") if part != ""]
        values = [v for v in values if v is not INVALID]
        if not values:
            return
        ops = _as_operators(filter_dict.get(name)) if name in filter_dict else {}
        ops.setdefault("$in", []).extend(values)
        filter_dict[name] = ops
        return

    value = coerce(name, raw)
    if value is INVALID:
        return
    ops = _as_operators(filter_dict.get(name)) if name in filter_dict else {}
    ops[f"${op}"] = value
    filter_dict[name] = ops


def build_filter(params: QueryParams) -> Dict[str, Any]:
    """Build the MongoDB filter for a product listing request."""
    items = _items(params)
    filter_dict: Dict[str, Any] = {}

    for key, raw in items:
        if key in RESERVED_PARAMS:
            continue
        match = _KEY_RE.match(key)
        if not match:
            logger.debug("Ignoring filter parameter {!r}", key)
            continue
        name = storage_field(match.group("field"))
        op = match.group("op")
        if op is None:
            value = coerce(name, raw)
            if value is not INVALID:
                _merge_equality(filter_dict, name, value)
        elif op in OPERATORS:
            _merge_operator(filter_dict, name, op, raw)
        else:
            logger.debug("Ignoring unsupported operator {!r} on {!r}", op, name)

    min_price = optional_float(_first(items, "minPrice"))
    max_price = optional_float(_first(items, "maxPrice"))
    if min_price is not None or max_price is not None:
        price = _as_operators(filter_dict["price"]) if "price" in filter_dict else {}
        if min_price is not None:
            price["$gte"] = min_price
        if max_price is not None:
            price["$lte"] = max_price
        filter_dict["price"] = price

    search = _first(items, "search")
    if search:
        # full-text search wins over every other filter
        filter_dict = {"$text": {"$search": search}}

    return filter_dict


def build_projection(select: Optional[str]) -> Optional[Dict[str, int]]:
    if not select:
        return None
    include: Dict[str, int] = {}
    exclude: Dict[str, int] = {}
    for part in select.split(","):
        part = part.strip()
        if not part:
            continue
        name = part.lstrip("-+")
        if not name:
            continue
        if part.startswith("-"):
            exclude[storage_field(name)] = 0
        else:
            include[storage_field(name)] = 1
    # MongoDB rejects mixed inclusion and exclusion
    return include or exclude or None


def build_sort(sort: Optional[str]) -> List[Tuple[str, int]]:
    if not sort:
        return list(DEFAULT_SORT)
    order = []
    for part in sort.split(","):
        part = part.strip()
        if not part:
            continue
        name = part.lstrip("-+")
        if not name:
            continue
        direction = -1 if part.startswith("-") else 1
        order.append((storage_field(name), direction))
    return order or list(DEFAULT_SORT)


@dataclass
class ProductQuery:
    filter: Dict[str, Any]
    projection: Optional[Dict[str, int]] = None
    sort: List[Tuple[str, int]] = field(default_factory=lambda: list(DEFAULT_SORT))
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def build_product_query(params: QueryParams) -> ProductQuery:
    items = _items(params)
    limit = positive_int(_first(items, "limit"), DEFAULT_LIMIT, MAX_LIMIT)
    page = positive_int(_first(items, "page"), DEFAULT_PAGE, MAX_SKIP // limit + 1)
    return ProductQuery(
        filter=build_filter(items),
        projection=build_projection(_first(items, "select")),
        sort=build_sort(_first(items, "sort")),
        page=page,
        limit=limit,
    )


def paginate(page: int, limit: int, total: int) -> Dict[str, Any]:
    pagination: Dict[str, Any] = {
        "totalPages": math.ceil(total / limit),
        "totalItems": total,
    }
    if page * limit < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if page > 1:
        pagination["prev"] = {"page": page - 1, "limit": limit}
    return pagination
