"""
Turns raw list-query parameters into a bounded storage query.

Nothing here raises: unusable input falls back to a safe default.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

from fields import PRODUCT_CATEGORIES, PRODUCT_FIELDS, to_storage_field

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Largest page whose skip still fits a signed 64-bit BSON int
MAX_PAGE = (2 ** 63 - 1) // MAX_LIMIT

DEFAULT_SORT_FIELD = "createdAt"
ALLOWED_SORT_FIELDS = ("name", "price", "discountFactor", "finalTotalPrice", "stock", "createdAt")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ProductQuery:
    filters: Dict[str, Any] = field(default_factory=dict)
    sort: Dict[str, int] = field(default_factory=dict)
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def int_or_default(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def is_truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def build_pagination(params: Mapping[str, Any]):
    page = min(max(1, int_or_default(params.get("page"), DEFAULT_PAGE)), MAX_PAGE)
    limit = min(max(int_or_default(params.get("limit"), DEFAULT_LIMIT), 1), MAX_LIMIT)
    return page, limit


def build_sort(params: Mapping[str, Any]) -> Dict[str, int]:
    sort_by = params.get("sortBy")
    if sort_by not in ALLOWED_SORT_FIELDS:
        sort_by = DEFAULT_SORT_FIELD
    direction = ASCENDING if params.get("sortOrder") == "asc" else DESCENDING
    storage_field = to_storage_field(PRODUCT_FIELDS, sort_by) or PRODUCT_FIELDS[DEFAULT_SORT_FIELD]
    # _id breaks ties so equal keys page deterministically
    return {storage_field: direction, PRODUCT_FIELDS["id"]: direction}


def build_filters(params: Mapping[str, Any], identity_id: Optional[str]) -> Dict[str, Any]:
    filters: Dict[str, Any] = {}

    categories = params.get("categories")
    if isinstance(categories, str) and categories:
        requested = [c.strip() for c in categories.split(",")]
        valid = [c for c in dict.fromkeys(requested) if c in PRODUCT_CATEGORIES]
        if valid:
            filters[PRODUCT_FIELDS["category"]] = {"$in": valid}

    # Owner comes from the verified identity only, never from the parameters.
    if is_truthy(params.get("ownedByMe")) and identity_id and ObjectId.is_valid(identity_id):
        filters[PRODUCT_FIELDS["createdBy"]] = ObjectId(identity_id)

    return filters


def build_product_query(params: Mapping[str, Any], identity_id: Optional[str] = None) -> ProductQuery:
    page, limit = build_pagination(params)
    return ProductQuery(
        filters=build_filters(params, identity_id),
        sort=build_sort(params),
        page=page,
        limit=limit,
    )
