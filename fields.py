"""
Mapping between application field names and storage field names.

The maps are the single source of truth for which application fields may be
sorted, filtered or updated. Anything absent from a map never reaches storage.
"""
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional

from bson import ObjectId

USER_FIELDS: Mapping[str, str] = MappingProxyType({
    "id": "_id",
    "name": "NAME",
    "mobile": "MOBILE",
    "email": "EMAIL",
    "password": "PASSWORD",
    "lastLogin": "LAST_LOGIN",
    "createdAt": "CREATED_AT",
    "updatedAt": "UPDATED_AT",
})

PRODUCT_FIELDS: Mapping[str, str] = MappingProxyType({
    "id": "_id",
    "name": "NAME",
    "description": "DESCRIPTION",
    "price": "PRICE",
    "category": "CATEGORY",
    "stock": "STOCK",
    "discountFactor": "DISCOUNT_FACTOR",
    "finalTotalPrice": "FINAL_TOTAL_PRICE",
    "createdBy": "CREATED_BY",
    "createdAt": "CREATED_AT",
    "updatedAt": "UPDATED_AT",
})

PRODUCT_CATEGORIES = (
    "Electronics",
    "Books",
    "Clothing",
    "Home & Kitchen",
    "Sports & Outdoors",
    "Beauty & Personal Care",
    "Toys & Games",
    "Automotive",
)

DISCOUNT_VALUES = (0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50)

# Application fields a client may change through the edit endpoints
USER_UPDATABLE_FIELDS = ("name", "email", "mobile")
PRODUCT_UPDATABLE_FIELDS = ("name", "description", "price", "category", "stock", "discountFactor")


def to_storage_field(fields: Mapping[str, str], app_field: str) -> Optional[str]:
    return fields.get(app_field)


def to_storage_update(
    fields: Mapping[str, str], data: Mapping[str, Any], allowed: Iterable[str]
) -> Dict[str, Any]:
    """Translate an update payload to storage names, dropping unknown keys."""
    allowed = set(allowed)
    return {
        fields[key]: value
        for key, value in data.items()
        if key in allowed and key in fields
    }


def _plain(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    return value


def sanitize_user(document: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Shape a raw user document for the application. The password never leaves."""
    if not document:
        return None
    return {
        app_field: _plain(document.get(storage_field))
        for app_field, storage_field in USER_FIELDS.items()
        if app_field != "password"
    }


def sanitize_product(document: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if not document:
        return None
    return {
        app_field: _plain(document.get(storage_field))
        for app_field, storage_field in PRODUCT_FIELDS.items()
    }
