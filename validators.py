"""
Input checks for incoming request data.

Every function here is pure: it looks only at its argument and returns a
ValidationResult. Uniqueness, existence and ownership need storage and are
checked by the services.
"""
import math
from numbers import Number
from typing import Any, Mapping, NamedTuple

from bson import ObjectId

from fields import DISCOUNT_VALUES, PRODUCT_CATEGORIES, PRODUCT_UPDATABLE_FIELDS, USER_UPDATABLE_FIELDS

MIN_PASSWORD_LENGTH = 8
# Storage integers are signed 64-bit
MAX_STORED_INT = 2 ** 63 - 1


class ValidationResult(NamedTuple):
    is_valid: bool
    message: str


OK = ValidationResult(True, "Validation successful.")


def _fail(message: str) -> ValidationResult:
    return ValidationResult(False, f"Validation failed: {message}")


def _missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _is_storable_number(value: Any) -> bool:
    """Finite, and for ints within the signed 64-bit range."""
    if not _is_number(value):
        return False
    if isinstance(value, int):
        return abs(value) <= MAX_STORED_INT
    try:
        return math.isfinite(value)
    except (OverflowError, TypeError):
        return False


def _first_missing(data: Mapping[str, Any], required) -> ValidationResult:
    for name in required:
        if _missing(data.get(name)):
            return _fail(f"'{name}' is a required field.")
    return OK


def validate_signup(data: Mapping[str, Any]) -> ValidationResult:
    result = _first_missing(data, ("name", "mobile", "password"))
    if not result.is_valid:
        return result
    if len(str(data["password"])) < MIN_PASSWORD_LENGTH:
        return _fail(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
    return OK


def validate_login(data: Mapping[str, Any]) -> ValidationResult:
    return _first_missing(data, ("mobile", "password"))


def _check_price(price: Any) -> ValidationResult:
    if not _is_storable_number(price) or price <= 0:
        return _fail("Price must be a positive number.")
    return OK


def _check_stock(stock: Any) -> ValidationResult:
    if isinstance(stock, float) and stock.is_integer():
        stock = int(stock)
    if not isinstance(stock, int) or isinstance(stock, bool) or not 0 <= stock <= MAX_STORED_INT:
        return _fail("Stock must be a non-negative integer.")
    return OK


def _check_category(category: Any) -> ValidationResult:
    if category not in PRODUCT_CATEGORIES:
        return _fail(f"'{category}' is not a valid category.")
    return OK


def _check_discount(discount: Any) -> ValidationResult:
    if not _is_number(discount) or discount not in DISCOUNT_VALUES:
        return _fail(f"'{discount}' is not a valid discount.")
    return OK


def _check_name(name: Any) -> ValidationResult:
    if not isinstance(name, str) or not name.strip():
        return _fail("Name must be a non-empty string.")
    return OK


_PRODUCT_CHECKS = {
    "name": _check_name,
    "price": _check_price,
    "stock": _check_stock,
    "category": _check_category,
    "discountFactor": _check_discount,
}


def validate_new_product(data: Mapping[str, Any]) -> ValidationResult:
    for name in ("name", "price", "category", "stock"):
        if data.get(name) is None:
            return _fail(f"'{name}' is a required field.")
    for name in ("name", "price", "stock", "category"):
        result = _PRODUCT_CHECKS[name](data[name])
        if not result.is_valid:
            return result
    if data.get("discountFactor") is not None:
        return _check_discount(data["discountFactor"])
    return OK


def validate_product_update(data: Mapping[str, Any]) -> ValidationResult:
    """Check an update payload already reduced to updatable fields."""
    if not data:
        return _fail(
            "Provide at least one of: " + ", ".join(PRODUCT_UPDATABLE_FIELDS) + "."
        )
    for name, value in data.items():
        check = _PRODUCT_CHECKS.get(name)
        if check is None:
            continue
        if value is None:
            return _fail(f"'{name}' cannot be null.")
        result = check(value)
        if not result.is_valid:
            return result
    description = data.get("description")
    if description is not None and not isinstance(description, str):
        return _fail("Description must be a string.")
    return OK


def validate_profile_update(data: Mapping[str, Any]) -> ValidationResult:
    """Check a profile payload already reduced to updatable fields."""
    if not data:
        return _fail(
            "Provide at least one of: " + ", ".join(USER_UPDATABLE_FIELDS) + "."
        )
    for name in ("name", "mobile"):
        if name in data and _missing(data[name]):
            return _fail(f"'{name}' cannot be empty.")
    return OK


def validate_product_id(product_id: Any) -> ValidationResult:
    if not isinstance(product_id, str) or not ObjectId.is_valid(product_id):
        return ValidationResult(False, "Invalid product ID format.")
    return OK


def validate_search_keyword(keyword: Any) -> ValidationResult:
    if not isinstance(keyword, str) or not keyword.strip():
        return ValidationResult(False, "Search keyword is required.")
    return OK
