"""
Account and product operations.

Services take their repositories and token service as constructor arguments;
they hold no other state.
"""
import re
from math import ceil, isfinite
from typing import Any, Dict, Iterable, List, Mapping, Optional

from errors import Conflict, Forbidden, InvalidCredentials, NotFound, ValidationError
from fields import PRODUCT_UPDATABLE_FIELDS, USER_FIELDS, USER_UPDATABLE_FIELDS
from logger import get_logger
from queries import build_product_query
from repositories import DUPLICATE_MOBILE, SEARCH_FETCH_LIMIT, ProductRepository, UserRepository
from security import TokenService, dummy_password_hash, hash_password, verify_password
import validators

logger = get_logger("services")


def _require(result: validators.ValidationResult) -> None:
    if not result.is_valid:
        raise ValidationError(result.message)


def _pick(data: Mapping[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    return {key: data[key] for key in allowed if key in data}


def final_total_price(price, stock, discount_factor=0) -> float:
    """price x stock, less discount_factor percent."""
    total = price * stock
    try:
        final = total * (100 - (discount_factor or 0)) / 100
    except OverflowError:
        final = float("inf")
    if not isfinite(final):
        raise ValidationError("Validation failed: price x stock is too large.")
    return final


def filter_by_keyword(products: List[Dict[str, Any]], keyword: str) -> List[Dict[str, Any]]:
    """Case-insensitive literal substring match over name and description."""
    pattern = re.compile(re.escape(keyword.strip()), re.IGNORECASE)
    return [
        product
        for product in products
        if any(
            isinstance(product.get(key), str) and pattern.search(product[key])
            for key in ("name", "description")
        )
    ]


class UserService:
    def __init__(self, users: UserRepository, tokens: TokenService):
        self.users = users
        self.tokens = tokens

    def signup(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        _require(validators.validate_signup(data))
        mobile = str(data["mobile"]).strip()
        # The unique index on mobile backs this check up under concurrency.
        if self.users.find_by_mobile(mobile):
            raise Conflict(DUPLICATE_MOBILE)
        user = self.users.create(
            name=str(data["name"]).strip(),
            mobile=mobile,
            password_hash=hash_password(str(data["password"])),
            email=data.get("email"),
        )
        logger.info(f"New account {user['id']} signed up")
        return user

    def login(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        _require(validators.validate_login(data))
        raw = self.users.find_for_login(str(data["mobile"]).strip())
        # Unknown mobiles still pay for one hash check.
        stored = raw.get(USER_FIELDS["password"], "") if raw else dummy_password_hash()
        password_ok = verify_password(str(data["password"]), stored)
        if not raw or not password_ok:
            logger.info("Rejected login attempt")
            raise InvalidCredentials()
        user_id = str(raw[USER_FIELDS["id"]])
        self.users.record_login(user_id)
        logger.info(f"Account {user_id} logged in")
        return {"token": self.tokens.issue(user_id), "user": self.users.find_by_id(user_id)}

    def edit_profile(self, user_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        updates = _pick(data, USER_UPDATABLE_FIELDS)
        _require(validators.validate_profile_update(updates))
        if "mobile" in updates:
            updates["mobile"] = str(updates["mobile"]).strip()
            holder = self.users.find_by_mobile(updates["mobile"])
            if holder and holder["id"] != user_id:
                raise Conflict(DUPLICATE_MOBILE)
        user = self.users.update_by_id(user_id, updates)
        if user is None:
            raise NotFound("User not found.")
        return user


class ProductService:
    def __init__(self, products: ProductRepository):
        self.products = products

    def add(self, data: Mapping[str, Any], owner_id: str) -> Dict[str, Any]:
        _require(validators.validate_new_product(data))
        discount = data.get("discountFactor") or 0
        stock = int(data["stock"])
        record = dict(
            _pick(data, PRODUCT_UPDATABLE_FIELDS),
            stock=stock,
            discountFactor=discount,
            finalTotalPrice=final_total_price(data["price"], stock, discount),
        )
        product = self.products.create(record, owner_id)
        logger.info(f"Product {product['id']} added by {owner_id}")
        return product

    def list_products(self, params: Mapping[str, Any], identity_id: Optional[str]) -> Dict[str, Any]:
        query = build_product_query(params, identity_id)
        page = self.products.find_page(query)
        total = page["totalCount"]
        return {
            "products": page["products"],
            "pagination": {
                "currentPage": query.page,
                "totalPages": ceil(total / query.limit),
                "totalProducts": total,
                "limit": query.limit,
            },
        }

    def search(self, keyword: Any) -> Dict[str, Any]:
        _require(validators.validate_search_keyword(keyword))
        fetched = self.products.fetch_for_search(SEARCH_FETCH_LIMIT)
        matched = filter_by_keyword(fetched, keyword)
        return {
            "keyword": keyword,
            "totalFetched": len(fetched),
            "totalMatched": len(matched),
            "products": matched,
        }

    def verify_owner(self, product_id: Any, caller_id: str) -> Dict[str, Any]:
        """Load a product and confirm the caller created it. Returns the product."""
        _require(validators.validate_product_id(product_id))
        product = self.products.find_by_id(product_id)
        if product is None:
            raise NotFound("Product not found.")
        if product["createdBy"] != caller_id:
            logger.warning(f"Account {caller_id} denied access to product {product_id}")
            raise Forbidden("Forbidden. You can only modify your own products.")
        return product

    def edit(self, product_id: Any, data: Mapping[str, Any], caller_id: str) -> Dict[str, Any]:
        _require(validators.validate_product_id(product_id))
        updates = _pick(data, PRODUCT_UPDATABLE_FIELDS)
        _require(validators.validate_product_update(updates))
        original = self.verify_owner(product_id, caller_id)

        if "stock" in updates:
            updates["stock"] = int(updates["stock"])
        merged = dict(original, **updates)
        updates["finalTotalPrice"] = final_total_price(
            merged["price"], merged["stock"], merged.get("discountFactor")
        )
        product = self.products.update_by_id(product_id, updates)
        if product is None:
            raise NotFound("Product not found.")
        logger.info(f"Product {product_id} updated by {caller_id}")
        return product

    def delete(self, product_id: Any, caller_id: str) -> None:
        self.verify_owner(product_id, caller_id)
        if self.products.delete_by_id(product_id) == 0:
            raise NotFound("Product could not be deleted or was already deleted.")
        logger.info(f"Product {product_id} deleted by {caller_id}")
