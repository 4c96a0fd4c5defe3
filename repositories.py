"""
Storage access for accounts and products.

Repositories speak storage field names internally and hand back sanitized
application-shaped dicts; only UserRepository.find_for_login returns a raw
document, because login needs the password hash.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import PRODUCTS, USERS
from errors import Conflict
from fields import (
    PRODUCT_FIELDS,
    PRODUCT_UPDATABLE_FIELDS,
    USER_FIELDS,
    USER_UPDATABLE_FIELDS,
    sanitize_product,
    sanitize_user,
    to_storage_update,
)
from queries import ProductQuery

SEARCH_FETCH_LIMIT = 10000

DUPLICATE_MOBILE = "An account with this mobile number already exists."


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserRepository:
    def __init__(self, db: Database):
        self.collection = db[USERS]

    def create(self, name: str, mobile: str, password_hash: str, email: Optional[str] = None) -> Dict[str, Any]:
        now = _now()
        document = {
            USER_FIELDS["name"]: name,
            USER_FIELDS["mobile"]: mobile,
            USER_FIELDS["email"]: email or None,
            USER_FIELDS["password"]: password_hash,
            USER_FIELDS["lastLogin"]: None,
            USER_FIELDS["createdAt"]: now,
            USER_FIELDS["updatedAt"]: now,
        }
        try:
            result = self.collection.insert_one(document)
        except DuplicateKeyError:
            raise Conflict(DUPLICATE_MOBILE)
        return self.find_by_id(result.inserted_id)

    def find_by_id(self, user_id) -> Optional[Dict[str, Any]]:
        return sanitize_user(self.collection.find_one({USER_FIELDS["id"]: ObjectId(user_id)}))

    def find_by_mobile(self, mobile: str) -> Optional[Dict[str, Any]]:
        return sanitize_user(self.collection.find_one({USER_FIELDS["mobile"]: mobile}))

    def find_for_login(self, mobile: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({USER_FIELDS["mobile"]: mobile})

    def record_login(self, user_id) -> None:
        self.collection.update_one(
            {USER_FIELDS["id"]: ObjectId(user_id)},
            {"$set": {USER_FIELDS["lastLogin"]: _now()}},
        )

    def update_by_id(self, user_id, data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        update = to_storage_update(USER_FIELDS, data, USER_UPDATABLE_FIELDS)
        if not update:
            return self.find_by_id(user_id)
        update[USER_FIELDS["updatedAt"]] = _now()
        try:
            self.collection.update_one({USER_FIELDS["id"]: ObjectId(user_id)}, {"$set": update})
        except DuplicateKeyError:
            raise Conflict(DUPLICATE_MOBILE)
        return self.find_by_id(user_id)


class ProductRepository:
    def __init__(self, db: Database):
        self.collection = db[PRODUCTS]

    def create(self, data: Mapping[str, Any], owner_id: str) -> Dict[str, Any]:
        now = _now()
        document = {
            PRODUCT_FIELDS["name"]: data["name"],
            PRODUCT_FIELDS["description"]: data.get("description") or None,
            PRODUCT_FIELDS["price"]: data["price"],
            PRODUCT_FIELDS["category"]: data["category"],
            PRODUCT_FIELDS["stock"]: data.get("stock") or 0,
            PRODUCT_FIELDS["discountFactor"]: data.get("discountFactor") or 0,
            PRODUCT_FIELDS["finalTotalPrice"]: data["finalTotalPrice"],
            PRODUCT_FIELDS["createdBy"]: ObjectId(owner_id),
            PRODUCT_FIELDS["createdAt"]: now,
            PRODUCT_FIELDS["updatedAt"]: now,
        }
        result = self.collection.insert_one(document)
        return self.find_by_id(result.inserted_id)

    def find_by_id(self, product_id) -> Optional[Dict[str, Any]]:
        return sanitize_product(self.collection.find_one({PRODUCT_FIELDS["id"]: ObjectId(product_id)}))

    def find_page(self, query: ProductQuery) -> Dict[str, Any]:
        """
        Run the list query as one aggregation.

        A $facet splits the matched set in two: one branch counts it, the
        other sorts, skips and limits it. Total and page therefore describe
        the same filtered set.
        """
        pipeline = [
            {"$match": query.filters},
            {
                "$facet": {
                    "metadata": [{"$count": "total"}],
                    "data": [
                        {"$sort": query.sort},
                        {"$skip": query.skip},
                        {"$limit": query.limit},
                    ],
                }
            },
        ]
        results = list(self.collection.aggregate(pipeline))
        facet = results[0] if results else {}
        metadata = facet.get("metadata") or []
        total = metadata[0]["total"] if metadata else 0
        return {
            "products": [sanitize_product(doc) for doc in facet.get("data", [])],
            "totalCount": total,
        }

    def fetch_for_search(self, limit: int = SEARCH_FETCH_LIMIT) -> List[Dict[str, Any]]:
        cursor = self.collection.find({}).limit(limit)
        return [sanitize_product(doc) for doc in cursor]

    def update_by_id(self, product_id, data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        update = to_storage_update(
            PRODUCT_FIELDS, data, PRODUCT_UPDATABLE_FIELDS + ("finalTotalPrice",)
        )
        update[PRODUCT_FIELDS["updatedAt"]] = _now()
        self.collection.update_one({PRODUCT_FIELDS["id"]: ObjectId(product_id)}, {"$set": update})
        return self.find_by_id(product_id)

    def delete_by_id(self, product_id) -> int:
        result = self.collection.delete_one({PRODUCT_FIELDS["id"]: ObjectId(product_id)})
        return result.deleted_count
