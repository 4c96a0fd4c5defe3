"""Tests for account and product services: pricing, ownership, search and login."""

import pytest
from bson import ObjectId

import services
from errors import Conflict, Forbidden, InvalidCredentials, NotFound, ValidationError
from repositories import ProductRepository, UserRepository
from services import ProductService, UserService, filter_by_keyword, final_total_price


@pytest.fixture
def product_service(db):
    return ProductService(ProductRepository(db))


@pytest.fixture
def user_service(db, tokens):
    return UserService(UserRepository(db), tokens)


def new_product(**overrides):
    data = {"name": "Phone", "description": "A smart phone", "price": 100, "category": "Electronics", "stock": 2}
    data.update(overrides)
    return data


class TestPricing:
    def test_final_price_example(self):
        assert final_total_price(100, 2, 10) == pytest.approx(180)

    def test_no_discount(self):
        assert final_total_price(19.5, 4) == pytest.approx(78)
        assert final_total_price(10, 0, 50) == 0

    def test_add_computes_final_price_at_write_time(self, product_service):
        owner = str(ObjectId())
        product = product_service.add(new_product(discountFactor=10), owner)
        assert product["finalTotalPrice"] == pytest.approx(180)
        assert product["discountFactor"] == 10
        assert product["createdBy"] == owner

    def test_discount_defaults_to_zero(self, product_service):
        product = product_service.add(new_product(), str(ObjectId()))
        assert product["discountFactor"] == 0
        assert product["finalTotalPrice"] == pytest.approx(200)

    def test_overflowing_total_is_rejected_before_write(self, product_service):
        with pytest.raises(ValidationError):
            product_service.add(new_product(price=1e308, stock=10), str(ObjectId()))
        assert product_service.products.fetch_for_search() == []

    def test_invalid_product_is_rejected(self, product_service):
        with pytest.raises(ValidationError):
            product_service.add(new_product(price=0), str(ObjectId()))


class TestOwnership:
    def test_owner_passes_and_gets_record(self, product_service):
        owner = str(ObjectId())
        created = product_service.add(new_product(), owner)
        assert product_service.verify_owner(created["id"], owner) == created

    def test_missing_product_is_not_found(self, product_service):
        with pytest.raises(NotFound):
            product_service.verify_owner(str(ObjectId()), str(ObjectId()))

    def test_other_callers_are_forbidden(self, product_service):
        created = product_service.add(new_product(), str(ObjectId()))
        intruder = str(ObjectId())
        with pytest.raises(Forbidden):
            product_service.edit(created["id"], {"price": 1}, intruder)
        with pytest.raises(Forbidden):
            product_service.delete(created["id"], intruder)
        assert product_service.products.find_by_id(created["id"])["price"] == 100

    def test_malformed_id_is_a_validation_error(self, product_service):
        with pytest.raises(ValidationError):
            product_service.verify_owner("123", str(ObjectId()))

    def test_edit_recomputes_final_price_from_merged_record(self, product_service):
        owner = str(ObjectId())
        created = product_service.add(new_product(discountFactor=10), owner)
        updated = product_service.edit(created["id"], {"stock": 5, "unknown": "x"}, owner)
        assert updated["stock"] == 5
        assert updated["finalTotalPrice"] == pytest.approx(450)
        assert "unknown" not in updated

    def test_edit_with_no_allowed_fields_fails(self, product_service):
        owner = str(ObjectId())
        created = product_service.add(new_product(), owner)
        with pytest.raises(ValidationError):
            product_service.edit(created["id"], {"createdBy": str(ObjectId())}, owner)

    def test_delete_twice(self, product_service):
        owner = str(ObjectId())
        created = product_service.add(new_product(), owner)
        product_service.delete(created["id"], owner)
        with pytest.raises(NotFound):
            product_service.delete(created["id"], owner)


class TestSearch:
    corpus = [
        {"name": "Smartphone X", "description": None},
        {"name": "Case", "description": "Fits any PHONE"},
        {"name": "Headphones", "description": "Over-ear"},
        {"name": "Laptop", "description": "14 inch"},
    ]

    def test_case_insensitive_name_or_description(self):
        matched = filter_by_keyword(self.corpus, "phone")
        assert [p["name"] for p in matched] == ["Smartphone X", "Case", "Headphones"]

    def test_keyword_is_matched_literally(self):
        assert filter_by_keyword(self.corpus, ".*") == []
        assert filter_by_keyword([{"name": "C++ Primer"}], "c++") == [{"name": "C++ Primer"}]

    def test_search_counts(self, product_service):
        owner = str(ObjectId())
        product_service.add(new_product(name="Phone stand", description=None), owner)
        product_service.add(new_product(name="Kettle", description="Boils water", category="Home & Kitchen"), owner)
        result = product_service.search("PHONE")
        assert result["totalFetched"] == 2
        assert result["totalMatched"] == 1
        assert result["totalFetched"] >= result["totalMatched"]
        assert result["products"][0]["name"] == "Phone stand"

    def test_blank_keyword_rejected(self, product_service):
        with pytest.raises(ValidationError):
            product_service.search("  ")


class TestAccounts:
    def test_login_failures_are_indistinguishable(self, user_service):
        user_service.signup({"name": "Asha", "mobile": "9000000001", "password": "password123"})
        with pytest.raises(InvalidCredentials) as wrong_password:
            user_service.login({"mobile": "9000000001", "password": "wrong-password"})
        with pytest.raises(InvalidCredentials) as unknown_mobile:
            user_service.login({"mobile": "9999999999", "password": "password123"})
        assert wrong_password.value.message == unknown_mobile.value.message
        assert wrong_password.value.status_code == unknown_mobile.value.status_code == 401

    def test_unknown_mobile_still_checks_a_password_hash(self, user_service, monkeypatch):
        checked = []
        real_verify = services.verify_password

        def spy(password, stored):
            checked.append(stored)
            return real_verify(password, stored)

        monkeypatch.setattr(services, "verify_password", spy)
        with pytest.raises(InvalidCredentials):
            user_service.login({"mobile": "9999999999", "password": "password123"})
        assert len(checked) == 1
        assert checked[0].startswith("pbkdf2_sha256$")

    def test_login_issues_token_for_account(self, user_service, tokens):
        user = user_service.signup({"name": "Asha", "mobile": "9000000001", "password": "password123"})
        result = user_service.login({"mobile": "9000000001", "password": "password123"})
        assert tokens.verify(result["token"])["id"] == user["id"]
        assert result["user"]["lastLogin"] is not None

    def test_duplicate_signup_conflicts(self, user_service):
        user_service.signup({"name": "Asha", "mobile": "9000000001", "password": "password123"})
        with pytest.raises(Conflict):
            user_service.signup({"name": "Other", "mobile": "9000000001", "password": "password456"})

    def test_edit_profile_mobile_taken(self, user_service):
        first = user_service.signup({"name": "Asha", "mobile": "9000000001", "password": "password123"})
        user_service.signup({"name": "Ravi", "mobile": "9000000002", "password": "password123"})
        with pytest.raises(Conflict):
            user_service.edit_profile(first["id"], {"mobile": "9000000002"})

    def test_edit_profile_drops_unknown_fields(self, user_service):
        user = user_service.signup({"name": "Asha", "mobile": "9000000001", "password": "password123"})
        updated = user_service.edit_profile(user["id"], {"name": "Asha K", "password": "hijack"})
        assert updated["name"] == "Asha K"
        assert user_service.login({"mobile": "9000000001", "password": "password123"})["token"]
