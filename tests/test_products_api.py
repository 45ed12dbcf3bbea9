"""Tests for the product endpoints."""

import math

import mongomock
import pytest
from bson import ObjectId

from database import PRODUCTS, create_document
from schemas import Product
from tests.utils import product_payload


@pytest.fixture
def seed_products(db):
    def seed(count=25, **fields):
        docs = []
        for i in range(count):
            data = {
                "name": f"Product {i}",
                "description": f"Description {i}",
                "price": float(i),
                "category": "even" if i % 2 == 0 else "odd",
                "in_stock": i % 3 != 0,
                "quantity": i,
            }
            data.update(fields)
            docs.append(create_document(db, PRODUCTS, Product(**data)))
        return docs

    return seed


@pytest.fixture
def product(db):
    return create_document(db, PRODUCTS, Product(**product_payload(tags=["a"])))


class TestCreateProduct:
    def test_admin_creates_product(self, client, admin_headers, db):
        response = client.post("/api/products", json=product_payload(id="client-id"), headers=admin_headers)
        assert response.status_code == 201
        data = response.json()["data"]
        assert {k: data[k] for k in ("name", "description", "price", "category")} == product_payload()
        assert data["inStock"] is True
        assert data["quantity"] == 0
        assert data["tags"] == []
        assert data["imageUrl"] is None
        assert ObjectId.is_valid(data["id"])
        assert data["id"] != "client-id"
        assert "createdAt" in data and "updatedAt" in data
        assert db[PRODUCTS].count_documents({}) == 1

    def test_without_token(self, client, db):
        response = client.post("/api/products", json=product_payload())
        assert response.status_code == 401
        assert db[PRODUCTS].count_documents({}) == 0

    def test_non_admin(self, client, user_headers):
        response = client.post("/api/products", json=product_payload(), headers=user_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "User role user is not authorized to access this route"

    def test_negative_price_is_rejected(self, client, admin_headers):
        response = client.post("/api/products", json=product_payload(price=-1), headers=admin_headers)
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["price"]

    def test_every_missing_field_is_reported(self, client, admin_headers):
        response = client.post("/api/products", json={}, headers=admin_headers)
        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["errors"]}
        assert fields == {"name", "description", "price", "category"}

    def test_name_length_cap(self, client, admin_headers):
        response = client.post("/api/products", json=product_payload(name="n" * 101), headers=admin_headers)
        assert response.status_code == 400


class TestBulkCreate:
    def test_bulk(self, client, admin_headers, db):
        body = {"products": [product_payload(name="A"), product_payload(name="B", inStock=False)]}
        response = client.post("/api/products/bulk", json=body, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["count"] == 2
        assert db[PRODUCTS].count_documents({"in_stock": False}) == 1

    def test_bare_array(self, client, admin_headers):
        response = client.post("/api/products/bulk", json=[product_payload()], headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["count"] == 1

    @pytest.mark.parametrize("body", [{"products": "nope"}, {"items": []}, {}, None])
    def test_not_an_array(self, client, admin_headers, body):
        response = client.post("/api/products/bulk", json=body, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Products array is required"

    def test_invalid_item(self, client, admin_headers, db):
        body = {"products": [product_payload(), product_payload(price=-5)]}
        response = client.post("/api/products/bulk", json=body, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "1.price"
        assert db[PRODUCTS].count_documents({}) == 0

    def test_admin_only(self, client, user_headers):
        response = client.post("/api/products/bulk", json={"products": []}, headers=user_headers)
        assert response.status_code == 403


class TestListProducts:
    def test_default_page(self, client, seed_products):
        seed_products(25)
        body = client.get("/api/products").json()
        assert body["success"] is True
        assert body["count"] == 10
        assert body["pagination"] == {
            "totalPages": 3,
            "totalItems": 25,
            "next": {"page": 2, "limit": 10},
        }

    def test_last_page(self, client, seed_products):
        seed_products(25)
        body = client.get("/api/products", params={"page": 3, "limit": 10}).json()
        assert body["count"] == 5
        assert "next" not in body["pagination"]
        assert body["pagination"]["prev"] == {"page": 2, "limit": 10}

    @pytest.mark.parametrize("limit", [1, 4, 7, 25, 30])
    def test_total_pages(self, client, seed_products, limit):
        seed_products(25)
        pagination = client.get("/api/products", params={"limit": limit}).json()["pagination"]
        assert pagination["totalPages"] == math.ceil(25 / limit)

    def test_bad_paging_falls_back(self, client, seed_products):
        seed_products(12)
        body = client.get("/api/products", params={"page": "x", "limit": "y"}).json()
        assert body["count"] == 10
        assert "prev" not in body["pagination"]

    def test_huge_paging_values_are_clamped(self, client, seed_products):
        seed_products(3)
        response = client.get(
            "/api/products", params={"limit": "99999999999999999999", "page": "1000000000000000000"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 0
        assert body["pagination"]["prev"]["limit"] == 100

    def test_bare_sort_prefix_uses_default_order(self, client, seed_products):
        seed_products(3)
        response = client.get("/api/products", params={"sort": "-", "select": "-"})
        assert response.status_code == 200
        assert response.json()["count"] == 3

    def test_filter_by_category(self, client, seed_products):
        seed_products(10)
        body = client.get("/api/products", params={"category": "odd"}).json()
        assert body["pagination"]["totalItems"] == 5
        assert {p["category"] for p in body["data"]} == {"odd"}

    def test_operator_filters(self, client, seed_products):
        seed_products(10)
        body = client.get("/api/products", params={"price[gte]": "3", "price[lt]": "6"}).json()
        assert sorted(p["price"] for p in body["data"]) == [3.0, 4.0, 5.0]

    def test_in_filter(self, client, seed_products):
        seed_products(10)
        body = client.get("/api/products", params={"quantity[in]": "1,2,9"}).json()
        assert sorted(p["quantity"] for p in body["data"]) == [1, 2, 9]

    def test_price_range(self, client, seed_products):
        seed_products(10)
        body = client.get("/api/products", params={"minPrice": "7", "maxPrice": "8"}).json()
        assert sorted(p["price"] for p in body["data"]) == [7.0, 8.0]

    def test_invalid_price_range_is_ignored(self, client, seed_products):
        seed_products(10)
        body = client.get("/api/products", params={"minPrice": "lots"}).json()
        assert body["pagination"]["totalItems"] == 10

    def test_boolean_filter(self, client, seed_products):
        seed_products(9)
        body = client.get("/api/products", params={"inStock": "false"}).json()
        assert sorted(p["quantity"] for p in body["data"]) == [0, 3, 6]

    def test_select(self, client, seed_products):
        seed_products(3)
        body = client.get("/api/products", params={"select": "name,price"}).json()
        assert all(set(p) == {"id", "name", "price"} for p in body["data"])

    def test_sort(self, client, seed_products):
        seed_products(5)
        body = client.get("/api/products", params={"sort": "-price"}).json()
        assert [p["price"] for p in body["data"]] == [4.0, 3.0, 2.0, 1.0, 0.0]

    def test_empty(self, client):
        body = client.get("/api/products").json()
        assert body["count"] == 0
        assert body["pagination"] == {"totalPages": 0, "totalItems": 0}


class TestSearchAndCategories:
    def test_search_requires_keyword(self, client):
        response = client.get("/api/products/search")
        assert response.status_code == 400
        assert response.json()["error"] == "Search keyword is required"

    def test_search_ranks_by_text_score(self, client, seed_products, monkeypatch):
        # mongomock has no $text support, so the collection answers with scored docs
        docs = [dict(doc, score=score) for doc, score in zip(seed_products(2), (2.5, 1.0))]
        calls = {}

        class ScoredCursor:
            def sort(self, order):
                calls["sort"] = order
                return iter(docs)

        def find(self, filter=None, projection=None, *args, **kwargs):
            calls["filter"], calls["projection"] = filter, projection
            return ScoredCursor()

        monkeypatch.setattr(mongomock.collection.Collection, "find", find)
        response = client.get("/api/products/search", params={"q": "phone case"})

        assert response.status_code == 200
        body = response.json()
        assert calls["filter"] == {"$text": {"$search": "phone case"}}
        assert calls["projection"] == {"score": {"$meta": "textScore"}}
        assert calls["sort"] == [("score", {"$meta": "textScore"})]
        assert body["count"] == 2
        assert [p["id"] for p in body["data"]] == [str(d["_id"]) for d in docs]
        assert all("score" not in p for p in body["data"])

    def test_categories(self, client, seed_products):
        seed_products(4)
        body = client.get("/api/products/categories").json()
        assert body == {"success": True, "count": 2, "data": ["even", "odd"]}


class TestProductById:
    def test_get(self, client, product):
        response = client.get(f"/api/products/{product['_id']}")
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "X"

    def test_malformed_id_is_404(self, client):
        response = client.get("/api/products/not-an-id")
        assert response.status_code == 404
        assert response.json()["error"] == "Product not found with id of not-an-id"

    def test_missing_is_404(self, client):
        assert client.get(f"/api/products/{ObjectId()}").status_code == 404

    def test_put_replaces(self, client, admin_headers, product):
        body = product_payload(name="New", price=20)
        response = client.put(f"/api/products/{product['_id']}", json=body, headers=admin_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "New"
        assert data["price"] == 20
        # unspecified fields go back to their defaults
        assert data["tags"] == []

    def test_put_is_revalidated(self, client, admin_headers, product):
        response = client.put(
            f"/api/products/{product['_id']}", json={"name": "only"}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_put_missing(self, client, admin_headers):
        response = client.put(f"/api/products/{ObjectId()}", json=product_payload(), headers=admin_headers)
        assert response.status_code == 404

    def test_patch_merges(self, client, admin_headers, product):
        response = client.patch(
            f"/api/products/{product['_id']}", json={"quantity": 4}, headers=admin_headers
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["quantity"] == 4
        assert data["name"] == "X"
        assert data["tags"] == ["a"]

    def test_patch_is_validated(self, client, admin_headers, product):
        response = client.patch(
            f"/api/products/{product['_id']}", json={"price": -3}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_patch_missing(self, client, admin_headers):
        response = client.patch("/api/products/bad-id", json={"quantity": 1}, headers=admin_headers)
        assert response.status_code == 404

    def test_delete(self, client, admin_headers, product):
        url = f"/api/products/{product['_id']}"
        response = client.delete(url, headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {}}
        assert client.get(url).status_code == 404
        assert client.delete(url, headers=admin_headers).status_code == 404

    def test_mutations_require_admin(self, client, user_headers, product):
        url = f"/api/products/{product['_id']}"
        assert client.put(url, json=product_payload(), headers=user_headers).status_code == 403
        assert client.patch(url, json={}, headers=user_headers).status_code == 403
        assert client.delete(url, headers=user_headers).status_code == 403
        assert client.delete(url).status_code == 401
