"""
Tests for product services and endpoints.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from api.common.errors import NotFoundError, TransportError, ValidationFailedError
from api.products.schemas import ProductCreate, ProductUpdate
from api.products.services import (
    create_product, delete_product, get_catalog, get_product_by_id, get_products,
    search_products, update_product,
)


def product_doc(doc_id, **data):
    doc = MagicMock()
    doc.id = doc_id
    doc.exists = True
    doc.to_dict.return_value = data
    return doc


class TestProductSchemas:
    def test_create_requires_name_price_and_category(self):
        with pytest.raises(ValidationError):
            ProductCreate(name="", price=10, category="Brakes")
        with pytest.raises(ValidationError):
            ProductCreate(name="Pad", price=-1, category="Brakes")
        with pytest.raises(ValidationError):
            ProductCreate(name="Pad", price=10, category="Brakes", stockCount=-3)

    def test_description_is_limited(self):
        with pytest.raises(ValidationError):
            ProductCreate(name="Pad", price=10, category="Brakes", description="x" * 501)

    def test_name_and_category_are_trimmed(self):
        product = ProductCreate(name="  Brake Pad ", price=10, category=" Brakes ")

        assert product.name == "Brake Pad"
        assert product.category == "Brakes"

    def test_update_fields_are_optional(self):
        assert ProductUpdate().model_dump(exclude_none=True) == {}


class TestProductServices:
    @pytest.mark.asyncio
    async def test_get_products_orders_by_name(self, mock_firestore):
        count_result = MagicMock()
        count_result.value = 2
        mock_collection = MagicMock()
        mock_collection.count.return_value.get.return_value = [[count_result]]

        mock_order_by = MagicMock()
        mock_collection.order_by.return_value = mock_order_by
        mock_order_by.limit.return_value.get.return_value = [
            product_doc("p1", name="Air Filter", price=300, category="Filters", stockCount=4),
            product_doc("p2", name="Brake Pad", price=250, category="Brakes", stockCount=0),
        ]
        mock_firestore.collection.return_value = mock_collection

        result = await get_products(limit=10, offset=0)

        mock_collection.order_by.assert_called_once_with('name')
        assert result.total == 2
        assert [p.name for p in result.items] == ["Air Filter", "Brake Pad"]
        assert result.pages == 1

    @pytest.mark.asyncio
    async def test_get_products_wraps_backend_errors(self, mock_firestore):
        mock_firestore.collection.side_effect = Exception("permission denied by rules")

        with pytest.raises(TransportError) as exc_info:
            await get_products()

        assert exc_info.value.message == "permission denied by rules"

    @pytest.mark.asyncio
    async def test_catalog_only_lists_products_in_stock(self, fake_db):
        fake_db.add("products", {"name": "Wiper", "price": 120, "category": "Body", "stockCount": 3})
        fake_db.add("products", {"name": "axle nut", "price": 15, "category": "Body", "stockCount": 40})
        fake_db.add("products", {"name": "Bulb", "price": 60, "category": "Body", "stockCount": 0})

        result = await get_catalog()

        assert [p.name for p in result.items] == ["axle nut", "Wiper"]
        assert result.total == 2

    @pytest.mark.asyncio
    async def test_get_product_by_id_not_found(self, mock_firestore):
        missing = MagicMock()
        missing.exists = False
        mock_firestore.collection.return_value.document.return_value.get.return_value = missing

        with pytest.raises(NotFoundError):
            await get_product_by_id("nope")

    @pytest.mark.asyncio
    async def test_get_product_by_id_requires_id(self):
        with pytest.raises(ValidationFailedError):
            await get_product_by_id("")

    @pytest.mark.asyncio
    async def test_search_ranks_name_matches_first(self, fake_db):
        fake_db.add("products", {"name": "Gasket", "price": 40, "category": "Engine",
                                 "description": "Fits brake housing", "stockCount": 5})
        fake_db.add("products", {"name": "Brake Pad", "price": 250, "category": "Brakes", "stockCount": 5})
        fake_db.add("products", {"name": "Horn", "price": 300, "category": "Electrical", "stockCount": 5})

        result = await search_products("brake")

        assert [p.name for p in result.items] == ["Brake Pad", "Gasket"]

    @pytest.mark.asyncio
    async def test_search_matches_sku(self, fake_db):
        fake_db.add("products", {"name": "Horn", "price": 300, "category": "Electrical",
                                 "sku": "HRN-12V", "stockCount": 5})

        result = await search_products("hrn-12v")

        assert result.total == 1

    @pytest.mark.asyncio
    async def test_create_product_requires_existing_category(self, fake_db):
        with pytest.raises(ValidationFailedError) as exc_info:
            await create_product({"name": "Pad", "price": 10, "category": "Missing", "stockCount": 1})

        assert "does not exist" in exc_info.value.message
        assert fake_db.docs("products") == {}

    @pytest.mark.asyncio
    async def test_create_product_marks_image_permanent(self, fake_db):
        fake_db.add("categories", {"name": "Brakes"})

        with patch("api.products.services.mark_image_permanent", new_callable=AsyncMock) as mock_mark:
            created = await create_product({
                "name": "Pad", "price": 10, "category": "Brakes", "stockCount": 1,
                "imageUrl": "https://res.cloudinary.com/demo/image/upload/v1/product-images/x.jpg",
            })

        assert created.name == "Pad"
        assert created.createdAt is not None
        mock_mark.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_product_replaces_image(self, fake_db):
        fake_db.add("categories", {"name": "Brakes"})
        product_id = fake_db.add("products", {"name": "Pad", "price": 10, "category": "Brakes",
                                              "stockCount": 1, "imageUrl": "old-url"})

        with patch("api.products.services.mark_image_permanent", new_callable=AsyncMock) as mock_mark, \
                patch("api.products.services.delete_image_by_url", new_callable=AsyncMock) as mock_delete:
            updated = await update_product(product_id, {"price": 12.5, "imageUrl": "new-url"})

        assert updated.price == 12.5
        assert updated.imageUrl == "new-url"
        mock_mark.assert_awaited_once_with("new-url")
        mock_delete.assert_awaited_once_with("old-url")

    @pytest.mark.asyncio
    async def test_update_product_to_unknown_category_is_rejected(self, fake_db):
        fake_db.add("categories", {"name": "Brakes"})
        product_id = fake_db.add("products", {"name": "Pad", "price": 10, "category": "Brakes", "stockCount": 1})

        with pytest.raises(ValidationFailedError):
            await update_product(product_id, {"category": "Nope"})

        assert fake_db.docs("products")[product_id]["category"] == "Brakes"

    @pytest.mark.asyncio
    async def test_delete_product(self, fake_db):
        product_id = fake_db.add("products", {"name": "Pad", "price": 10, "category": "Brakes", "stockCount": 1})

        assert await delete_product(product_id) is True
        assert fake_db.docs("products") == {}

        with pytest.raises(NotFoundError):
            await delete_product(product_id)


class TestProductEndpoints:
    def test_list_products(self, client, fake_db):
        fake_db.add("products", {"name": "Pad", "price": 10, "category": "Brakes", "stockCount": 1})

        response = client.get("/products")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["data"]["items"][0]["name"] == "Pad"

    def test_catalog_endpoint(self, client, fake_db):
        fake_db.add("products", {"name": "Pad", "price": 10, "category": "Brakes", "stockCount": 0})

        body = client.get("/products/catalog").json()

        assert body["status"] == "success"
        assert body["data"]["total"] == 0

    def test_missing_product_returns_typed_error(self, client, fake_db):
        body = client.get("/products/does-not-exist").json()

        assert body["status"] == "error"
        assert body["code"] == 404
        assert body["details"]["kind"] == "not_found"

    def test_create_product_endpoint(self, client, fake_db):
        fake_db.add("categories", {"name": "Brakes"})

        body = client.post("/products", json={
            "name": "Brake Pad", "price": 250, "category": "Brakes", "stockCount": 8, "sku": "BP-01",
        }).json()

        assert body["status"] == "success"
        assert body["data"]["stockCount"] == 8
        assert len(fake_db.docs("products")) == 1

    def test_create_product_with_unknown_category(self, client, fake_db):
        body = client.post("/products", json={"name": "Brake Pad", "price": 250, "category": "Nope"}).json()

        assert body["status"] == "error"
        assert body["code"] == 400
        assert body["details"] == {"kind": "validation", "category": "Nope"}

    def test_employee_cannot_create_products(self, client, fake_db):
        fake_db.add("user_profiles", {"role": "employee"}, doc_id="emp1")

        with patch("firebase_admin.auth.verify_id_token", return_value={"uid": "emp1"}):
            response = client.post(
                "/products",
                json={"name": "Brake Pad", "price": 250, "category": "Brakes"},
                headers={"Authorization": "Bearer token"}
            )

        assert response.status_code == 403
        assert fake_db.docs("products") == {}

    def test_upload_image_rejects_non_images(self, client):
        body = client.post(
            "/products/upload-image",
            files={"file": ("notes.txt", b"hello", "text/plain")}
        ).json()

        assert body["status"] == "error"
        assert body["details"]["kind"] == "validation"

    def test_upload_image_returns_url(self, client):
        with patch("cloudinary.uploader.upload", return_value={"secure_url": "https://img/x.jpg"}):
            body = client.post(
                "/products/upload-image",
                files={"file": ("pad.jpg", b"\xff\xd8\xff", "image/jpeg")}
            ).json()

        assert body["status"] == "success"
        assert body["data"] == {"imageUrl": "https://img/x.jpg"}
