from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from pydantic import TypeAdapter
from pymongo import ReturnDocument
from pymongo.database import Database

from database import PRODUCTS, create_document, create_documents, get_db, now_utc, to_public
from errors import ApiError
from filters import build_product_query, paginate
from routers.common import found_or_404, not_found, object_id_or_404
from schemas import CurrentUser, Product, ProductPatch
from security import require_roles

router = APIRouter()

admin_only = require_roles("admin")
_product_list = TypeAdapter(List[Product])

# image_url is the only optional stored field that may be cleared with null
_NULLABLE = {"image_url"}


@router.get("", summary="List products with filtering, sorting and pagination")
def list_products(
    request: Request,
    db: Database = Depends(get_db),
    select: Optional[str] = Query(None, description="Comma separated fields to return"),
    sort: Optional[str] = Query(None, description="Comma separated fields, '-' for descending"),
    page: Optional[str] = Query(None, description="Page number, defaults to 1"),
    limit: Optional[str] = Query(None, description="Page size, defaults to 10"),
    search: Optional[str] = Query(None, description="Full-text search; overrides every other filter"),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
):
    """
    Any other parameter filters on the product field of the same name, e.g.
    ``category=books`` or ``price[gte]=10``.
    """
    query = build_product_query(request.query_params)
    collection = db[PRODUCTS]

    total = collection.count_documents(query.filter)
    cursor = (
        collection.find(query.filter, query.projection)
        .sort(query.sort)
        .skip(query.skip)
        .limit(query.limit)
    )
    products = [to_public(doc) for doc in cursor]

    return {
        "success": True,
        "count": len(products),
        "pagination": paginate(query.page, query.limit, total),
        "data": products,
    }


@router.get("/search", summary="Full-text search over name, description and category")
def search_products(q: Optional[str] = None, db: Database = Depends(get_db)):
    if not q:
        raise ApiError.bad_request("Search keyword is required")
    cursor = db[PRODUCTS].find(
        {"$text": {"$search": q}},
        {"score": {"$meta": "textScore"}},
    ).sort([("score", {"$meta": "textScore"})])
    products = []
    for doc in cursor:
        doc.pop("score", None)
        products.append(to_public(doc))
    return {"success": True, "count": len(products), "data": products}


@router.get("/categories", summary="Distinct product categories")
def get_categories(db: Database = Depends(get_db)):
    categories = sorted(db[PRODUCTS].distinct("category"))
    return {"success": True, "count": len(categories), "data": categories}


@router.post("/bulk", status_code=201, summary="Create many products (admin)")
def create_bulk_products(
    payload: Any = Body(None),
    db: Database = Depends(get_db),
    _: CurrentUser = Depends(admin_only),
):
    items = payload.get("products") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise ApiError.bad_request("Products array is required")
    products = _product_list.validate_python(items)
    docs = create_documents(db, PRODUCTS, products)
    return {"success": True, "count": len(docs), "data": [to_public(d) for d in docs]}


@router.post("", status_code=201, summary="Create a product (admin)")
def create_product(
    payload: Product,
    db: Database = Depends(get_db),
    _: CurrentUser = Depends(admin_only),
):
    doc = create_document(db, PRODUCTS, payload)
    return {"success": True, "data": to_public(doc)}


@router.get("/{product_id}", summary="Get a product by id")
def get_product(product_id: str, db: Database = Depends(get_db)):
    oid = object_id_or_404(product_id, "Product")
    doc = found_or_404(db[PRODUCTS].find_one({"_id": oid}), "Product", product_id)
    return {"success": True, "data": to_public(doc)}


@router.put("/{product_id}", summary="Replace a product (admin)")
def update_product(
    product_id: str,
    payload: Product,
    db: Database = Depends(get_db),
    _: CurrentUser = Depends(admin_only),
):
    oid = object_id_or_404(product_id, "Product")
    doc = db[PRODUCTS].find_one_and_update(
        {"_id": oid},
        {"$set": {**payload.model_dump(), "updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )
    doc = found_or_404(doc, "Product", product_id)
    return {"success": True, "data": to_public(doc)}


@router.patch("/{product_id}", summary="Partially update a product (admin)")
def patch_product(
    product_id: str,
    payload: ProductPatch,
    db: Database = Depends(get_db),
    _: CurrentUser = Depends(admin_only),
):
    oid = object_id_or_404(product_id, "Product")
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key in _NULLABLE
    }
    if changes:
        changes["updated_at"] = now_utc()
        doc = db[PRODUCTS].find_one_and_update(
            {"_id": oid},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
    else:
        doc = db[PRODUCTS].find_one({"_id": oid})
    doc = found_or_404(doc, "Product", product_id)
    return {"success": True, "data": to_public(doc)}


@router.delete("/{product_id}", summary="Delete a product (admin)")
def delete_product(
    product_id: str,
    db: Database = Depends(get_db),
    _: CurrentUser = Depends(admin_only),
):
    oid = object_id_or_404(product_id, "Product")
    result = db[PRODUCTS].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise not_found("Product", product_id)
    return {"success": True, "data": {}}
