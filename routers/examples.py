from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import TypeAdapter
from pymongo import ReturnDocument
from pymongo.database import Database

from database import EXAMPLES, create_document, get_db, get_documents, now_utc, to_public
from errors import ApiError
from routers.common import found_or_404, not_found, object_id_or_404
from schemas import Example

router = APIRouter()

_tag_list = TypeAdapter(List[str])


def increment_value(raw: Optional[str]) -> int:
    """Parse ``?value=``; missing, non-numeric and zero all mean 1."""
    try:
        value = int(raw) if raw is not None else 1
    except ValueError:
        return 1
    return value or 1


def _update_example(db: Database, example_id: str, update: dict) -> dict:
    oid = object_id_or_404(example_id, "Example")
    update.setdefault("$set", {})["updated_at"] = now_utc()
    doc = db[EXAMPLES].find_one_and_update(
        {"_id": oid},
        update,
        return_document=ReturnDocument.AFTER,
    )
    return found_or_404(doc, "Example", example_id)


@router.get("", summary="List examples")
def list_examples(
    is_active: Optional[str] = Query(None, alias="isActive", description="'true' or 'false'"),
    tag: Optional[str] = Query(None, description="Only examples carrying this tag"),
    db: Database = Depends(get_db),
):
    filter_dict: dict = {}
    if is_active is not None:
        filter_dict["is_active"] = is_active == "true"
    if tag:
        filter_dict["tags"] = {"$in": [tag]}

    examples = [to_public(doc) for doc in get_documents(db, EXAMPLES, filter_dict)]
    return {"success": True, "count": len(examples), "data": examples}


@router.post("", status_code=201, summary="Create an example")
def create_example(payload: Example, db: Database = Depends(get_db)):
    doc = create_document(db, EXAMPLES, payload)
    return {"success": True, "data": to_public(doc)}


@router.get("/{example_id}", summary="Get an example by id")
def get_example(example_id: str, db: Database = Depends(get_db)):
    oid = object_id_or_404(example_id, "Example")
    doc = found_or_404(db[EXAMPLES].find_one({"_id": oid}), "Example", example_id)
    return {"success": True, "data": to_public(doc)}


@router.put("/{example_id}", summary="Replace an example")
def update_example(example_id: str, payload: Example, db: Database = Depends(get_db)):
    doc = _update_example(db, example_id, {"$set": payload.model_dump()})
    return {"success": True, "data": to_public(doc)}


@router.delete("/{example_id}", summary="Delete an example")
def delete_example(example_id: str, db: Database = Depends(get_db)):
    oid = object_id_or_404(example_id, "Example")
    result = db[EXAMPLES].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise not_found("Example", example_id)
    return {"success": True, "data": {}}


@router.patch("/{example_id}/increment", summary="Increment the counter")
@router.get("/{example_id}/increment", summary="Increment the counter")
def increment_count(
    example_id: str,
    value: Optional[str] = Query(None, description="Amount to add, defaults to 1"),
    db: Database = Depends(get_db),
):
    doc = _update_example(db, example_id, {"$inc": {"count": increment_value(value)}})
    return {"success": True, "data": to_public(doc)}


@router.post("/{example_id}/tags", summary="Add tags")
def add_tags(example_id: str, payload: Any = Body(None), db: Database = Depends(get_db)):
    tags = payload.get("tags") if isinstance(payload, dict) else None
    if not isinstance(tags, list):
        raise ApiError.bad_request("Tags array is required")
    tags = _tag_list.validate_python(tags)
    doc = _update_example(db, example_id, {"$addToSet": {"tags": {"$each": tags}}})
    return {"success": True, "data": to_public(doc)}


@router.delete("/{example_id}/tags/{tag}", summary="Remove a tag")
def remove_tag(example_id: str, tag: str, db: Database = Depends(get_db)):
    doc = _update_example(db, example_id, {"$pull": {"tags": tag}})
    return {"success": True, "data": to_public(doc)}
