from typing import Any, Dict, Optional

from bson import ObjectId

from database import parse_object_id
from errors import ApiError


def not_found(label: str, record_id: str) -> ApiError:
    return ApiError.not_found(f"{label} not found with id of {record_id}")


def object_id_or_404(record_id: str, label: str) -> ObjectId:
    # an id that cannot be an ObjectId cannot reference any record
    oid = parse_object_id(record_id)
    if oid is None:
        raise not_found(label, record_id)
    return oid


def found_or_404(doc: Optional[Dict[str, Any]], label: str, record_id: str) -> Dict[str, Any]:
    if doc is None:
        raise not_found(label, record_id)
    return doc
