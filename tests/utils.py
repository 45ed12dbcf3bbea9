from typing import Any, Dict

from config import Settings
from security import create_access_token

PASSWORD = "secret123"


def bearer(user: dict, settings: Settings) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user['_id']), settings)}"}


def product_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "name": "X",
        "description": "Y",
        "price": 10,
        "category": "Z",
    }
    payload.update(overrides)
    return payload
