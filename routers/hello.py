from typing import Literal, Optional

from fastapi import APIRouter, Header, Query

from schemas import HelloRequest

router = APIRouter()

Language = Literal["en", "es", "fr", "zh", "ja"]

GREETINGS = {
    "en": "Hello",
    "es": "Hola",
    "fr": "Bonjour",
    "zh": "你好",
    "ja": "こんにちは",
}


def greet(name: str, language: str = "en") -> str:
    return f"{GREETINGS.get(language, GREETINGS['en'])}, {name}!"


@router.get("", summary="Hello, World!")
def hello_world():
    return {"message": greet("World")}


@router.get("/query", summary="Greeting from query parameters")
def hello_query(
    name: Optional[str] = Query(None),
    language: Optional[Language] = Query(None, description="One of: en, es, fr, zh, ja"),
):
    return {"message": greet(name or "World", language or "en")}


@router.get("/headers", summary="Greeting from request headers")
def hello_headers(
    x_name: Optional[str] = Header(None),
    x_language: Optional[str] = Header(None),
):
    name = x_name or "World"
    language = x_language or "en"
    return {
        "message": greet(name, language),
        "headers": {"x-name": name, "x-language": language},
    }


@router.get("/{name}", summary="Greeting by name")
def hello_name(name: str):
    return {"message": greet(name)}


@router.post("", summary="Greeting from a JSON body")
def hello_post(payload: HelloRequest):
    user_info = payload.model_dump(exclude_none=True)
    return {"message": greet(payload.name), "userInfo": user_info}
