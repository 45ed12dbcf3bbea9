from fastapi import APIRouter, Depends
from loguru import logger
from pymongo.database import Database

from config import Settings, app_settings
from database import USERS, create_document, get_db, to_public
from errors import ApiError
from schemas import CurrentUser, LoginRequest, RegisterRequest, User
from security import create_access_token, get_current_user, hash_password, verify_password

router = APIRouter()


def get_user_by_email(db: Database, email: str):
    return db[USERS].find_one({"email": email.lower()})


@router.post("/register", status_code=201, summary="Register a new user")
def register(
    payload: RegisterRequest,
    db: Database = Depends(get_db),
    settings: Settings = Depends(app_settings),
):
    email = str(payload.email).lower()
    if get_user_by_email(db, email):
        raise ApiError.bad_request("User already exists")
    user = User(name=payload.name, email=email, password_hash=hash_password(payload.password))
    # the unique email index still guards a concurrent registration
    doc = create_document(db, USERS, user)
    logger.info("Registered user {}", doc["_id"])
    token = create_access_token(str(doc["_id"]), settings)
    return {"success": True, "token": token, "data": to_public(doc)}


@router.post("/login", summary="Log in and receive a bearer token")
def login(
    payload: LoginRequest,
    db: Database = Depends(get_db),
    settings: Settings = Depends(app_settings),
):
    user = get_user_by_email(db, str(payload.email))
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise ApiError.unauthorized("Invalid credentials")
    token = create_access_token(str(user["_id"]), settings)
    return {"success": True, "token": token, "data": to_public(user)}


@router.get("/me", summary="Current user")
def me(user: CurrentUser = Depends(get_current_user)):
    return {"success": True, "data": user.model_dump(by_alias=True)}
