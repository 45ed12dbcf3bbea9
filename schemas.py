"""
Database Schemas for the catalog API

Each stored model maps to a MongoDB collection (see ``database``):
- User -> "users"
- Product -> "products"
- Example -> "examples"

Fields are snake_case in Python and in MongoDB and camelCase on the wire
(``inStock``, ``imageUrl``, ``isActive``...). Request-only models live next
to the collection they feed.
"""

from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints
from pydantic.alias_generators import to_camel

Name50 = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
Name100 = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]
Role = Literal["user", "admin"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------- Users ----------------------

class User(CamelModel):
    """
    Users collection schema
    Collection name: "users"
    """
    name: Name50 = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address (unique)")
    password_hash: str = Field(..., description="Password hash (bcrypt)")
    role: Role = Field("user", description="Role for RBAC")
    is_email_verified: bool = Field(False, description="Whether the email address was verified")


class RegisterRequest(CamelModel):
    name: Name50
    email: EmailStr
    password: str = Field(..., min_length=6, description="At least 6 characters")


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class CurrentUser(CamelModel):
    """The authenticated caller, resolved from the bearer token."""
    id: str
    name: str
    email: str
    role: Role = "user"
    is_email_verified: bool = False


# ---------------------- Products ----------------------

class Product(CamelModel):
    """
    Products collection schema
    Collection name: "products"
    """
    name: Name100 = Field(..., description="Product name")
    description: NonEmpty = Field(..., description="Product description")
    price: float = Field(..., ge=0, description="Price, must be >= 0")
    category: NonEmpty = Field(..., description="Product category")
    in_stock: bool = Field(True, description="Whether the product is in stock")
    quantity: int = Field(0, ge=0, description="Units in stock")
    tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = Field(None, description="Image URL")


class ProductPatch(CamelModel):
    name: Optional[Name100] = None
    description: Optional[NonEmpty] = None
    price: Optional[float] = Field(None, ge=0)
    category: Optional[NonEmpty] = None
    in_stock: Optional[bool] = None
    quantity: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    image_url: Optional[str] = None


# ---------------------- Examples ----------------------

class Example(CamelModel):
    """
    Examples collection schema
    Collection name: "examples"
    """
    title: Name100 = Field(..., description="Title")
    description: Trimmed = Field("", description="Free text description")
    is_active: bool = Field(True, description="Whether the example is active")
    tags: List[str] = Field(default_factory=list)
    count: int = Field(0, description="A simple counter")


# ---------------------- Hello ----------------------

class HelloRequest(BaseModel):
    name: NonEmpty
    age: Optional[int] = None
    email: Optional[EmailStr] = None
