from pydantic import BaseModel, EmailStr
from typing import Any, List, Optional

# Request bodies. Fields the validators judge are typed loosely so that the
# validator, not the parser, produces the message.

class SignupRequest(BaseModel):
    name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    mobile: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[EmailStr] = None


class ProductCreateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Any = None
    category: Any = None
    stock: Any = None
    discountFactor: Any = None


class ProductUpdateRequest(BaseModel):
    name: Any = None
    description: Any = None
    price: Any = None
    category: Any = None
    stock: Any = None
    discountFactor: Any = None


# Responses

class AppConfig(BaseModel):
    productCategories: List[str]
    discountValues: List[int]
