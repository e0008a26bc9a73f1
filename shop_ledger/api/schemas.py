"""
Pydantic schemas for API requests
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


def changes(request: BaseModel) -> Dict[str, Any]:
    """Fields the caller actually sent, free-form extras included"""
    fields = request.model_dump(exclude_unset=True)
    fields.update(request.model_extra or {})
    return fields


# Session schemas
class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    language: Optional[str] = None


class LanguageRequest(BaseModel):
    language: str


# User schemas
class CreateUserRequest(BaseModel):
    username: str
    password: str
    name: Optional[str] = None
    language: str = "en"


class UpdateUserRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    username: Optional[str] = None
    name: Optional[str] = None
    language: Optional[str] = None
    role: Optional[str] = Field(None, description="admin or standard-user")


class ChangePasswordRequest(BaseModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    new_password: Optional[str] = None


# Client schemas
class CreateClientRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    phone: Optional[str] = None
    loan: Optional[Decimal] = Field(None, description="Opening balance, defaults to 0")


class UpdateClientRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    phone: Optional[str] = None


# Product schemas
class CreateProductRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    price: Decimal
    stock: Optional[int] = Field(None, description="Omit for untracked products")


class UpdateProductRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    price: Optional[Decimal] = None
    stock: Optional[int] = None


class StockRequest(BaseModel):
    stock: int


# Sale and loan schemas
class LineItemModel(BaseModel):
    product_id: Optional[int] = None
    name: Optional[str] = None
    price: Decimal
    quantity: int
    type: Optional[str] = Field(None, description="Unit or package pricing tag")


class SaleRequest(BaseModel):
    client_id: int
    items: List[LineItemModel]
    paid: Decimal


class LoanPaymentRequest(BaseModel):
    client_id: int
    amount: Decimal
