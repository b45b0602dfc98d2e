from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

MAX_TOTAL = Decimal("99999999.99")


class RegisterRequest(BaseModel):
    # Presence is checked by the handler so every missing field gets the same answer
    name: Optional[str] = None
    email: Optional[str] = None
    user_class: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None


class RegisterResponse(BaseModel):
    message: str
    userId: int


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    message: str
    token: str
    name: str
    role: str


class MessageResponse(BaseModel):
    message: str


class OrderCreate(BaseModel):
    order_number: str = Field(..., min_length=1, max_length=100)
    order_type: str = Field(..., min_length=1, max_length=50)
    user_class: Optional[str] = Field(default=None, max_length=50)
    order_details: Optional[str] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = Field(default=None, max_length=50)
    # upper bound matches the Numeric(10, 2) column
    total: Optional[Decimal] = Field(default=None, ge=0, le=MAX_TOTAL)

    @field_validator("total", mode="before")
    def blank_total_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    user_class: Optional[str] = None
    role: str = "user"
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderRead(BaseModel):
    id: int
    user_id: Optional[int] = None
    customer_name: Optional[str] = None
    order_number: str
    order_type: str
    user_class: Optional[str] = None
    user_phone: Optional[str] = None
    order_details: Optional[str] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    total_amount: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
