from typing import Optional, Literal
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

Role = Literal["guest", "host", "admin"]
BookingStatus = Literal["pending", "confirmed", "canceled"]
PaymentMethod = Literal["credit_card", "paypal", "stripe"]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# bcrypt refuses passwords longer than 72 bytes once UTF-8 encoded
MAX_PASSWORD_BYTES = 72

def check_password_bytes(value):
    if value is not None and len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


# ---------- Users ----------
class UserBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone_number: Optional[str] = Field(None, max_length=30)
    role: Role = "guest"

class UserCreate(UserBase):
    password: str = Field(..., min_length=8)

    _check_password = field_validator("password")(check_password_bytes)

class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=30)
    role: Optional[Role] = None
    password: Optional[str] = Field(None, min_length=8)

    _check_password = field_validator("password")(check_password_bytes)

class UserResponse(UserBase, ORMModel):
    id: int
    created_at: datetime


# ---------- Properties ----------
class PropertyBase(BaseModel):
    host_id: int
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    location: str = Field(..., min_length=1, max_length=255)
    price_per_night: float = Field(..., ge=0)

class PropertyCreate(PropertyBase):
    pass

class PropertyUpdate(BaseModel):
    host_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    price_per_night: Optional[float] = Field(None, ge=0)

class PropertyResponse(PropertyBase, ORMModel):
    id: int
    created_at: datetime
    updated_at: datetime


# ---------- Bookings ----------
class BookingBase(BaseModel):
    property_id: int
    user_id: int
    start_date: date
    end_date: date
    total_price: float = Field(..., ge=0)

class BookingCreate(BookingBase):
    status: BookingStatus = "pending"

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self

class BookingUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_price: Optional[float] = Field(None, ge=0)
    status: Optional[BookingStatus] = None

class BookingStatusUpdate(BaseModel):
    status: BookingStatus

class BookingResponse(BookingBase, ORMModel):
    id: int
    status: BookingStatus
    created_at: datetime


# ---------- Payments ----------
class PaymentBase(BaseModel):
    amount: float = Field(..., ge=0)
    payment_method: PaymentMethod

class PaymentCreate(PaymentBase):
    booking_id: int

class PaymentUpdate(BaseModel):
    amount: Optional[float] = Field(None, ge=0)
    payment_method: Optional[PaymentMethod] = None

class PaymentResponse(PaymentBase, ORMModel):
    id: int
    booking_id: int
    payment_date: datetime


class CheckoutRequest(BaseModel):
    booking: BookingCreate
    payment: PaymentBase

class CheckoutResponse(BaseModel):
    booking: BookingResponse
    payment: PaymentResponse


# ---------- Reviews ----------
class ReviewBase(BaseModel):
    property_id: int
    user_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""

class ReviewCreate(ReviewBase):
    pass

class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = None

class ReviewResponse(ReviewBase, ORMModel):
    id: int
    created_at: datetime


# ---------- Messages ----------
class MessageBase(BaseModel):
    sender_id: int
    recipient_id: int
    message_body: str = Field(..., min_length=1)

class MessageCreate(MessageBase):
    pass

class MessageUpdate(BaseModel):
    message_body: Optional[str] = Field(None, min_length=1)

class MessageResponse(MessageBase, ORMModel):
    id: int
    sent_at: datetime
