"""Pydantic models for API request/response."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from domain.model.user import User


class UserResponse(BaseModel):
    """Public profile: never carries the password hash or OTP state."""
    id: str
    username: str
    phone: str
    email: str
    is_verified: bool = False
    last_login: Optional[datetime] = None
    total_amount: float = 0.0
    deposited_amount: float = 0.0
    withdrawn_amount: float = 0.0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(**user.public_profile())


# Request bodies keep the field names the web client sends. Values default to
# empty strings so that missing fields surface as field-level messages.

class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = ""
    phone: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = Field("", alias="confirmPassword")


class PhoneRequest(BaseModel):
    phone: str = ""


class VerifyOTPRequest(BaseModel):
    phone: str = ""
    otp: str = ""


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username_or_phone: str = Field("", alias="usernameOrPhone")
    password: str = ""


class ProfileUpdateRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class RegisterResponse(MessageResponse):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")


class AuthResponse(MessageResponse):
    """Returned when a session starts (OTP verified or login)."""
    token: str
    user: UserResponse


class UserEnvelope(BaseModel):
    success: bool = True
    user: UserResponse


class HomeStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_amount: float = Field(..., alias="totalAmount")
    deposited_amount: float = Field(..., alias="depositedAmount")
    withdrawn_amount: float = Field(..., alias="withdrawnAmount")
    net_amount: float = Field(..., alias="netAmount")


class HomeData(BaseModel):
    user: UserResponse
    stats: HomeStats


class HomeResponse(BaseModel):
    success: bool = True
    data: HomeData
