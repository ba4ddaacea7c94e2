"""Authentication routes (register, OTP, login, session)."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from api.dependencies import get_settings, get_sms_sender, get_token_service, get_user_repo
from api.models import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    PhoneRequest,
    RegisterRequest,
    RegisterResponse,
    UserEnvelope,
    UserResponse,
    VerifyOTPRequest,
)
from api.security import get_bearer_token, get_current_user_required
from config import Settings
from domain.model.user import User
from port.sms_sender import SmsSender
from port.user_repository import UserRepository
from services import auth_service
from services.token_service import TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse)
async def register(
    request: RegisterRequest,
    repo: UserRepository = Depends(get_user_repo),
    sender: SmsSender = Depends(get_sms_sender),
    settings: Settings = Depends(get_settings),
):
    """Create an unverified account and text it an OTP.

    Returns the new user id; a token is only issued after /verify-otp.
    """
    user = auth_service.register(
        repo,
        sender,
        username=request.username,
        phone=request.phone,
        email=request.email,
        password=request.password,
        confirm_password=request.confirm_password,
        otp_ttl=settings.otp_ttl,
    )
    return RegisterResponse(
        message="Registration successful! Please verify your OTP.",
        user_id=user.id,
    )


@router.post("/send-otp", response_model=MessageResponse)
async def send_otp(
    request: PhoneRequest,
    repo: UserRepository = Depends(get_user_repo),
    sender: SmsSender = Depends(get_sms_sender),
    settings: Settings = Depends(get_settings),
):
    """Replace the pending OTP with a new one and resend it."""
    auth_service.resend_otp(repo, sender, request.phone, otp_ttl=settings.otp_ttl)
    return MessageResponse(message="OTP sent successfully!")


@router.post("/verify-otp", response_model=AuthResponse)
async def verify_otp(
    request: VerifyOTPRequest,
    repo: UserRepository = Depends(get_user_repo),
    tokens: TokenService = Depends(get_token_service),
):
    """Confirm the OTP, complete registration and start a session."""
    token, user = auth_service.verify_otp(repo, tokens, request.phone, request.otp)
    return AuthResponse(
        message="OTP verified successfully! Registration completed.",
        token=token,
        user=UserResponse.from_domain(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    repo: UserRepository = Depends(get_user_repo),
    tokens: TokenService = Depends(get_token_service),
):
    """Login with username or phone and password."""
    token, user = auth_service.login(repo, tokens, request.username_or_phone, request.password)
    return AuthResponse(
        message="Login successful!",
        token=token,
        user=UserResponse.from_domain(user),
    )


@router.get("/me", response_model=UserEnvelope)
async def get_me(current_user: User = Depends(get_current_user_required)):
    """Get current authenticated user info."""
    return UserEnvelope(user=UserResponse.from_domain(current_user))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: Optional[str] = Depends(get_bearer_token),
    tokens: TokenService = Depends(get_token_service),
):
    """Always succeeds. The token itself stays valid until it expires."""
    auth_service.logout(tokens, token)
    return MessageResponse(message="Logged out successfully")
