"""Profile and home routes for the signed-in user."""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_user_repo
from api.models import HomeResponse, ProfileUpdateRequest, UserEnvelope, UserResponse
from api.security import get_current_user_required
from domain.model.user import User
from port.user_repository import UserRepository
from services import auth_service, dashboard_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profile"])


@router.get("/profile", response_model=UserEnvelope)
async def get_profile(current_user: User = Depends(get_current_user_required)):
    return UserEnvelope(user=UserResponse.from_domain(current_user))


@router.put("/user/profile", response_model=UserEnvelope)
async def update_profile(
    request: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
):
    """Change username, email or phone. Each new value must be unused."""
    user = auth_service.update_profile(
        repo,
        current_user,
        username=request.username,
        email=request.email,
        phone=request.phone,
    )
    return UserEnvelope(user=UserResponse.from_domain(user))


@router.get("/home", response_model=HomeResponse)
async def home(current_user: User = Depends(get_current_user_required)):
    """Public profile plus balance totals."""
    return {"success": True, "data": dashboard_service.build_home(current_user)}
