"""Bearer-token dependencies for protected routes."""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies import get_token_service, get_user_repo
from domain.model.errors import AuthenticationError
from domain.model.user import User
from port.user_repository import UserRepository
from services import auth_service
from services.token_service import TokenService

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Raw token from the Authorization header, or None."""
    if not credentials:
        return None
    return credentials.credentials


def get_current_user_required(
    token: Optional[str] = Depends(get_bearer_token),
    user_repo: UserRepository = Depends(get_user_repo),
    tokens: TokenService = Depends(get_token_service),
) -> User:
    """Get current authenticated user (required).

    Raises AuthenticationError (401) when the token is missing or rejected and
    NotFoundError (404) when it names a user that no longer exists.
    """
    if not token:
        raise AuthenticationError("No token provided")
    return auth_service.current_user(user_repo, tokens, token)
