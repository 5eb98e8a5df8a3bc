from __future__ import annotations
from typing import Optional

from fastapi import Depends, Header, Request

from ..models import UserProfile
from ..services.auth import AuthService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> UserProfile:
    # raises Unauthenticated (401) for missing/malformed/unknown tokens
    return auth.profile(authorization)
