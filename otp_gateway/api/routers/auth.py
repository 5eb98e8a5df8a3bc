from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Header

from ...auth.deps import get_auth_service, get_current_user
from ...domain.schemas.auth import (
    OkOut,
    ProfileOut,
    RegisterIn,
    SendOtpIn,
    SendOtpOut,
    TokenOut,
    UserOut,
    VerifyOtpIn,
)
from ...models import UserProfile
from ...services.auth import AuthService

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", response_model=OkOut, response_model_exclude_none=True)
async def register(payload: Optional[RegisterIn] = None, auth: AuthService = Depends(get_auth_service)):
    payload = payload or RegisterIn()
    auth.register(payload.email, payload.name)
    return OkOut(message="Registered")


@router.post("/send-otp", response_model=SendOtpOut, response_model_exclude_none=True)
async def send_otp(payload: Optional[SendOtpIn] = None, auth: AuthService = Depends(get_auth_service)):
    payload = payload or SendOtpIn()
    result = await auth.send_otp(payload.email)
    if result.simulated:
        return SendOtpOut(simulated=True, message="SMTP not configured; OTP logged on server console.")
    return SendOtpOut(message="OTP sent")


@router.post("/verify-otp", response_model=TokenOut)
async def verify_otp(payload: Optional[VerifyOtpIn] = None, auth: AuthService = Depends(get_auth_service)):
    payload = payload or VerifyOtpIn()
    token = auth.verify_otp(payload.email, payload.code)
    return TokenOut(token=token)


@router.get("/profile", response_model=ProfileOut)
async def profile(current: UserProfile = Depends(get_current_user)) -> ProfileOut:
    return ProfileOut(user=UserOut(email=current.email, name=current.name))


@router.post("/logout", response_model=OkOut, response_model_exclude_none=True)
async def logout(
    authorization: Optional[str] = Header(default=None),
    auth: AuthService = Depends(get_auth_service),
):
    auth.logout(authorization)
    return OkOut()
