from typing import Any, Optional

from pydantic import BaseModel


# Fields are optional so absent values reach the service and come back as
# 400 {"error": ...} rather than a schema error.
class RegisterIn(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None


class SendOtpIn(BaseModel):
    email: Optional[str] = None


class VerifyOtpIn(BaseModel):
    email: Optional[str] = None
    code: Any = None    # string or JSON number; compared as a trimmed string


class UserOut(BaseModel):
    email: str
    name: str


class OkOut(BaseModel):
    ok: bool = True
    message: Optional[str] = None


class SendOtpOut(OkOut):
    simulated: Optional[bool] = None


class TokenOut(BaseModel):
    ok: bool = True
    token: str


class ProfileOut(BaseModel):
    ok: bool = True
    user: UserOut
