"""Invite and signup schemas."""
from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


def _not_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be blank")
    return v


class RegistrationRequest(BaseModel):
    """A request to redeem an invite token for a new account."""
    token: str = Field(..., min_length=1)
    user_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    registration_secret: str = Field(..., min_length=1)

    @field_validator("token", "user_name", "password", "registration_secret")
    @classmethod
    def validate_not_blank(cls, v):
        """All fields are mandatory and non-blank."""
        return _not_blank(v)

    def __repr__(self) -> str:
        return f"RegistrationRequest(token={self.token!r}, user_name={self.user_name!r})"

    __str__ = __repr__


class IssuedInvite(BaseModel):
    """A freshly issued invite token."""
    token: str
    expires_at: datetime


class FailureKind(str, Enum):
    """Why a redemption failed."""
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    REMOTE_REJECTED = "REMOTE_REJECTED"


class RedeemSuccess(BaseModel):
    """The account was created and the token consumed."""
    ok: Literal[True] = True
    user_id: str
    home_server: str
    device_id: str


class RedeemFailure(BaseModel):
    """The account was not created; the token is untouched unless it never existed."""
    ok: Literal[False] = False
    kind: FailureKind
    message: str
    errcode: Optional[str] = None
    error: Optional[str] = None


RedeemResult = Union[RedeemSuccess, RedeemFailure]


class InviteResponse(BaseModel):
    """Response schema for POST /invites."""
    token: str
    invite_url: str
    expires_at: datetime


class InviteStatusResponse(BaseModel):
    """Response schema for GET /signup/."""
    token: str
    expires_at: datetime
    signup_url: str = Field(..., description="Where to POST the signup form")


class SignupRequest(BaseModel):
    """Request schema for POST /signup."""
    token: str = Field(..., min_length=1, max_length=255, description="Invite token")
    user_name: str = Field(..., min_length=1, max_length=255, description="Requested user name")
    password: str = Field(..., min_length=1, description="Password")
    password_confirm: str = Field(..., min_length=1, description="Password confirmation")

    @field_validator("token", "user_name", "password", "password_confirm")
    @classmethod
    def validate_not_blank(cls, v):
        """Reject whitespace-only form values."""
        return _not_blank(v)


class SignupResponse(BaseModel):
    """Response schema for POST /signup."""
    user_id: str
    server_url: Optional[str] = None
    message: str = "Registration complete"
