"""Synapse admin registration API schemas."""
from typing import Union

from pydantic import BaseModel, Field


class NonceResponse(BaseModel):
    """Response to GET /_synapse/admin/v1/register."""
    nonce: str


class RegisterRequest(BaseModel):
    """Body for POST /_synapse/admin/v1/register."""
    admin: bool = False
    nonce: str
    username: str
    password: str
    mac: str = Field(..., description="Lower-case hex HMAC-SHA1 of the request")

    def __repr__(self) -> str:
        return f"RegisterRequest(nonce={self.nonce!r}, username={self.username!r}, admin={self.admin})"

    __str__ = __repr__


class RegisterResponse(BaseModel):
    """Successful registration response."""
    access_token: str
    user_id: str
    home_server: str
    device_id: str

    def __repr__(self) -> str:
        return f"RegisterResponse(user_id={self.user_id!r}, device_id={self.device_id!r})"

    __str__ = __repr__


class ApiError(BaseModel):
    """Matrix error response."""
    errcode: str
    error: str


NonceResult = Union[NonceResponse, ApiError]
RegisterResult = Union[RegisterResponse, ApiError]
