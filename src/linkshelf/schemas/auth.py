"""Authentication-related Pydantic schemas."""

from pydantic import BaseModel, Field


class LoginResponse(BaseModel):
    """Response returned after a successful login."""

    ok: bool = Field(..., description="Always true on success")
    username: str = Field(..., description="The authenticated admin's username")


class LogoutResponse(BaseModel):
    ok: bool = True


class MeResponse(BaseModel):
    """Current session status; never an error for anonymous callers."""

    username: str | None = Field(..., description="Signed-in admin, or null")


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Short, client-safe error message")
