"""Authentication module."""

from app.modules.auth.router import router
from app.modules.auth.schemas import AuthResponse, LoginRequest, RegisterRequest, UserResponse

__all__ = ["router", "AuthResponse", "LoginRequest", "RegisterRequest", "UserResponse"]
