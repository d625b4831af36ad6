"""
Core module - Configuration, database, security, and errors.
"""

from app.core.config import get_settings, settings
from app.core.database import Base, close_db, get_db, init_db
from app.core.errors import FieldError, GatewayError
from app.core.redis import close_redis, init_redis
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "init_redis",
    "close_redis",
    # Security
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    # Errors
    "FieldError",
    "GatewayError",
]
