"""
Authentication Router

Endpoints:
- POST /auth/register - Create a student or faculty account
- POST /auth/login - Exchange credentials for tokens
- GET /auth/profile - Current user's profile
- PUT /auth/profile - Update the current user's profile
- PUT /auth/password - Change password
- POST /auth/logout - Stateless logout acknowledgement
- POST /auth/password-reset/request - Email a reset link
- POST /auth/password-reset/confirm - Set a new password from a reset link

Security:
- Login only counts failed attempts against the auth budget
- Password endpoints share the password_reset budget, which fails closed
"""

import logging

from fastapi import APIRouter, Depends, status

from app.core.errors import InvalidCredentialsError
from app.core.gateway import GatewayContext, gateway
from app.core.rate_limit import RouteClass, get_rate_governor
from app.core.responses import envelope
from app.modules.auth import service
from app.modules.auth.schemas import AuthResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()

RESET_REQUESTED_MESSAGE = (
    "If an account exists for that email, a password reset link has been sent"
)


def _auth_response(issued: service.IssuedTokens) -> AuthResponse:
    return AuthResponse(
        access_token=issued.access_token,
        refresh_token=issued.refresh_token,
        user=UserResponse.model_validate(issued.user),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED, summary="Register")
async def register(
    ctx: GatewayContext = Depends(
        gateway(route_class=RouteClass.REGISTER, body="auth.register", authenticated=False)
    ),
):
    """Create an account. Role may be student (default) or faculty."""
    issued = await service.register(ctx.db, ctx.body)
    return envelope(_auth_response(issued), message="User registered successfully")


@router.post("/login", summary="Login")
async def login(
    ctx: GatewayContext = Depends(
        gateway(route_class=RouteClass.AUTH, body="auth.login", authenticated=False)
    ),
):
    """
    Authenticate and return JWT tokens.

    Raises:
        401 INVALID_CREDENTIALS: Unknown email or wrong password (counted
        against the caller's login budget)
        403 ACCOUNT_INACTIVE: Account deactivated
    """
    try:
        issued = await service.login(ctx.db, ctx.body)
    except InvalidCredentialsError:
        await get_rate_governor().register_failure(ctx.rate_key, ctx.route_class)
        raise
    return envelope(_auth_response(issued), message="Login successful")


@router.get("/profile", summary="Get Profile")
async def get_profile(ctx: GatewayContext = Depends(gateway())):
    user = await service.get_profile(ctx.db, ctx.require_principal())
    return envelope(UserResponse.model_validate(user))


@router.put("/profile", summary="Update Profile")
async def update_profile(ctx: GatewayContext = Depends(gateway(body="auth.profile_update"))):
    user = await service.update_profile(ctx.db, ctx.require_principal(), ctx.body)
    return envelope(UserResponse.model_validate(user), message="Profile updated successfully")


@router.put("/password", summary="Change Password")
async def change_password(
    ctx: GatewayContext = Depends(
        gateway(route_class=RouteClass.PASSWORD_RESET, body="auth.change_password")
    ),
):
    await service.change_password(ctx.db, ctx.require_principal(), ctx.body)
    return envelope(message="Password changed successfully")


@router.post("/logout", summary="Logout")
async def logout(ctx: GatewayContext = Depends(gateway())):
    """Tokens are stateless; the client discards them."""
    logger.info(f"User logged out: {ctx.require_principal().id}")
    return envelope(message="Logged out successfully")


@router.post("/password-reset/request", summary="Request Password Reset")
async def request_password_reset(
    ctx: GatewayContext = Depends(
        gateway(
            route_class=RouteClass.PASSWORD_RESET,
            body="auth.password_reset_request",
            authenticated=False,
        )
    ),
):
    await service.request_password_reset(ctx.db, ctx.body.email)
    return envelope(message=RESET_REQUESTED_MESSAGE)


@router.post("/password-reset/confirm", summary="Confirm Password Reset")
async def confirm_password_reset(
    ctx: GatewayContext = Depends(
        gateway(
            route_class=RouteClass.PASSWORD_RESET,
            body="auth.password_reset_confirm",
            authenticated=False,
        )
    ),
):
    await service.confirm_password_reset(ctx.db, ctx.body)
    return envelope(message="Password has been reset successfully")
