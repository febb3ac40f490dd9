"""
Authentication router.

This module provides FastAPI router for authentication endpoints:
- Login with email and password
- Token refresh
- Current token validation
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api_auth.base_microservice import BaseMicroservice, ServiceContext, get_context, get_db_session
from api_auth.auth.errors import (
    AuthFailure, InternalError, InvalidCredentials, Unauthorized, error_response
)
from api_auth.auth.jwt import IssuedToken, TokenClaims
from api_auth.auth.users import LoginRequest, UserService, missing_field

# Create router
router = APIRouter(tags=["auth"])

# Create service instance
base_service = BaseMicroservice("api_auth.auth")


def token_response(
    content: Dict[str, Any],
    issued: IssuedToken,
    context: ServiceContext
) -> JSONResponse:
    """JSON response carrying the token in a HttpOnly, Secure, SameSite=Strict cookie."""
    response = JSONResponse(status_code=status.HTTP_200_OK, content=content)
    response.set_cookie(
        key=context.settings.cookie_name,
        value=issued.token,
        max_age=issued.max_age,
        httponly=True,
        secure=True,
        samesite="Strict",
    )
    return response


async def get_current_claims(
    request: Request,
    context: ServiceContext = Depends(get_context)
) -> TokenClaims:
    """
    FastAPI dependency returning the claims of a valid, unexpired cookie token.

    Raises:
        AuthFailure: If the cookie is missing, invalid or expired
    """
    token = request.cookies.get(context.settings.cookie_name)
    if not token:
        raise AuthFailure(Unauthorized("No token provided"))

    claims = context.signer.decode(token)
    if isinstance(claims, Unauthorized):
        raise AuthFailure(claims)
    return claims


@router.post("/login")
async def login(
    credentials: Optional[LoginRequest] = None,
    context: ServiceContext = Depends(get_context),
    db: AsyncSession = Depends(get_db_session)
):
    """
    Authenticate a user and set the session cookie.

    Args:
        credentials: Email and password
        context: Service context
        db: Database session

    Returns:
        Greeting and the user's name, with the token in the ``jwt`` cookie
    """
    missing = missing_field(credentials, ("email", "password"))
    if missing is not None:
        return error_response(missing)

    try:
        user = await UserService.check_credentials(credentials.email, credentials.password, db)
    except Exception as e:
        base_service.log_error(e, context="User login")
        return error_response(InternalError("Login failed"))

    if isinstance(user, InvalidCredentials):
        base_service.log_event("user.login.failed", {"reason": "invalid credentials"})
        return error_response(user)

    issued = context.signer.issue(user.name)
    base_service.log_event("user.login", {"id": user.id})

    return token_response(
        {"message": f"Welcome, {user.name}!", "name": user.name},
        issued,
        context
    )


@router.post("/refresh")
async def refresh_token(
    request: Request,
    context: ServiceContext = Depends(get_context)
):
    """
    Replace the session cookie with a token carrying a fresh expiry.

    Args:
        request: Incoming request holding the ``jwt`` cookie
        context: Service context

    Returns:
        Confirmation and the user's name, with the new token in the cookie
    """
    token = request.cookies.get(context.settings.cookie_name)
    if not token:
        return error_response(Unauthorized("No token provided"))

    issued = context.signer.refresh(token)
    if isinstance(issued, Unauthorized):
        base_service.log_event("token.refresh.failed", {"reason": issued.message})
        return error_response(issued)

    return token_response(
        {"message": "Token refreshed", "name": issued.claims.name},
        issued,
        context
    )


@router.get("/me")
async def get_current_token_info(claims: TokenClaims = Depends(get_current_claims)):
    """
    Get the claims of the current session token.

    Returns:
        Dict with the name, issue time and expiry of the token
    """
    return claims.model_dump()


# --- Health Check ---

@router.get("/ping")
async def ping():
    """
    Health check endpoint for the auth service.

    Returns:
        Dict with status information
    """
    return base_service.status_response(
        message="Auth service is alive",
        data={"timestamp": datetime.utcnow().isoformat()}
    )
