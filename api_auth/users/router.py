"""
Users router: plain list and create endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api_auth.base_microservice import BaseMicroservice, ServiceContext, get_context, get_db_session
from api_auth.auth.errors import DuplicateField, InternalError, error_response
from api_auth.auth.users import UserCreate, UserService, missing_field

router = APIRouter(tags=["users"])
base_service = BaseMicroservice("api_auth.users")


@router.get("")
async def get_all(db: AsyncSession = Depends(get_db_session)):
    """List all registered users."""
    try:
        users = await UserService.list_users(db)
    except Exception as e:
        base_service.log_error(e, context="List users")
        return error_response(InternalError("Failed to list users"))

    return [user.model_dump(mode="json") for user in users]


@router.post("")
async def save(
    user_data: Optional[UserCreate] = None,
    context: ServiceContext = Depends(get_context),
    db: AsyncSession = Depends(get_db_session)
):
    """
    Register a new user.

    Args:
        user_data: Name, email and password
        context: Service context
        db: Database session

    Returns:
        The created user, without the password hash
    """
    missing = missing_field(user_data, ("name", "email", "password"))
    if missing is not None:
        return error_response(missing)

    try:
        created = await UserService.create_user(user_data, db, rounds=context.settings.bcrypt_rounds)
    except Exception as e:
        base_service.log_error(e, context="User registration")
        return error_response(InternalError("Registration failed"))

    if isinstance(created, DuplicateField):
        return error_response(created)

    base_service.log_event("user.registered", {"id": created.id})
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=created.model_dump(mode="json"))
