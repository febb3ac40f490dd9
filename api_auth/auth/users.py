"""
User management service.

This module provides functionality for:
- User registration
- Credential checking
- Listing and bulk removal of users
"""
from datetime import datetime
from typing import Iterable, List, Optional, Union

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from api_auth.auth.errors import DuplicateField, InvalidCredentials, MissingField
from api_auth.auth.models import User

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str) -> str:
    return email.strip().lower()


class LoginRequest(BaseModel):
    """Model for user login. Fields are checked by ``missing_field``."""
    email: Optional[str] = None
    password: Optional[str] = None


class UserCreate(BaseModel):
    """Model for user registration."""
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator('password')
    @classmethod
    def password_must_fit_hash(cls, v):
        if v is not None and len(v.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValueError(f'Password must be at most {MAX_PASSWORD_BYTES} bytes')
        return v


class UserOut(BaseModel):
    """Model for user information returned to clients."""
    id: int
    name: str
    email: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


def missing_field(data: Optional[BaseModel], fields: Iterable[str]) -> Optional[MissingField]:
    """
    Return the first required field that is absent or blank.

    Args:
        data: Parsed request body, None when no body was sent
        fields: Required field names, in the order they are reported

    Returns:
        MissingField for the first offender, or None
    """
    for field in fields:
        value = getattr(data, field, None) if data is not None else None
        if value is None or (isinstance(value, str) and not value.strip()):
            return MissingField(field)
    return None


class UserService:
    """
    Service for user persistence and credential checks.
    """
    @staticmethod
    async def create_user(
        user_data: UserCreate,
        db: AsyncSession,
        rounds: int = 12
    ) -> Union[UserOut, DuplicateField]:
        """
        Register a new user.

        Args:
            user_data: Registration data with name, email and password set
            db: Database session
            rounds: bcrypt cost factor

        Returns:
            Created user information, or DuplicateField if the email is taken
        """
        email = normalize_email(user_data.email)
        if await UserService.find_by_email(email, db) is not None:
            return DuplicateField("email")

        hashed_password = await run_in_threadpool(User.get_password_hash, user_data.password, rounds)
        new_user = User(
            name=user_data.name.strip(),
            email=email,
            hashed_password=hashed_password
        )

        db.add(new_user)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration with the same email
            await db.rollback()
            return DuplicateField("email")
        await db.refresh(new_user)

        return UserOut.model_validate(new_user)

    @staticmethod
    async def find_by_email(email: str, db: AsyncSession) -> Optional[User]:
        """Get a user by email, or None if not found."""
        result = await db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_users(db: AsyncSession) -> List[UserOut]:
        result = await db.execute(select(User).order_by(User.id))
        return [UserOut.model_validate(user) for user in result.scalars().all()]

    @staticmethod
    async def delete_all(db: AsyncSession) -> int:
        """Remove every user. Returns the number of rows deleted."""
        result = await db.execute(delete(User))
        await db.commit()
        return result.rowcount

    @staticmethod
    async def check_credentials(
        email: str,
        password: str,
        db: AsyncSession
    ) -> Union[User, InvalidCredentials]:
        """
        Authenticate a user by email and password.

        An unknown email and a wrong password give the same result.

        Args:
            email: Submitted email
            password: Submitted plaintext password
            db: Database session

        Returns:
            The matching User, or InvalidCredentials
        """
        user = await UserService.find_by_email(email, db)
        if user is None:
            return InvalidCredentials()

        if not await run_in_threadpool(user.verify_password, password):
            return InvalidCredentials()

        return user
