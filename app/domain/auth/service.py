from typing import Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.domain.auth.models import User
from app.domain.auth.repository import UserRepository
from app.core.security import create_access_token
from app.core.exceptions import AuthenticationError, ConflictError

logger = logging.getLogger(__name__)


class AuthenticationService:
    """Service layer for authentication operations"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)

    async def register_user(self, user_data: dict) -> User:
        """Register a new user"""
        if await self.user_repo.get_by_username(user_data["username"]):
            raise ConflictError("Username already exists")

        if user_data.get("email") and await self.user_repo.get_by_email(user_data["email"]):
            raise ConflictError("Email already exists")

        try:
            user = await self.user_repo.create(dict(user_data))
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Username or email already exists")

        logger.info(f"Registered user {user.username} with role {user.role.value}")
        return user

    async def authenticate_user(self, username: str, password: str) -> Tuple[User, str]:
        """Authenticate user and return the user with a signed access token"""
        user = await self.user_repo.get_by_username(username)

        if not user or not user.verify_password(password):
            raise AuthenticationError("Invalid username or password")

        if not user.is_active:
            raise AuthenticationError("Account is not active")

        token = create_access_token(user.id, {
            "username": user.username,
            "role": user.role.value,
        })
        logger.info(f"User {user.username} logged in")
        return user, token
