"""
Authentication Service
Credential checks and password changes for admin accounts
"""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from newsletter_service.identity.infrastructure.password_service import PasswordService
from newsletter_service.identity.infrastructure.user_repository import UserRepository
from newsletter_service.shared.database import DatabaseSessionFactory
from newsletter_service.shared.exceptions import (
    InvalidCredentialsError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from newsletter_service.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='**********')"


class AuthService:
    def __init__(
        self,
        database: DatabaseSessionFactory,
        passwords: PasswordService,
        min_password_length: int = 12,
        max_password_length: int = 128,
    ) -> None:
        self.database = database
        self.passwords = passwords
        self.min_password_length = min_password_length
        self.max_password_length = max_password_length

    async def validate_credentials(self, credentials: Credentials) -> UUID:
        """
        Resolve ``credentials`` to a user id.

        Unknown usernames are checked against a dummy hash so they take as
        long to reject as a wrong password.

        Raises:
            InvalidCredentialsError: unknown username or wrong password
            UnexpectedError: the credential store could not be queried
        """
        try:
            async with self.database.get_session() as session:
                stored = await UserRepository(session).get_stored_credentials(credentials.username)
        except SQLAlchemyError as e:
            raise UnexpectedError("Failed to retrieve stored credentials.") from e

        user_id, expected_hash = stored if stored else (None, self.passwords.dummy_hash)
        matches = await self.passwords.verify_password_async(expected_hash, credentials.password)

        if user_id is None:
            raise InvalidCredentialsError("Unknown username.")
        if not matches:
            raise InvalidCredentialsError("Invalid password.")
        return user_id

    async def get_username(self, user_id: UUID) -> str:
        try:
            async with self.database.get_session() as session:
                username = await UserRepository(session).get_username(user_id)
        except SQLAlchemyError as e:
            raise UnexpectedError("Failed to perform a query to retrieve a username.") from e
        if username is None:
            raise NotFoundError("User not found.", details={"user_id": str(user_id)})
        return username

    def validate_new_password(self, new_password: str, new_password_check: str) -> None:
        if new_password != new_password_check:
            raise ValidationError(
                "You entered two different new passwords - the field values must match."
            )
        if not self.min_password_length <= len(new_password) <= self.max_password_length:
            raise ValidationError(
                f"The new password must be between {self.min_password_length} "
                f"and {self.max_password_length} characters long."
            )

    async def change_password(
        self,
        user_id: UUID,
        current_password: str,
        new_password: str,
        new_password_check: str,
    ) -> None:
        """
        Raises:
            ValidationError: the new password is rejected
            InvalidCredentialsError: the current password is wrong
        """
        self.validate_new_password(new_password, new_password_check)
        username = await self.get_username(user_id)
        await self.validate_credentials(Credentials(username, current_password))

        password_hash = await self.passwords.hash_password_async(new_password)
        try:
            async with self.database.get_session() as session:
                await UserRepository(session).update_password_hash(user_id, password_hash)
                await session.commit()
        except SQLAlchemyError as e:
            raise UnexpectedError("Failed to change the user's password.") from e
        logger.info("Password changed", user_id=str(user_id))

    async def create_user(self, username: str, password: str) -> UUID:
        """
        Raises:
            ValidationError: empty username, bad password length or the
                username is taken
        """
        if not username.strip():
            raise ValidationError("The username cannot be empty.")
        self.validate_new_password(password, password)

        password_hash = await self.passwords.hash_password_async(password)
        try:
            async with self.database.get_session() as session:
                user_id = await UserRepository(session).add(username, password_hash)
                await session.commit()
        except IntegrityError as e:
            raise ValidationError(f"The username {username!r} is already taken.") from e
        except SQLAlchemyError as e:
            raise UnexpectedError("Failed to create a user.") from e
        logger.info("User created", user_id=str(user_id))
        return user_id
